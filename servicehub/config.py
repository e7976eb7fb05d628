import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./servicehub.db")

# Security - tokens are issued by the external auth service with this shared key
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Frontend base URL for payment redirects
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Paystack Configuration
PAYSTACK_SECRET_KEY = os.getenv("PAYSTACK_SECRET_KEY")
# Paystack signs webhooks with the secret key unless a dedicated secret is configured
PAYSTACK_WEBHOOK_SECRET = os.getenv("PAYSTACK_WEBHOOK_SECRET") or PAYSTACK_SECRET_KEY
PAYSTACK_BASE_URL = os.getenv("PAYSTACK_BASE_URL", "https://api.paystack.co")
PAYSTACK_TIMEOUT = float(os.getenv("PAYSTACK_TIMEOUT", "15"))
PAYSTACK_MAX_RETRIES = int(os.getenv("PAYSTACK_MAX_RETRIES", "3"))
PAYSTACK_CALLBACK_URL = os.getenv("PAYSTACK_CALLBACK_URL", f"{FRONTEND_URL}/payment/callback")

# Settlement
PLATFORM_CURRENCY = os.getenv("PLATFORM_CURRENCY", "GHS")
# Days a cash-paid provider has to remit commission before it is flagged overdue
COMMISSION_DUE_DAYS = int(os.getenv("COMMISSION_DUE_DAYS", "7"))

# What a provider with no stored availability looks like: "default_template" or "unbookable"
AVAILABILITY_FALLBACK = os.getenv("AVAILABILITY_FALLBACK", "default_template")
PLATFORM_TIMEZONE = os.getenv("PLATFORM_TIMEZONE", "Africa/Accra")

# Notification collaborator - outbox events are POSTed here (logged only when unset)
NOTIFIER_WEBHOOK_URL = os.getenv("NOTIFIER_WEBHOOK_URL")
NOTIFIER_TIMEOUT = float(os.getenv("NOTIFIER_TIMEOUT", "10"))
OUTBOX_BATCH_SIZE = int(os.getenv("OUTBOX_BATCH_SIZE", "100"))
OUTBOX_MAX_ATTEMPTS = int(os.getenv("OUTBOX_MAX_ATTEMPTS", "10"))

# Public booking requests per customer per window (Redis rate limiter)
BOOKING_RATE_LIMIT = int(os.getenv("BOOKING_RATE_LIMIT", "10"))
BOOKING_RATE_WINDOW_SECONDS = int(os.getenv("BOOKING_RATE_WINDOW_SECONDS", "60"))
