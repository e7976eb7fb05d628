"""
Booking and settlement error taxonomy

Every failure the booking core can report to a caller is one of these types.
The API layer turns them into JSON responses carrying the HTTP status and a
stable machine-readable code so clients can render an actionable message.
"""


class ServiceHubError(Exception):
    """Base class for all booking/settlement errors"""

    status_code = 400
    code = "error"

    def __init__(self, message: str = "", **details):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or (self.__class__.__doc__ or "").strip()
        self.details = details

    def to_dict(self) -> dict:
        body = {"detail": self.message, "code": self.code}
        if self.details:
            body["context"] = self.details
        return body


class SlotConflict(ServiceHubError):
    """Time slot already booked"""

    status_code = 409
    code = "slot_conflict"


class PastDateError(ServiceHubError):
    """Cannot book appointments for past dates"""

    code = "past_date"


class NotBookableError(ServiceHubError):
    """The provider is not available at the requested time"""

    code = "not_bookable"


class InvalidTransition(ServiceHubError):
    """The requested action is not allowed in the current state"""

    status_code = 409
    code = "invalid_transition"


class InvalidAmount(ServiceHubError):
    """Service price must be greater than zero"""

    code = "invalid_amount"


class BookingNotFound(ServiceHubError):
    """Booking not found"""

    status_code = 404
    code = "booking_not_found"


class BookingNotCompleted(ServiceHubError):
    """Invoices can only be generated for completed bookings"""

    status_code = 409
    code = "booking_not_completed"


class InvalidCommissionRate(ServiceHubError):
    """Commission rates must be between 5% and 50%"""

    code = "invalid_commission_rate"


class ProviderNotFound(ServiceHubError):
    """Provider not found"""

    status_code = 404
    code = "provider_not_found"


class TransactionNotFound(ServiceHubError):
    """Payment transaction not found"""

    status_code = 404
    code = "transaction_not_found"


class BlockedSlotNotFound(ServiceHubError):
    """Blocked time slot not found"""

    status_code = 404
    code = "blocked_slot_not_found"


class InvalidAvailability(ServiceHubError):
    """Start time must be before end time"""

    code = "invalid_availability"


class PaymentGatewayError(ServiceHubError):
    """The payment gateway request failed"""

    status_code = 502
    code = "payment_gateway_error"


class DuplicateInvoice(ServiceHubError):
    """
    Invoice already generated for this booking.

    Never propagated to callers: settlement logs it and returns the existing
    invoice so retries stay idempotent.
    """

    status_code = 200
    code = "duplicate_invoice"
