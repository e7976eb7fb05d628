from servicehub.domain.availability.repository import AvailabilityRepository
from servicehub.models import Provider
from servicehub.services.tier_migration import backfill_provider_records


def test_backfill_assigns_missing_tiers_metrics_and_availability(db, provider):
    db.add_all(
        [
            Provider(email="old@example.com", business_name="Old Co", tier=None, is_premium=False),
            Provider(email="vip@example.com", business_name="VIP Co", tier=None, is_premium=True),
        ]
    )
    db.commit()

    summary = backfill_provider_records(db)

    assert summary == {"providers": 3, "tiers_assigned": 2, "metrics_initialized": 2, "availability_created": 2}
    old = db.query(Provider).filter(Provider.email == "old@example.com").one()
    vip = db.query(Provider).filter(Provider.email == "vip@example.com").one()
    assert old.tier == "STANDARD"
    assert vip.tier == "PREMIUM"
    assert old.performance_metrics["completed_bookings"] == 0
    assert AvailabilityRepository.get_availability(db, vip.id) is not None

    # Registered providers already have everything
    db.refresh(provider)
    assert provider.tier == "VERIFIED"


def test_backfill_is_repeatable(db):
    db.add(Provider(email="old@example.com", business_name="Old Co", tier=None))
    db.commit()
    backfill_provider_records(db)

    assert backfill_provider_records(db) == {
        "providers": 1,
        "tiers_assigned": 0,
        "metrics_initialized": 0,
        "availability_created": 0,
    }
