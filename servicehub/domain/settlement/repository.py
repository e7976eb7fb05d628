"""Settlement repository - Database operations for invoices and ledger entries"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models_invoice import Invoice, PaymentTransaction


class SettlementRepository:
    """Repository for invoice database operations"""

    @staticmethod
    def get_invoice_by_booking(db: Session, booking_id: int) -> Optional[Invoice]:
        return db.query(Invoice).filter(Invoice.booking_id == booking_id).first()

    @staticmethod
    def get_invoice_by_number(db: Session, invoice_number: str) -> Optional[Invoice]:
        return db.query(Invoice).filter(Invoice.invoice_number == invoice_number).first()

    @staticmethod
    def get_provider_invoices(db: Session, provider_id: int, limit: int = 100) -> list[Invoice]:
        return (
            db.query(Invoice)
            .filter(Invoice.provider_id == provider_id)
            .order_by(Invoice.issued_at.desc(), Invoice.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_transaction_by_booking(db: Session, booking_id: int) -> Optional[PaymentTransaction]:
        return db.query(PaymentTransaction).filter(PaymentTransaction.booking_id == booking_id).first()

    @staticmethod
    def add_invoice(db: Session, **fields) -> Invoice:
        invoice = Invoice(**fields)
        db.add(invoice)
        return invoice

    @staticmethod
    def add_transaction(db: Session, **fields) -> PaymentTransaction:
        transaction = PaymentTransaction(**fields)
        db.add(transaction)
        return transaction
