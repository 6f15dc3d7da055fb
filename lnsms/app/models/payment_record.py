"""
Payment Record database model.

One row per provider-side payment identifier.
"""

from sqlalchemy import Column, String, Text, Boolean, DateTime, JSON
from sqlalchemy.sql import func
from lnsms.app.db.session import Base


class PaymentRecord(Base):
    """
    Payment Record model.

    Provider columns (type, status, amount, description, provider_fields)
    mirror the provider and are overwritten on every poll. The internal
    columns (sent_sms, claim_code, claimed, payout_status) are only
    written by the relay itself.
    Records are never deleted.
    """
    __tablename__ = "payment_records"

    id = Column(String(128), primary_key=True)

    # Provider fields
    type = Column(String(32), nullable=True, index=True)
    status = Column(String(32), nullable=True, index=True)
    amount = Column(String(64), nullable=True)  # Decimal string, never float
    description = Column(Text, nullable=True)
    provider_fields = Column(JSON, nullable=False, default=dict)

    # Notification state (sent_sms flips false -> true once, code never changes after)
    sent_sms = Column(Boolean, default=False, nullable=False)
    claim_code = Column(String(128), unique=True, nullable=True, index=True)

    # Claim state
    claimed = Column(Boolean, default=False, nullable=False, index=True)
    payout_status = Column(String(32), nullable=True, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<PaymentRecord(id='{self.id}', type='{self.type}', status='{self.status}', sent_sms={self.sent_sms}, claimed={self.claimed})>"
