from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Numeric, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from kitabayar.core.database import Base
from kitabayar.models.enums import PaymentMethod, PaymentStatus


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)

    resident_id = Column(Integer, ForeignKey("residents.id", ondelete="CASCADE"), nullable=False, index=True)
    resident = relationship("Resident", back_populates="payments")

    bill_id = Column(Integer, ForeignKey("bills.id", ondelete="CASCADE"), nullable=False, index=True)
    bill = relationship("Bill", back_populates="payments")

    amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(Enum(PaymentMethod, name="payment_method"), nullable=False)
    status = Column(Enum(PaymentStatus, name="payment_status"), nullable=False, default=PaymentStatus.PENDING, index=True)
    installment_number = Column(Integer, nullable=True)  # "cicilan ke-N"
    paid_at = Column(DateTime(timezone=True), nullable=True, index=True)
    receipt_number = Column(String, nullable=True, unique=True)  # KBR-2025-001
    notes = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now(), nullable=False)

    @property
    def bill_type_name(self):
        return self.bill.bill_type_name if self.bill is not None else None

    @property
    def period(self):
        return self.bill.period if self.bill is not None else None

    @property
    def resident_name(self):
        return self.resident.full_name if self.resident is not None else None
