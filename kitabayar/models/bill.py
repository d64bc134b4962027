from sqlalchemy import (
    Column, String, Integer, DateTime, ForeignKey, Numeric, Enum, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from kitabayar.core.database import Base
from kitabayar.models.enums import BillStatus


class Bill(Base):
    __tablename__ = "bills"
    __table_args__ = (
        # a resident cannot be billed twice for the same type + period
        UniqueConstraint("resident_id", "bill_type_id", "period", name="uq_bills_resident_type_period"),
        CheckConstraint("installments > 0", name="ck_bills_installments_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)

    resident_id = Column(Integer, ForeignKey("residents.id", ondelete="CASCADE"), nullable=False, index=True)
    resident = relationship("Resident", back_populates="bills")

    bill_type_id = Column(Integer, ForeignKey("bill_types.id", ondelete="RESTRICT"), nullable=False, index=True)
    bill_type = relationship("BillType", back_populates="bills")

    period = Column(String, nullable=False, index=True)  # "2024-09" or a bill period name
    amount = Column(Numeric(12, 2), nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(Enum(BillStatus, name="bill_status"), nullable=False, default=BillStatus.PENDING, index=True)
    description = Column(String, nullable=True)
    installments = Column(Integer, nullable=False, default=1)

    payments = relationship(
        "Payment",
        back_populates="bill",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Payment.id",
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now(), nullable=False)

    @property
    def bill_type_name(self):
        return self.bill_type.name if self.bill_type is not None else None
