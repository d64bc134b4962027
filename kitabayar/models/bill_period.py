from sqlalchemy import (
    Column, String, Integer, DateTime, Date, Boolean, ForeignKey, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from kitabayar.core.database import Base


class BillPeriod(Base):
    __tablename__ = "bill_periods"
    __table_args__ = (
        UniqueConstraint("category_id", "name", name="uq_bill_periods_category_name"),
        CheckConstraint("end_date >= start_date", name="ck_bill_periods_date_range"),
        CheckConstraint("installments > 0", name="ck_bill_periods_installments_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)

    category_id = Column(Integer, ForeignKey("bill_categories.id", ondelete="CASCADE"), nullable=False, index=True)
    category = relationship("BillCategory", back_populates="periods")

    name = Column(String, nullable=False)  # "September 2024", "HUT RI 2024"
    description = Column(String, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    installments = Column(Integer, nullable=False, default=1)  # how many times a resident pays in this period
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now(), nullable=False)
