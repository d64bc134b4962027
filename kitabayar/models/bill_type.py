from sqlalchemy import Column, String, Integer, DateTime, Boolean, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from kitabayar.core.database import Base


class BillType(Base):
    __tablename__ = "bill_types"
    __table_args__ = (UniqueConstraint("category_id", "name", name="uq_bill_types_category_name"),)

    id = Column(Integer, primary_key=True, index=True)

    category_id = Column(Integer, ForeignKey("bill_categories.id", ondelete="CASCADE"), nullable=False, index=True)
    category = relationship("BillCategory", back_populates="bill_types")

    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    base_amount = Column(Numeric(12, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    # Bills keep their type: deleting a type that is still billed is refused (RESTRICT)
    bills = relationship("Bill", back_populates="bill_type", passive_deletes="all")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now(), nullable=False)
