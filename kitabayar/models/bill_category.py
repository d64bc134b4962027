from sqlalchemy import Column, String, Integer, DateTime, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from kitabayar.core.database import Base


class BillCategory(Base):
    __tablename__ = "bill_categories"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String, nullable=False, unique=True)  # "Iuran Bulanan", "17 Agustusan"
    description = Column(String, nullable=True)
    color = Column(String, nullable=True)  # hex, e.g. "#3B82F6"
    icon = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # ONE category has MANY bill types and MANY periods
    bill_types = relationship("BillType", back_populates="category", cascade="all, delete-orphan", passive_deletes=True)
    periods = relationship("BillPeriod", back_populates="category", cascade="all, delete-orphan", passive_deletes=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now(), nullable=False)
