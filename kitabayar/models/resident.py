from sqlalchemy import Column, String, Integer, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from kitabayar.core.database import Base


class Resident(Base):
    __tablename__ = "residents"

    id = Column(Integer, primary_key=True, index=True)

    # Login account; null for households registered by an admin without one
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, unique=True, index=True)
    user = relationship("User", back_populates="resident")

    full_name = Column(String, nullable=False, index=True)
    email = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    address = Column(String, nullable=True)
    house_number = Column(String, nullable=True)
    identity_card = Column(String, nullable=True)  # NIK, 16 digits
    rt_rw = Column(String, nullable=True)          # e.g. "RT 001/RW 005"
    kelurahan = Column(String, nullable=True)
    kecamatan = Column(String, nullable=True)
    city = Column(String, nullable=True)
    postal_code = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    bills = relationship("Bill", back_populates="resident", cascade="all, delete-orphan", passive_deletes=True)
    payments = relationship("Payment", back_populates="resident", cascade="all, delete-orphan", passive_deletes=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now(), nullable=False)
