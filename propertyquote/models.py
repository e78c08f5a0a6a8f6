import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    name = Column(String(255), nullable=False)
    # SHA-256 of the dashboard API key; the raw key is only shown once at creation
    api_key_hash = Column(String(64), unique=True, index=True, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    pricing_rules = relationship(
        "PricingRule", back_populates="business", cascade="all, delete-orphan"
    )


class PricingRule(Base):
    __tablename__ = "pricing_rules"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False, index=True)  # zone, service, customer, volume
    # zipCodes, serviceTypes, customerTags, minArea, maxArea, dateRange, daysOfWeek, timeOfDay
    conditions = Column(JSON, default=dict, nullable=False)
    # priceMultiplier, fixedPrices, minimumCharge, surcharge, discount
    pricing = Column(JSON, default=dict, nullable=False)
    priority = Column(Integer, default=0, nullable=False)  # Higher evaluates first
    is_active = Column(Boolean, default=True, nullable=False)
    description = Column(Text, nullable=True)
    applied_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    business = relationship("Business", back_populates="pricing_rules")
