from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Date
from sqlalchemy.orm import relationship
from travel_ledger.database import Base
from travel_ledger.models.timestamps import utcnow


class Package(Base):
    """A sold trip grouping invoices over a date range"""
    __tablename__ = "packages"

    id = Column(Integer, primary_key=True, index=True)
    # Denormalized client label; customer_id is authoritative when present
    client_name = Column(String, nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="quote", index=True)  # quote, active, completed
    target_margin_percent = Column(Numeric(5, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    customer = relationship("Customer", back_populates="packages")
    invoices = relationship("Invoice", back_populates="package")
