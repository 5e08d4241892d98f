from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Date, JSON
from sqlalchemy.orm import relationship
from travel_ledger.database import Base
from travel_ledger.models.timestamps import utcnow

DEFAULT_CURRENCY = "EUR"


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    package_id = Column(Integer, ForeignKey("packages.id"), nullable=True, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True, index=True)  # expense invoices only
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)  # income invoices only
    type = Column(String(10), nullable=False, index=True)  # expense, income
    category = Column(String(20), nullable=False, default="other")  # airline, hotel, tolls, transport, activity, other
    merchant = Column(String, nullable=True)
    amount = Column(Numeric(12, 2), nullable=True)  # Null until extracted
    currency = Column(String(3), nullable=False, default=DEFAULT_CURRENCY)
    payment_status = Column(String(20), nullable=False, default="pending", index=True)  # paid, pending, overdue, cancelled
    invoice_date = Column(Date, nullable=True, index=True)
    due_date = Column(Date, nullable=True)
    file_path = Column(String, nullable=True)
    file_name = Column(String, nullable=True)
    extracted_data = Column(JSON, nullable=True)  # Finished record from the extraction service
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    package = relationship("Package", back_populates="invoices")
    supplier = relationship("Supplier", back_populates="invoices")
    customer = relationship("Customer", back_populates="invoices")
    matches = relationship("InvoiceTransactionMatch", back_populates="invoice")
