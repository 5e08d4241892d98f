from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Date, Boolean
from sqlalchemy.orm import relationship
from travel_ledger.database import Base
from travel_ledger.models.timestamps import utcnow


class BankTransaction(Base):
    __tablename__ = "bank_transactions"

    id = Column(Integer, primary_key=True, index=True)
    transaction_date = Column(Date, nullable=False, index=True)
    description = Column(String, nullable=False, default="")
    amount = Column(Numeric(12, 2), nullable=False)  # Signed: negative is money out
    package_id = Column(Integer, ForeignKey("packages.id"), nullable=True, index=True)
    needs_invoice = Column(Boolean, nullable=False, default=True)
    status = Column(String(20), nullable=False, default="pending", index=True)  # pending, matched, ignored
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Optimistic versioning: concurrent writers on a stale row fail with StaleDataError
    __mapper_args__ = {"version_id_col": version}

    # Relationships
    package = relationship("Package")
    matches = relationship("InvoiceTransactionMatch", back_populates="transaction")
