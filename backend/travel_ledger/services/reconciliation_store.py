"""
Reconciliation Store - validated create/update/query access to the ledger tables.

Every write validates the table's invariants against the merged (old + new)
state before touching the session, then commits once. A failed validation
leaves the database and the session untouched.
"""
import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Type, TypeVar
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from travel_ledger.errors import ConflictError, EntityValidationError, InvalidStateError, NotFoundError
from travel_ledger.models.bank_transaction import BankTransaction
from travel_ledger.models.enums import (
    PACKAGE_STATUS_ORDER,
    InvoiceCategory,
    InvoiceType,
    MatchStatus,
    PackageStatus,
    PaymentStatus,
    TransactionStatus,
)
from travel_ledger.models.export_log import ExportLog
from travel_ledger.models.invoice import DEFAULT_CURRENCY, Invoice
from travel_ledger.models.invoice_transaction_match import InvoiceTransactionMatch
from travel_ledger.models.package import Package
from travel_ledger.models.party import Customer, Supplier
from travel_ledger.models.timestamps import utcnow
from travel_ledger.schemas.invoice import ExtractedData, InvoiceCreate, InvoiceUpdate
from travel_ledger.schemas.package import PackageCreate, PackageUpdate
from travel_ledger.schemas.party import CustomerCreate, SupplierCreate
from travel_ledger.schemas.transaction import TransactionCreate, TransactionUpdate

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


def _enum(enum_cls: Type[E], value, invariant: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise EntityValidationError(invariant, f"{value!r} is not one of: {allowed}")


def _non_empty(value: Optional[str], invariant: str, label: str) -> str:
    if value is None or not value.strip():
        raise EntityValidationError(invariant, f"{label} must not be empty")
    return value.strip()


class ReconciliationStore:
    """Session-bound gateway to packages, parties, invoices, transactions, matches and export logs"""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Commit helper
    # ------------------------------------------------------------------

    def _commit(self, *entities):
        """Commit the pending write; storage failures roll back and propagate unchanged."""
        for entity in entities:
            if hasattr(entity, "updated_at"):
                entity.updated_at = utcnow()
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            logger.warning("Concurrent modification detected while committing ledger write")
            raise ConflictError("The record was modified concurrently; reload and retry")
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Storage failure while committing ledger write", exc_info=True)
            raise
        for entity in entities:
            self.db.refresh(entity)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_package(self, package_id: int) -> Package:
        package = self.db.query(Package).filter(Package.id == package_id).first()
        if not package:
            raise NotFoundError("Package", package_id)
        return package

    def get_supplier(self, supplier_id: int) -> Supplier:
        supplier = self.db.query(Supplier).filter(Supplier.id == supplier_id).first()
        if not supplier:
            raise NotFoundError("Supplier", supplier_id)
        return supplier

    def get_customer(self, customer_id: int) -> Customer:
        customer = self.db.query(Customer).filter(Customer.id == customer_id).first()
        if not customer:
            raise NotFoundError("Customer", customer_id)
        return customer

    def get_invoice(self, invoice_id: int) -> Invoice:
        invoice = self.db.query(Invoice).filter(Invoice.id == invoice_id).first()
        if not invoice:
            raise NotFoundError("Invoice", invoice_id)
        return invoice

    def get_transaction(self, transaction_id: int) -> BankTransaction:
        transaction = self.db.query(BankTransaction).filter(BankTransaction.id == transaction_id).first()
        if not transaction:
            raise NotFoundError("Transaction", transaction_id)
        return transaction

    def get_match(self, match_id: UUID) -> InvoiceTransactionMatch:
        match = self.db.query(InvoiceTransactionMatch).filter(InvoiceTransactionMatch.id == match_id).first()
        if not match:
            raise NotFoundError("Match", match_id)
        return match

    def _require_reference(self, model, entity_id: Optional[int], invariant: str, label: str):
        if entity_id is None:
            return
        exists = self.db.query(model.id).filter(model.id == entity_id).first()
        if not exists:
            raise EntityValidationError(invariant, f"{label} {entity_id} does not exist")

    # ------------------------------------------------------------------
    # Packages
    # ------------------------------------------------------------------

    def _validate_package(self, values: Dict) -> Dict:
        values["client_name"] = _non_empty(values.get("client_name"), "package.client_name", "Client name")
        values["status"] = _enum(PackageStatus, values.get("status"), "package.status").value
        if values.get("start_date") is None or values.get("end_date") is None:
            raise EntityValidationError("package.date_order", "start_date and end_date are required")
        if values["start_date"] > values["end_date"]:
            raise EntityValidationError(
                "package.date_order",
                f"start_date {values['start_date']} is after end_date {values['end_date']}",
            )
        margin = Decimal(str(values.get("target_margin_percent") or 0))
        if margin < 0 or margin >= 100:
            raise EntityValidationError(
                "package.target_margin_percent",
                f"Target margin {margin}% must be within [0, 100)",
            )
        values["target_margin_percent"] = margin
        self._require_reference(Customer, values.get("customer_id"), "package.customer_id", "Customer")
        return values

    def create_package(self, data: PackageCreate) -> Package:
        values = self._validate_package(data.model_dump())
        package = Package(**values)
        self.db.add(package)
        self._commit(package)
        logger.info(f"Created package {package.id} for {package.client_name}")
        return package

    def update_package(self, package_id: int, data: PackageUpdate) -> Package:
        package = self.get_package(package_id)
        changes = data.model_dump(exclude_unset=True)
        merged = {
            "client_name": package.client_name,
            "customer_id": package.customer_id,
            "start_date": package.start_date,
            "end_date": package.end_date,
            "status": package.status,
            "target_margin_percent": package.target_margin_percent,
        }
        merged.update(changes)
        values = self._validate_package(merged)

        current = PackageStatus(package.status)
        target = PackageStatus(values["status"])
        if PACKAGE_STATUS_ORDER[target] < PACKAGE_STATUS_ORDER[current]:
            raise EntityValidationError(
                "package.status_forward_only",
                f"Package status cannot move from {current.value} back to {target.value}",
            )

        for field in changes:
            setattr(package, field, values[field])
        self._commit(package)
        return package

    def list_packages(self, status: Optional[PackageStatus] = None) -> List[Package]:
        query = self.db.query(Package)
        if status:
            query = query.filter(Package.status == PackageStatus(status).value)
        return query.order_by(Package.start_date.desc(), Package.id.desc()).all()

    def packages_touching(self, start: date, end: date) -> List[Package]:
        """Packages whose trip overlaps [start, end] or that hold an invoice dated inside it."""
        with_invoices = self.db.query(Invoice.package_id).filter(
            Invoice.package_id.isnot(None),
            Invoice.invoice_date >= start,
            Invoice.invoice_date <= end,
        )
        return self.db.query(Package).filter(
            or_(
                (Package.start_date <= end) & (Package.end_date >= start),
                Package.id.in_(with_invoices),
            )
        ).order_by(Package.id).all()

    # ------------------------------------------------------------------
    # Suppliers / customers
    # ------------------------------------------------------------------

    def create_supplier(self, data: SupplierCreate) -> Supplier:
        values = data.model_dump()
        values["name"] = _non_empty(values.get("name"), "supplier.name", "Supplier name")
        supplier = Supplier(**values)
        self.db.add(supplier)
        self._commit(supplier)
        logger.info(f"Created supplier {supplier.id}: {supplier.name}")
        return supplier

    def create_customer(self, data: CustomerCreate) -> Customer:
        values = data.model_dump()
        values["name"] = _non_empty(values.get("name"), "customer.name", "Customer name")
        customer = Customer(**values)
        self.db.add(customer)
        self._commit(customer)
        logger.info(f"Created customer {customer.id}: {customer.name}")
        return customer

    def list_suppliers(self) -> List[Supplier]:
        return self.db.query(Supplier).order_by(Supplier.name).all()

    def list_customers(self) -> List[Customer]:
        return self.db.query(Customer).order_by(Customer.name).all()

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    def _validate_invoice(self, values: Dict) -> Dict:
        invoice_type = _enum(InvoiceType, values.get("type"), "invoice.type")
        values["type"] = invoice_type.value
        values["category"] = _enum(InvoiceCategory, values.get("category"), "invoice.category").value
        values["payment_status"] = _enum(PaymentStatus, values.get("payment_status"), "invoice.payment_status").value

        amount = values.get("amount")
        if amount is not None and Decimal(str(amount)) < 0:
            raise EntityValidationError("invoice.amount_non_negative", f"Invoice amount {amount} must be >= 0")

        currency = (values.get("currency") or "").strip().upper()
        if len(currency) != 3:
            raise EntityValidationError("invoice.currency", f"Currency {values.get('currency')!r} must be a 3-letter code")
        values["currency"] = currency

        invoice_date = values.get("invoice_date")
        due_date = values.get("due_date")
        if invoice_date and due_date and due_date < invoice_date:
            raise EntityValidationError(
                "invoice.date_order",
                f"due_date {due_date} is before invoice_date {invoice_date}",
            )

        # Expense invoices relate to suppliers, income invoices to customers, never both
        if invoice_type == InvoiceType.EXPENSE and values.get("customer_id") is not None:
            raise EntityValidationError("invoice.party", "Expense invoices cannot reference a customer")
        if invoice_type == InvoiceType.INCOME and values.get("supplier_id") is not None:
            raise EntityValidationError("invoice.party", "Income invoices cannot reference a supplier")

        self._require_reference(Package, values.get("package_id"), "invoice.package_id", "Package")
        self._require_reference(Supplier, values.get("supplier_id"), "invoice.supplier_id", "Supplier")
        self._require_reference(Customer, values.get("customer_id"), "invoice.customer_id", "Customer")
        return values

    def create_invoice(self, data: InvoiceCreate) -> Invoice:
        values = data.model_dump(exclude={"extracted_data"})
        extracted = data.extracted_data
        if extracted is not None:
            values = self._merge_extracted(values, extracted)
        if values.get("currency") is None:
            values["currency"] = DEFAULT_CURRENCY
        values = self._validate_invoice(values)
        invoice = Invoice(**values)
        if extracted is not None:
            invoice.extracted_data = extracted.model_dump(mode="json")
        self.db.add(invoice)
        self._commit(invoice)
        logger.info(f"Created {invoice.type} invoice {invoice.id} (amount={invoice.amount} {invoice.currency})")
        return invoice

    def _invoice_values(self, invoice: Invoice) -> Dict:
        return {
            "type": invoice.type,
            "category": invoice.category,
            "package_id": invoice.package_id,
            "supplier_id": invoice.supplier_id,
            "customer_id": invoice.customer_id,
            "merchant": invoice.merchant,
            "amount": invoice.amount,
            "currency": invoice.currency,
            "payment_status": invoice.payment_status,
            "invoice_date": invoice.invoice_date,
            "due_date": invoice.due_date,
            "file_path": invoice.file_path,
            "file_name": invoice.file_name,
        }

    def update_invoice(self, invoice_id: int, data: InvoiceUpdate) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        changes = data.model_dump(exclude_unset=True)
        merged = self._invoice_values(invoice)
        merged.update(changes)
        values = self._validate_invoice(merged)
        for field in changes:
            setattr(invoice, field, values[field])
        self._commit(invoice)
        return invoice

    def set_payment_status(self, invoice_id: int, payment_status: PaymentStatus) -> Invoice:
        status = _enum(PaymentStatus, payment_status, "invoice.payment_status")
        return self.update_invoice(invoice_id, InvoiceUpdate(payment_status=status))

    def _merge_extracted(self, values: Dict, extracted: ExtractedData) -> Dict:
        """Fill still-empty invoice fields from an extraction record."""
        fill = {
            "merchant": extracted.merchant,
            "amount": extracted.amount,
            "invoice_date": extracted.date,
            "currency": extracted.currency,
        }
        for field, value in fill.items():
            if values.get(field) is None and value is not None:
                values[field] = value
        if extracted.category is not None and values.get("category") in (None, InvoiceCategory.OTHER.value):
            values["category"] = extracted.category
        return values

    def attach_extracted_data(self, invoice_id: int, extracted) -> Invoice:
        """
        Attach a finished extraction record to an invoice.

        Args:
            invoice_id: Invoice ID
            extracted: ExtractedData or a plain dict in the same shape

        Returns:
            The updated invoice
        """
        invoice = self.get_invoice(invoice_id)
        if not isinstance(extracted, ExtractedData):
            try:
                extracted = ExtractedData.model_validate(extracted)
            except PydanticValidationError as e:
                raise EntityValidationError("extracted_data", f"Invalid extraction record: {e}")
        merged = self._merge_extracted(self._invoice_values(invoice), extracted)
        values = self._validate_invoice(merged)
        for field, value in values.items():
            setattr(invoice, field, value)
        invoice.extracted_data = extracted.model_dump(mode="json")
        self._commit(invoice)
        logger.info(f"Attached extracted data to invoice {invoice.id} (confidence={extracted.confidence})")
        return invoice

    def invoices_for_package(
        self,
        package_id: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Invoice]:
        """Invoices of a package, optionally restricted to invoice_date within [start, end]."""
        query = self.db.query(Invoice).filter(Invoice.package_id == package_id)
        if start is not None:
            query = query.filter(Invoice.invoice_date >= start)
        if end is not None:
            query = query.filter(Invoice.invoice_date <= end)
        return query.order_by(Invoice.invoice_date, Invoice.id).all()

    def list_invoices(
        self,
        package_id: Optional[int] = None,
        invoice_type: Optional[InvoiceType] = None,
        payment_status: Optional[PaymentStatus] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Invoice]:
        query = self.db.query(Invoice)
        if package_id is not None:
            query = query.filter(Invoice.package_id == package_id)
        if invoice_type:
            query = query.filter(Invoice.type == InvoiceType(invoice_type).value)
        if payment_status:
            query = query.filter(Invoice.payment_status == PaymentStatus(payment_status).value)
        if start is not None:
            query = query.filter(Invoice.invoice_date >= start)
        if end is not None:
            query = query.filter(Invoice.invoice_date <= end)
        return query.order_by(Invoice.invoice_date.desc(), Invoice.id.desc()).all()

    # ------------------------------------------------------------------
    # Bank transactions
    # ------------------------------------------------------------------

    def create_transaction(self, data: TransactionCreate) -> BankTransaction:
        values = data.model_dump()
        self._require_reference(Package, values.get("package_id"), "transaction.package_id", "Package")
        transaction = BankTransaction(status=TransactionStatus.PENDING.value, **values)
        self.db.add(transaction)
        self._commit(transaction)
        logger.info(f"Created transaction {transaction.id} ({transaction.amount} on {transaction.transaction_date})")
        return transaction

    def update_transaction(self, transaction_id: int, data: TransactionUpdate) -> BankTransaction:
        """
        Update descriptive fields, the package link, needs_invoice or the pending/ignored status.

        ``matched`` is reachable only through a confirmed match, and a matched
        transaction's status cannot be changed here.
        """
        transaction = self.get_transaction(transaction_id)
        changes = data.model_dump(exclude_unset=True)

        current = TransactionStatus(transaction.status)
        status = current
        if "status" in changes and changes["status"] is not None:
            status = _enum(TransactionStatus, changes["status"], "transaction.status")
            if status == TransactionStatus.MATCHED and current != TransactionStatus.MATCHED:
                raise EntityValidationError(
                    "transaction.matched_requires_confirmed_match",
                    "A transaction becomes matched only by confirming a match",
                )
            if current == TransactionStatus.MATCHED and status != TransactionStatus.MATCHED:
                raise InvalidStateError(
                    f"Transaction {transaction_id} has a confirmed match; unconfirming is an administrative action"
                )

        needs_invoice = changes.get("needs_invoice", transaction.needs_invoice)
        if status == TransactionStatus.IGNORED:
            if changes.get("needs_invoice") is True:
                raise EntityValidationError(
                    "transaction.ignored_needs_no_invoice",
                    "An ignored transaction cannot need an invoice",
                )
            needs_invoice = False

        if "package_id" in changes:
            self._require_reference(Package, changes["package_id"], "transaction.package_id", "Package")
            transaction.package_id = changes["package_id"]
        if "description" in changes and changes["description"] is not None:
            transaction.description = changes["description"]
        transaction.status = status.value
        transaction.needs_invoice = needs_invoice
        self._commit(transaction)
        return transaction

    def ignore_transaction(self, transaction_id: int) -> BankTransaction:
        return self.update_transaction(transaction_id, TransactionUpdate(status=TransactionStatus.IGNORED))

    def pending_transactions(self, start: Optional[date] = None, end: Optional[date] = None) -> List[BankTransaction]:
        """Transactions with status = pending and transaction_date within [start, end]."""
        query = self.db.query(BankTransaction).filter(BankTransaction.status == TransactionStatus.PENDING.value)
        if start is not None:
            query = query.filter(BankTransaction.transaction_date >= start)
        if end is not None:
            query = query.filter(BankTransaction.transaction_date <= end)
        return query.order_by(BankTransaction.transaction_date, BankTransaction.id).all()

    def list_transactions(
        self,
        status: Optional[TransactionStatus] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[BankTransaction]:
        query = self.db.query(BankTransaction)
        if status:
            query = query.filter(BankTransaction.status == TransactionStatus(status).value)
        if start is not None:
            query = query.filter(BankTransaction.transaction_date >= start)
        if end is not None:
            query = query.filter(BankTransaction.transaction_date <= end)
        return query.order_by(BankTransaction.transaction_date.desc(), BankTransaction.id.desc()).all()

    # ------------------------------------------------------------------
    # Matches
    # ------------------------------------------------------------------

    def list_matches(
        self,
        transaction_id: Optional[int] = None,
        invoice_id: Optional[int] = None,
        status: Optional[MatchStatus] = None,
    ) -> List[InvoiceTransactionMatch]:
        query = self.db.query(InvoiceTransactionMatch)
        if transaction_id is not None:
            query = query.filter(InvoiceTransactionMatch.transaction_id == transaction_id)
        if invoice_id is not None:
            query = query.filter(InvoiceTransactionMatch.invoice_id == invoice_id)
        if status:
            query = query.filter(InvoiceTransactionMatch.status == MatchStatus(status).value)
        return query.order_by(InvoiceTransactionMatch.created_at).all()

    def confirmed_invoice_ids(self) -> List[int]:
        rows = self.db.query(InvoiceTransactionMatch.invoice_id).filter(
            InvoiceTransactionMatch.status == MatchStatus.CONFIRMED.value
        ).all()
        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Export logs
    # ------------------------------------------------------------------

    def create_export_log(self, month_year: str, packages_included: int, invoices_included: int, sent_at=None) -> ExportLog:
        if packages_included < 0 or invoices_included < 0:
            raise EntityValidationError("export_log.counts", "Export counts must be >= 0")
        log = ExportLog(
            month_year=month_year,
            packages_included=packages_included,
            invoices_included=invoices_included,
        )
        if sent_at is not None:
            log.sent_at = sent_at
        self.db.add(log)
        self._commit(log)
        return log

    def list_export_logs(self, month_year: Optional[str] = None) -> List[ExportLog]:
        query = self.db.query(ExportLog)
        if month_year:
            query = query.filter(ExportLog.month_year == month_year)
        return query.order_by(ExportLog.sent_at.desc()).all()
