from travel_ledger.models.package import Package
from travel_ledger.models.party import Supplier, Customer
from travel_ledger.models.invoice import Invoice
from travel_ledger.models.bank_transaction import BankTransaction
from travel_ledger.models.invoice_transaction_match import InvoiceTransactionMatch
from travel_ledger.models.export_log import ExportLog

__all__ = ["Package", "Supplier", "Customer", "Invoice", "BankTransaction", "InvoiceTransactionMatch", "ExportLog"]
