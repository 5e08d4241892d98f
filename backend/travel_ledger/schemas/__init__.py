from travel_ledger.schemas.period import PeriodResponse, AvailableMonthsResponse
from travel_ledger.schemas.package import PackageCreate, PackageUpdate, PackageResponse
from travel_ledger.schemas.party import SupplierCreate, CustomerCreate, SupplierResponse, CustomerResponse
from travel_ledger.schemas.invoice import ExtractedData, InvoiceCreate, InvoiceUpdate, InvoiceResponse, PaymentStatusUpdate
from travel_ledger.schemas.transaction import TransactionCreate, TransactionUpdate, TransactionResponse
from travel_ledger.schemas.matching import MatchProposeRequest, MatchActionRequest, MatchResponse, MatchSuggestion
from travel_ledger.schemas.ledger import LedgerSummary, PeriodLedgerSummary, ReceivablesReport
from travel_ledger.schemas.export import ExportRequest, ExportLogResponse

__all__ = [
    "PeriodResponse",
    "AvailableMonthsResponse",
    "PackageCreate",
    "PackageUpdate",
    "PackageResponse",
    "SupplierCreate",
    "CustomerCreate",
    "SupplierResponse",
    "CustomerResponse",
    "ExtractedData",
    "InvoiceCreate",
    "InvoiceUpdate",
    "InvoiceResponse",
    "PaymentStatusUpdate",
    "TransactionCreate",
    "TransactionUpdate",
    "TransactionResponse",
    "MatchProposeRequest",
    "MatchActionRequest",
    "MatchResponse",
    "MatchSuggestion",
    "LedgerSummary",
    "PeriodLedgerSummary",
    "ReceivablesReport",
    "ExportRequest",
    "ExportLogResponse",
]
