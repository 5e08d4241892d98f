"""
Package Ledger - read-only financial aggregation of a package's invoices.

Summaries are snapshots: nothing here writes to the session.
"""
import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from travel_ledger.config import settings
from travel_ledger.models.enums import InvoiceType, MatchStatus, PaymentStatus
from travel_ledger.models.invoice import Invoice
from travel_ledger.models.invoice_transaction_match import InvoiceTransactionMatch
from travel_ledger.schemas.ledger import LedgerSummary, PeriodLedgerSummary, ReceivableItem, ReceivablesReport
from travel_ledger.services.period_resolver import PeriodWindow
from travel_ledger.services.reconciliation_store import ReconciliationStore

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
OUTSTANDING_STATUSES = (PaymentStatus.PENDING.value, PaymentStatus.OVERDUE.value)


class PackageLedger:
    """Totals, margin and outstanding balances per package"""

    def __init__(self, db: Session):
        self.db = db
        self.store = ReconciliationStore(db)

    def summarize(self, package_id: int, window: Optional[PeriodWindow] = None) -> LedgerSummary:
        """
        Aggregate a package's invoices, optionally scoped to a period window.

        Invoices without an amount are counted as pending extraction and left
        out of every sum. Cancelled invoices are counted but never summed.
        When a window is given, invoices without an invoice_date fall outside it.

        Args:
            package_id: Package ID
            window: PeriodWindow from the period resolver, or None for all time

        Returns:
            Frozen LedgerSummary
        """
        package = self.store.get_package(package_id)
        start = window.start_date if window else None
        end = window.end_date if window else None
        invoices = self.store.invoices_for_package(package.id, start, end)

        expense_total = ZERO
        income_total = ZERO
        outstanding_expense = ZERO
        outstanding_income = ZERO
        expense_count = 0
        income_count = 0
        pending_extraction = 0
        cancelled = 0
        by_category: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        currencies = set()

        for invoice in invoices:
            is_expense = invoice.type == InvoiceType.EXPENSE.value
            if is_expense:
                expense_count += 1
            else:
                income_count += 1

            if invoice.payment_status == PaymentStatus.CANCELLED.value:
                cancelled += 1
                continue
            if invoice.amount is None:
                pending_extraction += 1
                continue

            amount = Decimal(invoice.amount)
            currencies.add(invoice.currency)
            outstanding = invoice.payment_status in OUTSTANDING_STATUSES
            if is_expense:
                expense_total += amount
                by_category[invoice.category] += amount
                if outstanding:
                    outstanding_expense += amount
            else:
                income_total += amount
                if outstanding:
                    outstanding_income += amount

        margin = None
        below_target = False
        target = Decimal(package.target_margin_percent or 0)
        if income_total > 0:
            ratio = (income_total - expense_total) / income_total
            # Ratio against a percentage target, compared before rounding
            below_target = ratio * 100 < target
            margin = round(float(ratio), 4)

        if below_target:
            logger.info(f"Package {package.id} margin {margin:.2%} is below target {target}%")

        return LedgerSummary(
            package_id=package.id,
            client_name=package.customer.name if package.customer else package.client_name,
            month_key=window.month_key if window else None,
            start_date=start,
            end_date=end,
            invoice_count=len(invoices),
            expense_count=expense_count,
            income_count=income_count,
            pending_extraction_count=pending_extraction,
            cancelled_count=cancelled,
            expense_total=expense_total,
            income_total=income_total,
            profit=income_total - expense_total,
            realized_margin=margin,
            target_margin_percent=target,
            below_target=below_target,
            outstanding_expense=outstanding_expense,
            outstanding_income=outstanding_income,
            totals_by_category=dict(by_category),
            currencies=sorted(currencies),
        )

    def summarize_period(self, window: PeriodWindow) -> PeriodLedgerSummary:
        """Summaries for every package touched by ``window`` plus their roll-up"""
        packages = self.store.packages_touching(window.start_date, window.end_date)
        summaries: List[LedgerSummary] = [self.summarize(package.id, window) for package in packages]
        return PeriodLedgerSummary(
            month_key=window.month_key,
            start_date=window.start_date,
            end_date=window.end_date,
            package_count=len(summaries),
            invoice_count=sum(s.invoice_count for s in summaries),
            expense_total=sum((s.expense_total for s in summaries), ZERO),
            income_total=sum((s.income_total for s in summaries), ZERO),
            packages=summaries,
        )

    def overdue_receivables(self, as_of: Optional[date] = None, days_threshold: Optional[int] = None) -> ReceivablesReport:
        """
        Unpaid income invoices at least ``days_threshold`` days past their reference date.

        The reference date is the due date when set, otherwise the invoice date.
        An invoice with a confirmed match counts as collected.
        """
        if as_of is None:
            as_of = date.today()
        if days_threshold is None:
            days_threshold = settings.receivables_overdue_days

        confirmed = select(InvoiceTransactionMatch.invoice_id).where(
            InvoiceTransactionMatch.status == MatchStatus.CONFIRMED.value
        )
        invoices = self.db.query(Invoice).filter(
            Invoice.type == InvoiceType.INCOME.value,
            Invoice.amount.isnot(None),
            Invoice.payment_status.in_(OUTSTANDING_STATUSES),
            Invoice.id.notin_(confirmed),
        ).order_by(Invoice.id).all()

        items: List[ReceivableItem] = []
        buckets = {30: 0, 60: 0, 90: 0}
        for invoice in invoices:
            reference = invoice.due_date or invoice.invoice_date
            if reference is None:
                continue
            days = (as_of - reference).days
            if days < days_threshold:
                continue
            if days >= 90:
                buckets[90] += 1
            elif days >= 60:
                buckets[60] += 1
            elif days >= 30:
                buckets[30] += 1
            items.append(ReceivableItem(
                invoice_id=invoice.id,
                customer_id=invoice.customer_id,
                customer_name=invoice.customer.name if invoice.customer else None,
                package_id=invoice.package_id,
                package_name=invoice.package.client_name if invoice.package else None,
                amount=Decimal(invoice.amount),
                currency=invoice.currency,
                reference_date=reference,
                days_past_due=days,
            ))

        items.sort(key=lambda item: item.days_past_due, reverse=True)
        return ReceivablesReport(
            as_of=as_of,
            days_threshold=days_threshold,
            total=len(items),
            overdue_30=buckets[30],
            overdue_60=buckets[60],
            overdue_90_plus=buckets[90],
            total_amount=sum((item.amount for item in items), ZERO),
            items=items,
        )
