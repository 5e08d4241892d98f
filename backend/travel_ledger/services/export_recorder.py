"""
Export Recorder - append-only history of monthly send events.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from travel_ledger.errors import InvalidInputError
from travel_ledger.models.export_log import ExportLog
from travel_ledger.services.package_ledger import PackageLedger
from travel_ledger.services.period_resolver import PeriodWindow, parse_month_key
from travel_ledger.services.reconciliation_store import ReconciliationStore

logger = logging.getLogger(__name__)


class ExportRecorder:
    def __init__(self, db: Session):
        self.db = db
        self.store = ReconciliationStore(db)
        self.ledger = PackageLedger(db)

    def record(self, window: PeriodWindow, sent_at: Optional[datetime] = None) -> ExportLog:
        """
        Snapshot the package and invoice counts of a month and log the send.

        Every call appends a new row, so exporting the same month twice leaves
        two entries whose counts reflect the data at each call.

        Args:
            window: Month window from the period resolver
            sent_at: Send time (defaults to now)

        Returns:
            The new ExportLog
        """
        if not window.is_month:
            raise InvalidInputError(f"Exports cover whole months, got a {window.view_mode.value} window")

        summary = self.ledger.summarize_period(window)
        log = self.store.create_export_log(
            month_year=window.month_key,
            packages_included=summary.package_count,
            invoices_included=summary.invoice_count,
            sent_at=sent_at,
        )
        logger.info(
            f"Recorded export {log.id} for {log.month_year}: "
            f"{log.packages_included} packages, {log.invoices_included} invoices"
        )
        return log

    def list_exports(self, month_key: Optional[str] = None) -> List[ExportLog]:
        """Export history, newest first; ``month_key`` narrows it to one month"""
        if month_key is not None:
            parse_month_key(month_key)
        return self.store.list_export_logs(month_key)
