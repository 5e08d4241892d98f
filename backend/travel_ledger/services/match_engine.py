"""
Match Engine - proposes, confirms and rejects invoice/transaction matches.

Per (invoice, transaction) pair the lifecycle is:

    none -> pending -> confirmed
                    -> rejected   (pair may be proposed again under a new id)

Confirmation is always an explicit caller decision; the suggestion heuristic
only ever creates pending proposals. Writers on the same transaction or
invoice are serialized through the row lock registry, and the confirmed-only
unique indexes back the invariant up at the database level.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Set
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from travel_ledger.config import settings
from travel_ledger.errors import ConflictError, InvalidStateError, LedgerError, NotFoundError
from travel_ledger.models.bank_transaction import BankTransaction
from travel_ledger.models.enums import (
    InvoiceType,
    MatchedBy,
    MatchStatus,
    PaymentStatus,
    TransactionStatus,
)
from travel_ledger.models.invoice import Invoice
from travel_ledger.models.invoice_transaction_match import InvoiceTransactionMatch
from travel_ledger.models.timestamps import utcnow
from travel_ledger.schemas.matching import AutoProposeResponse, MatchSuggestion
from travel_ledger.services.period_resolver import PeriodWindow
from travel_ledger.services.reconciliation_store import ReconciliationStore
from travel_ledger.services.row_locks import RowLockRegistry, invoice_key, row_locks, transaction_key
from travel_ledger.utils.matching_rules import confidence_level, is_candidate, score_pair

logger = logging.getLogger(__name__)

# Invoices further than this from the transaction date are not scored at all
SUGGESTION_LOOKBACK_DAYS = 30


def _invoice_text(invoice: Invoice) -> str:
    """Names a bank description is likely to mention for this invoice"""
    party = invoice.supplier or invoice.customer
    return " ".join(filter(None, [invoice.merchant, party.name if party else None]))


class MatchEngine:
    """Match state machine bound to one database session"""

    def __init__(self, db: Session, locks: Optional[RowLockRegistry] = None):
        self.db = db
        self.store = ReconciliationStore(db)
        self.locks = locks or row_locks

    # ------------------------------------------------------------------
    # Locked reads
    # ------------------------------------------------------------------

    def _lock_match(self, match_id: UUID) -> InvoiceTransactionMatch:
        match = (
            self.db.query(InvoiceTransactionMatch)
            .filter(InvoiceTransactionMatch.id == match_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not match:
            raise NotFoundError("Match", match_id)
        return match

    def _lock_transaction(self, transaction_id: int) -> BankTransaction:
        transaction = (
            self.db.query(BankTransaction)
            .filter(BankTransaction.id == transaction_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not transaction:
            raise NotFoundError("Transaction", transaction_id)
        return transaction

    def _lock_invoice(self, invoice_id: int) -> Invoice:
        invoice = (
            self.db.query(Invoice)
            .filter(Invoice.id == invoice_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not invoice:
            raise NotFoundError("Invoice", invoice_id)
        return invoice

    def _ensure_no_confirmed(self, invoice_id: int, transaction_id: int):
        confirmed = (
            self.db.query(InvoiceTransactionMatch)
            .filter(
                InvoiceTransactionMatch.status == MatchStatus.CONFIRMED.value,
                (InvoiceTransactionMatch.transaction_id == transaction_id)
                | (InvoiceTransactionMatch.invoice_id == invoice_id),
            )
            .populate_existing()
            .first()
        )
        if confirmed is None:
            return
        if confirmed.transaction_id == transaction_id:
            raise ConflictError(
                f"Transaction {transaction_id} already has confirmed match {confirmed.id}"
            )
        raise ConflictError(f"Invoice {invoice_id} already has confirmed match {confirmed.id}")

    def _commit_or_conflict(self, match: InvoiceTransactionMatch, *others):
        try:
            self.db.commit()
        except IntegrityError:
            # Another process confirmed a match for the same side first
            self.db.rollback()
            raise ConflictError(f"Match {match.id} conflicts with an existing confirmed match")
        except StaleDataError:
            self.db.rollback()
            raise
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"Storage failure while writing match {match.id}", exc_info=True)
            raise
        self.db.refresh(match)
        for entity in others:
            self.db.refresh(entity)

    def _with_retry(self, operation, description: str):
        """Run ``operation`` again when an optimistic-version check fails."""
        attempts = max(1, settings.optimistic_retry_attempts)
        for attempt in range(1, attempts + 1):
            try:
                return operation()
            except StaleDataError:
                logger.warning(f"Stale row while {description} (attempt {attempt}/{attempts})")
        raise ConflictError(f"Gave up {description} after {attempts} concurrent modifications")

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def propose(
        self,
        invoice_id: int,
        transaction_id: int,
        confidence: Optional[float] = None,
        reasons: Optional[List[str]] = None,
        matched_by: MatchedBy = MatchedBy.USER,
        timeout: Optional[float] = None,
    ) -> InvoiceTransactionMatch:
        """
        Create a pending match between an invoice and a transaction.

        Raises:
            NotFoundError: either side is missing
            ConflictError: either side already has a confirmed match
            InvalidStateError: the transaction is ignored, or the pair is already pending
        """
        try:
            with self.locks.hold(transaction_key(transaction_id), invoice_key(invoice_id), timeout=timeout):
                match = self._propose_locked(invoice_id, transaction_id, confidence, reasons, matched_by)
        except LedgerError as e:
            # Release any row locks taken by the failed attempt
            self.db.rollback()
            logger.warning(f"Proposal refused for invoice {invoice_id} / transaction {transaction_id}: {e}")
            raise

        logger.info(f"Proposed match {match.id}: invoice {invoice_id} <-> transaction {transaction_id}")
        return match

    def _propose_locked(self, invoice_id, transaction_id, confidence, reasons, matched_by) -> InvoiceTransactionMatch:
        self._lock_invoice(invoice_id)
        transaction = self._lock_transaction(transaction_id)
        self._ensure_no_confirmed(invoice_id, transaction_id)

        if transaction.status == TransactionStatus.IGNORED.value:
            raise InvalidStateError(f"Transaction {transaction_id} is ignored and cannot be matched")

        already_pending = (
            self.db.query(InvoiceTransactionMatch.id)
            .filter(
                InvoiceTransactionMatch.invoice_id == invoice_id,
                InvoiceTransactionMatch.transaction_id == transaction_id,
                InvoiceTransactionMatch.status == MatchStatus.PENDING.value,
            )
            .first()
        )
        if already_pending:
            raise InvalidStateError(
                f"Invoice {invoice_id} and transaction {transaction_id} already have pending match {already_pending[0]}"
            )

        match = InvoiceTransactionMatch(
            invoice_id=invoice_id,
            transaction_id=transaction_id,
            status=MatchStatus.PENDING.value,
            confidence_score=Decimal(str(round(confidence, 2))) if confidence is not None else None,
            reasons=reasons,
            matched_by=MatchedBy(matched_by).value,
        )
        self.db.add(match)
        self._commit_or_conflict(match)
        return match

    def confirm(self, match_id: UUID, timeout: Optional[float] = None) -> InvoiceTransactionMatch:
        """
        Confirm a pending match; the transaction becomes matched and stops needing an invoice.

        Raises:
            NotFoundError: the match is missing
            InvalidStateError: the match is not pending, or the transaction is ignored
            ConflictError: either side already has a confirmed match
            LockTimeoutError: the rows could not be locked in time
        """
        match = self.store.get_match(match_id)
        keys = (transaction_key(match.transaction_id), invoice_key(match.invoice_id))

        def _confirm() -> InvoiceTransactionMatch:
            locked = self._lock_match(match_id)
            if locked.status != MatchStatus.PENDING.value:
                raise InvalidStateError(f"Match {match_id} is {locked.status}; only pending matches can be confirmed")

            transaction = self._lock_transaction(locked.transaction_id)
            self._lock_invoice(locked.invoice_id)
            self._ensure_no_confirmed(locked.invoice_id, locked.transaction_id)
            if transaction.status == TransactionStatus.IGNORED.value:
                raise InvalidStateError(f"Transaction {transaction.id} is ignored and cannot be matched")

            now = utcnow()
            locked.status = MatchStatus.CONFIRMED.value
            locked.matched_at = now
            locked.reviewed_at = now
            transaction.status = TransactionStatus.MATCHED.value
            transaction.needs_invoice = False
            transaction.updated_at = now
            self._commit_or_conflict(locked, transaction)
            return locked

        try:
            with self.locks.hold(*keys, timeout=timeout):
                confirmed = self._with_retry(_confirm, f"confirming match {match_id}")
        except LedgerError as e:
            self.db.rollback()
            logger.warning(f"Confirm refused for match {match_id}: {e}")
            raise

        logger.info(f"Confirmed match {match_id}: transaction {confirmed.transaction_id} is now matched")
        return confirmed

    def reject(self, match_id: UUID, timeout: Optional[float] = None) -> InvoiceTransactionMatch:
        """
        Reject a pending match. The row is kept for audit and the transaction is left untouched.

        Raises:
            NotFoundError: the match is missing
            InvalidStateError: the match is not pending
        """
        match = self.store.get_match(match_id)
        keys = (transaction_key(match.transaction_id), invoice_key(match.invoice_id))

        with self.locks.hold(*keys, timeout=timeout):
            locked = self._lock_match(match_id)
            status = locked.status
            if status != MatchStatus.PENDING.value:
                self.db.rollback()
                logger.warning(f"Reject refused for match {match_id}: status is {status}")
                raise InvalidStateError(f"Match {match_id} is {status}; only pending matches can be rejected")
            locked.status = MatchStatus.REJECTED.value
            locked.reviewed_at = utcnow()
            self._commit_or_conflict(locked)

        logger.info(f"Rejected match {match_id}")
        return locked

    # ------------------------------------------------------------------
    # Advisory suggestions
    # ------------------------------------------------------------------

    def _candidate_invoices(self, transaction: BankTransaction) -> List[Invoice]:
        query = self.db.query(Invoice).filter(
            Invoice.amount.isnot(None),
            Invoice.payment_status != PaymentStatus.CANCELLED.value,
        )
        # Money out pays expenses, money in settles income
        if transaction.amount < 0:
            query = query.filter(Invoice.type == InvoiceType.EXPENSE.value)
        elif transaction.amount > 0:
            query = query.filter(Invoice.type == InvoiceType.INCOME.value)

        confirmed = set(self.store.confirmed_invoice_ids())
        already_paired = {
            m.invoice_id
            for m in self.store.list_matches(transaction_id=transaction.id)
            if m.status in (MatchStatus.PENDING.value, MatchStatus.REJECTED.value)
        }
        excluded = confirmed | already_paired

        candidates = []
        for invoice in query.all():
            if invoice.id in excluded:
                continue
            if invoice.invoice_date is not None:
                gap = abs((transaction.transaction_date - invoice.invoice_date).days)
                if gap > SUGGESTION_LOOKBACK_DAYS:
                    continue
            candidates.append(invoice)
        return candidates

    def suggest_for_transaction(
        self,
        transaction_id: int,
        limit: Optional[int] = None,
        min_confidence: Optional[float] = None,
    ) -> List[MatchSuggestion]:
        """
        Rank unmatched invoices that could explain a transaction.

        Returns:
            Suggestions sorted by confidence, highest first
        """
        transaction = self.store.get_transaction(transaction_id)
        if limit is None:
            limit = settings.max_suggestions
        if min_confidence is None:
            min_confidence = settings.match_min_confidence

        suggestions = []
        for invoice in self._candidate_invoices(transaction):
            confidence, reasons = score_pair(
                transaction.amount,
                transaction.transaction_date,
                transaction.description,
                invoice.amount,
                invoice.invoice_date,
                _invoice_text(invoice),
                same_package=bool(transaction.package_id and transaction.package_id == invoice.package_id),
            )
            if confidence <= 0 or confidence < min_confidence:
                continue
            suggestions.append(MatchSuggestion(
                invoice_id=invoice.id,
                transaction_id=transaction.id,
                confidence=confidence,
                confidence_level=confidence_level(confidence),
                reasons=reasons,
                within_window=is_candidate(
                    transaction.amount, transaction.transaction_date, invoice.amount, invoice.invoice_date
                ),
            ))

        suggestions.sort(key=lambda s: (-s.confidence, s.invoice_id))
        return suggestions[:limit]

    def suggest_for_period(self, window: PeriodWindow) -> Dict[int, List[MatchSuggestion]]:
        """Suggestions for every pending transaction dated inside the window."""
        return {
            transaction.id: self.suggest_for_transaction(transaction.id)
            for transaction in self.store.pending_transactions(window.start_date, window.end_date)
        }

    def auto_propose(
        self,
        window: PeriodWindow,
        min_confidence: Optional[float] = None,
        dry_run: bool = False,
    ) -> AutoProposeResponse:
        """
        Propose the best candidate for each pending transaction in the window.

        A proposal needs a confidence at or above the threshold and must pass
        the hard date-window/amount-tolerance filter. Nothing is confirmed.
        """
        if min_confidence is None:
            min_confidence = settings.auto_propose_min_confidence

        transactions = self.store.pending_transactions(window.start_date, window.end_date)
        proposed: List[MatchSuggestion] = []
        used_invoices: Set[int] = set()
        skipped = 0

        for transaction in transactions:
            has_pending = any(
                m.status == MatchStatus.PENDING.value
                for m in self.store.list_matches(transaction_id=transaction.id)
            )
            if has_pending:
                skipped += 1
                continue

            best = next(
                (
                    s for s in self.suggest_for_transaction(transaction.id, min_confidence=min_confidence)
                    if s.within_window and s.invoice_id not in used_invoices
                ),
                None,
            )
            if best is None:
                skipped += 1
                continue

            if not dry_run:
                try:
                    self.propose(
                        best.invoice_id,
                        transaction.id,
                        confidence=best.confidence,
                        reasons=best.reasons,
                        matched_by=MatchedBy.ENGINE,
                    )
                except (ConflictError, InvalidStateError) as e:
                    logger.warning(f"Auto-propose skipped transaction {transaction.id}: {e}")
                    skipped += 1
                    continue
            used_invoices.add(best.invoice_id)
            proposed.append(best)

        logger.info(
            f"Auto-propose for {window.month_key}: {len(proposed)} proposed, {skipped} skipped"
            f"{' (dry run)' if dry_run else ''}"
        )
        return AutoProposeResponse(
            month_key=window.month_key,
            transactions_considered=len(transactions),
            proposed=proposed,
            skipped=skipped,
            dry_run=dry_run,
        )
