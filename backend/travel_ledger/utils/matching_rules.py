from typing import List, Optional, Tuple
from datetime import date
from decimal import Decimal
import re
import unicodedata
from travel_ledger.config import settings

# Words shorter than this carry no signal ("SA", "of", card suffixes)
MIN_WORD_LENGTH = 3

AMOUNT_WEIGHT = 0.40
DATE_WEIGHT = 0.35
TEXT_WEIGHT = 0.25
SAME_PACKAGE_BONUS = 0.05


def normalize_text(text: Optional[str]) -> str:
    """Lowercase, strip diacritics (Greek tonos included) and punctuation."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return re.sub(r"[^\w\s]", " ", stripped).strip()


def text_similarity(left: Optional[str], right: Optional[str]) -> float:
    """
    Word-overlap (Jaccard) similarity of two descriptions

    Returns:
        Score between 0.0 and 1.0
    """
    words_left = {w for w in normalize_text(left).split() if len(w) >= MIN_WORD_LENGTH}
    words_right = {w for w in normalize_text(right).split() if len(w) >= MIN_WORD_LENGTH}
    if not words_left or not words_right:
        return 0.0
    return len(words_left & words_right) / len(words_left | words_right)


def amount_score(transaction_amount: Decimal, invoice_amount: Decimal) -> Tuple[float, Optional[str]]:
    """
    Score how closely a transaction amount matches an invoice amount.
    Signs are ignored: bank debits are negative, invoice amounts are not.

    Returns:
        (score, reason) tuple; score 0.0 means "too far apart to pair"
    """
    txn_abs = abs(Decimal(str(transaction_amount)))
    inv_abs = abs(Decimal(str(invoice_amount)))

    if txn_abs == inv_abs:
        return 1.0, "Exact amount"

    largest = max(txn_abs, inv_abs)
    if largest == 0:
        return 0.0, None
    percent_diff = abs(txn_abs - inv_abs) / largest

    if percent_diff <= Decimal("0.02"):
        return 0.95, "Amount within 2% (bank fees)"
    if percent_diff <= Decimal("0.05"):
        return 0.7, "Amount within 5%"
    if percent_diff <= Decimal("0.10"):
        return 0.3, "Amount within 10%"
    return 0.0, None


def date_score(transaction_date: date, invoice_date: date) -> Tuple[float, Optional[str]]:
    """
    Score date proximity: 1.0 on the same day, fading to 0 beyond two weeks

    Returns:
        (score, reason) tuple
    """
    diff_days = abs((transaction_date - invoice_date).days)
    if diff_days == 0:
        return 1.0, "Same date"
    if diff_days <= 3:
        score = 0.9
    elif diff_days <= 5:
        score = 0.7
    elif diff_days <= 7:
        score = 0.5
    elif diff_days <= 14:
        score = 0.3
    else:
        return 0.0, None
    return score, f"Date {diff_days} days apart"


def within_amount_tolerance(
    transaction_amount: Decimal,
    invoice_amount: Optional[Decimal],
    tolerance: Optional[float] = None
) -> bool:
    """Check amounts are equal within an absolute tolerance (currency units)"""
    if invoice_amount is None:
        return False
    if tolerance is None:
        tolerance = settings.match_amount_tolerance
    difference = abs(abs(Decimal(str(transaction_amount))) - abs(Decimal(str(invoice_amount))))
    return difference <= Decimal(str(tolerance))


def within_date_window(
    transaction_date: date,
    invoice_date: Optional[date],
    window_days: Optional[int] = None
) -> bool:
    if invoice_date is None:
        return False
    if window_days is None:
        window_days = settings.match_date_window_days
    return abs((transaction_date - invoice_date).days) <= window_days


def is_candidate(
    transaction_amount: Decimal,
    transaction_date: date,
    invoice_amount: Optional[Decimal],
    invoice_date: Optional[date],
    window_days: Optional[int] = None,
    tolerance: Optional[float] = None
) -> bool:
    """Hard filter: date within the configured window AND amount equal within tolerance"""
    return (
        within_date_window(transaction_date, invoice_date, window_days)
        and within_amount_tolerance(transaction_amount, invoice_amount, tolerance)
    )


def confidence_level(score: float) -> str:
    if score >= 0.9:
        return "high"
    if score >= 0.7:
        return "medium"
    return "low"


def score_pair(
    transaction_amount: Decimal,
    transaction_date: date,
    transaction_description: Optional[str],
    invoice_amount: Optional[Decimal],
    invoice_date: Optional[date],
    invoice_text: Optional[str],
    same_package: bool = False
) -> Tuple[float, List[str]]:
    """
    Blend amount, date and description signals into one confidence.

    Only signals that fire contribute to the weight sum, so an invoice with no
    date is judged on amount and text alone. An amount more than 10% away
    disqualifies the pair outright.

    Returns:
        (confidence, reasons) tuple; confidence 0.0 means "not a candidate"
    """
    if invoice_amount is None:
        return 0.0, []

    reasons: List[str] = []
    total = 0.0
    weight_sum = 0.0

    score, reason = amount_score(transaction_amount, invoice_amount)
    if score == 0:
        return 0.0, []
    total += score * AMOUNT_WEIGHT
    weight_sum += AMOUNT_WEIGHT
    reasons.append(reason)

    if invoice_date is not None:
        score, reason = date_score(transaction_date, invoice_date)
        if score > 0:
            total += score * DATE_WEIGHT
            weight_sum += DATE_WEIGHT
            reasons.append(reason)

    similarity = text_similarity(transaction_description, invoice_text)
    if similarity > 0:
        total += similarity * TEXT_WEIGHT
        weight_sum += TEXT_WEIGHT
        if similarity >= 0.5:
            reasons.append("Name match")
        elif similarity >= 0.3:
            reasons.append("Partial name match")

    confidence = total / weight_sum if weight_sum > 0 else 0.0
    if same_package:
        confidence = min(1.0, confidence + SAME_PACKAGE_BONUS)
        reasons.append("Same package")
    return round(confidence, 4), reasons
