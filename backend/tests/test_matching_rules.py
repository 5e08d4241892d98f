from datetime import date
from decimal import Decimal

from travel_ledger.utils.matching_rules import (
    amount_score,
    confidence_level,
    date_score,
    is_candidate,
    normalize_text,
    score_pair,
    text_similarity,
)


def test_normalize_strips_greek_accents():
    assert normalize_text("ΑΕΡΟΠΟΡΙΑ Αιγαίου Α.Ε.") == "αεροπορια αιγαιου α ε"
    assert normalize_text(None) == ""


def test_text_similarity_ignores_short_words():
    assert text_similarity("Aegean Airlines SA", "AEGEAN AIRLINES") == 1.0
    assert text_similarity("Hotel Olympia", "Aegean Airlines") == 0.0
    assert text_similarity("", "Aegean") == 0.0


def test_amount_score_ignores_sign():
    assert amount_score(Decimal("-500.00"), Decimal("500.00")) == (1.0, "Exact amount")
    assert amount_score(Decimal("-510.00"), Decimal("500.00"))[0] == 0.95
    assert amount_score(Decimal("-600.00"), Decimal("500.00")) == (0.0, None)


def test_date_score_fades_with_distance():
    base = date(2024, 3, 5)
    scores = [date_score(date(2024, 3, 5 + days), base)[0] for days in (0, 2, 5, 7, 12, 20)]
    assert scores == [1.0, 0.9, 0.7, 0.5, 0.3, 0.0]


def test_hard_filter_needs_date_window_and_tolerance():
    assert is_candidate(Decimal("-500.00"), date(2024, 3, 6), Decimal("500.00"), date(2024, 3, 5))
    assert is_candidate(Decimal("-500.00"), date(2024, 3, 12), Decimal("500.01"), date(2024, 3, 5))
    assert not is_candidate(Decimal("-500.00"), date(2024, 3, 13), Decimal("500.00"), date(2024, 3, 5))
    assert not is_candidate(Decimal("-500.00"), date(2024, 3, 6), Decimal("500.02"), date(2024, 3, 5))
    assert not is_candidate(Decimal("-500.00"), date(2024, 3, 6), None, date(2024, 3, 5))
    assert not is_candidate(Decimal("-500.00"), date(2024, 3, 6), Decimal("500.00"), None)


def test_score_pair_blends_signals():
    confidence, reasons = score_pair(
        Decimal("-500.00"), date(2024, 3, 6), "AEGEAN AIRLINES ATHENS",
        Decimal("500.00"), date(2024, 3, 5), "Aegean Airlines",
        same_package=True,
    )
    assert 0.9 <= confidence <= 1.0
    assert confidence_level(confidence) == "high"
    assert reasons[0] == "Exact amount"
    assert "Same package" in reasons


def test_score_pair_without_amount_or_close_amount():
    assert score_pair(Decimal("-5"), date(2024, 3, 6), "x", None, None, "x") == (0.0, [])
    assert score_pair(Decimal("-5"), date(2024, 3, 6), "x", Decimal("50"), None, "x") == (0.0, [])


def test_confidence_levels():
    assert confidence_level(0.95) == "high"
    assert confidence_level(0.75) == "medium"
    assert confidence_level(0.2) == "low"
