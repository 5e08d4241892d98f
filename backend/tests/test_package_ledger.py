from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from travel_ledger.errors import NotFoundError
from travel_ledger.models.enums import InvoiceCategory, InvoiceType, PaymentStatus
from travel_ledger.schemas.invoice import InvoiceCreate
from travel_ledger.schemas.package import PackageCreate
from travel_ledger.services.package_ledger import PackageLedger
from travel_ledger.services.period_resolver import resolve_period


@pytest.fixture()
def ledger(db) -> PackageLedger:
    return PackageLedger(db)


@pytest.fixture()
def make_income(store, package, customer):
    def _make(amount="1200.00", invoice_date=date(2024, 3, 2), **overrides):
        values = dict(
            type=InvoiceType.INCOME,
            package_id=package.id,
            customer_id=customer.id,
            amount=Decimal(amount) if amount is not None else None,
            invoice_date=invoice_date,
        )
        values.update(overrides)
        return store.create_invoice(InvoiceCreate(**values))
    return _make


def test_margin_from_income_and_expense(ledger, package, make_expense, make_income):
    make_expense(amount="1000.00")
    make_income(amount="1200.00")

    summary = ledger.summarize(package.id)

    assert summary.expense_total == Decimal("1000.00")
    assert summary.income_total == Decimal("1200.00")
    assert summary.profit == Decimal("200.00")
    assert summary.realized_margin == pytest.approx(0.1667, abs=1e-4)
    # 16.67% against a 15% target
    assert summary.below_target is False


def test_margin_undefined_without_income(ledger, package, make_expense):
    make_expense(amount="1000.00")

    summary = ledger.summarize(package.id)

    assert summary.income_total == Decimal("0")
    assert summary.realized_margin is None
    assert summary.below_target is False


def test_flags_package_below_target(ledger, store, customer, make_expense, make_income):
    package = store.create_package(PackageCreate(
        client_name=customer.name,
        customer_id=customer.id,
        start_date=date(2024, 3, 1),
        end_date=date(2024, 3, 3),
        target_margin_percent=Decimal("25"),
    ))
    make_expense(amount="1000.00", package_id=package.id)
    make_income(amount="1200.00", package_id=package.id)

    assert ledger.summarize(package.id).below_target is True


def test_flag_compares_unrounded_margin(ledger, store, customer, make_expense, make_income):
    package = store.create_package(PackageCreate(
        client_name=customer.name,
        customer_id=customer.id,
        start_date=date(2024, 3, 1),
        end_date=date(2024, 3, 3),
        target_margin_percent=Decimal("16.67"),
    ))
    make_expense(amount="1000.00", package_id=package.id)
    make_income(amount="1200.00", package_id=package.id)

    summary = ledger.summarize(package.id)

    # 16.6667% rounds to the target but is still short of it
    assert summary.realized_margin == 0.1667
    assert summary.below_target is True


def test_unextracted_amounts_counted_not_summed(ledger, package, make_expense):
    make_expense(amount="250.00")
    make_expense(amount=None)

    summary = ledger.summarize(package.id)

    assert summary.invoice_count == 2
    assert summary.expense_count == 2
    assert summary.pending_extraction_count == 1
    assert summary.expense_total == Decimal("250.00")


def test_cancelled_invoices_are_not_summed(ledger, package, make_expense):
    make_expense(amount="100.00")
    make_expense(amount="400.00", payment_status=PaymentStatus.CANCELLED)

    summary = ledger.summarize(package.id)

    assert summary.invoice_count == 2
    assert summary.cancelled_count == 1
    assert summary.expense_total == Decimal("100.00")


def test_window_scopes_invoices(ledger, package, make_expense):
    make_expense(amount="500.00", invoice_date=date(2024, 3, 5))
    make_expense(amount="80.00", invoice_date=date(2024, 4, 1))
    make_expense(amount="60.00", invoice_date=None)

    march = ledger.summarize(package.id, resolve_period(date(2024, 3, 20)))
    assert march.month_key == "2024-03"
    assert march.start_date == date(2024, 3, 1)
    assert march.invoice_count == 1
    assert march.expense_total == Decimal("500.00")

    assert ledger.summarize(package.id).expense_total == Decimal("640.00")


def test_outstanding_categories_and_currencies(ledger, package, make_expense, make_income):
    make_expense(amount="300.00", category=InvoiceCategory.HOTEL)
    make_expense(amount="200.00", category=InvoiceCategory.HOTEL, payment_status=PaymentStatus.PAID)
    make_expense(amount="50.00", category=InvoiceCategory.TOLLS, payment_status=PaymentStatus.OVERDUE)
    make_income(amount="900.00", currency="USD")

    summary = ledger.summarize(package.id)

    assert summary.totals_by_category == {"hotel": Decimal("500.00"), "tolls": Decimal("50.00")}
    assert summary.outstanding_expense == Decimal("350.00")
    assert summary.outstanding_income == Decimal("900.00")
    assert summary.currencies == ["EUR", "USD"]


def test_summary_is_read_only(ledger, package, make_expense):
    make_expense()
    summary = ledger.summarize(package.id)
    with pytest.raises(ValidationError):
        summary.expense_total = Decimal("0")
    assert not ledger.db.dirty
    assert not ledger.db.new


def test_client_name_prefers_customer(ledger, store, package, customer):
    from travel_ledger.schemas.package import PackageUpdate

    store.update_package(package.id, PackageUpdate(client_name="Legacy label"))
    assert ledger.summarize(package.id).client_name == customer.name


def test_missing_package_is_not_found(ledger):
    with pytest.raises(NotFoundError):
        ledger.summarize(404)


def test_period_summary_covers_touched_packages(ledger, store, customer, package, make_expense):
    make_expense(amount="500.00", invoice_date=date(2024, 3, 5))
    april_trip = store.create_package(PackageCreate(
        client_name="April trip",
        start_date=date(2024, 4, 10),
        end_date=date(2024, 4, 15),
    ))
    # Deposit invoiced in March for a trip that runs in April
    make_expense(amount="120.00", invoice_date=date(2024, 3, 28), package_id=april_trip.id)
    store.create_package(PackageCreate(
        client_name="Summer",
        start_date=date(2024, 7, 1),
        end_date=date(2024, 7, 5),
    ))

    period = ledger.summarize_period(resolve_period(date(2024, 3, 1)))

    assert period.package_count == 2
    assert {p.package_id for p in period.packages} == {package.id, april_trip.id}
    assert period.invoice_count == 2
    assert period.expense_total == Decimal("620.00")


def test_overdue_receivables_buckets(ledger, settled_receivable_id):
    report = ledger.overdue_receivables(as_of=date(2024, 6, 30), days_threshold=30)

    assert report.total == 3
    assert (report.overdue_30, report.overdue_60, report.overdue_90_plus) == (1, 1, 1)
    assert report.total_amount == Decimal("600.00")
    assert [item.days_past_due for item in report.items] == sorted(
        (item.days_past_due for item in report.items), reverse=True
    )
    assert settled_receivable_id not in {item.invoice_id for item in report.items}


@pytest.fixture()
def settled_receivable_id(db, make_income, make_transaction):
    """Income invoices of various ages; returns the id of the one settled by a confirmed match"""
    from travel_ledger.services.match_engine import MatchEngine

    make_income(amount="100.00", invoice_date=date(2024, 5, 1), due_date=date(2024, 5, 20))  # 41 days
    make_income(amount="200.00", invoice_date=date(2024, 4, 1), due_date=date(2024, 4, 20))  # 71 days
    make_income(amount="300.00", invoice_date=date(2024, 3, 1))  # 121 days, no due date
    make_income(amount="400.00", invoice_date=date(2024, 6, 20))  # too recent
    make_income(amount="500.00", invoice_date=date(2024, 1, 1), payment_status=PaymentStatus.PAID)
    settled = make_income(amount="600.00", invoice_date=date(2024, 1, 1))

    engine = MatchEngine(db)
    deposit = make_transaction(amount="600.00", transaction_date=date(2024, 1, 2))
    engine.confirm(engine.propose(settled.id, deposit.id).id)
    return settled.id
