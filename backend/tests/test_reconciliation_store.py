from datetime import date
from decimal import Decimal

import pytest

from travel_ledger.errors import EntityValidationError, ErrorKind, InvalidStateError, NotFoundError
from travel_ledger.models.enums import InvoiceCategory, InvoiceType, PackageStatus, PaymentStatus, TransactionStatus
from travel_ledger.schemas.invoice import InvoiceCreate, InvoiceUpdate
from travel_ledger.schemas.package import PackageCreate, PackageUpdate
from travel_ledger.schemas.party import CustomerCreate, SupplierCreate
from travel_ledger.schemas.transaction import TransactionUpdate


def test_package_dates_must_be_ordered(store):
    with pytest.raises(EntityValidationError) as excinfo:
        store.create_package(PackageCreate(
            client_name="Late Bloomers",
            start_date=date(2024, 3, 10),
            end_date=date(2024, 3, 1),
        ))
    assert excinfo.value.kind == ErrorKind.VALIDATION
    assert excinfo.value.invariant == "package.date_order"


def test_package_customer_must_exist(store):
    with pytest.raises(EntityValidationError) as excinfo:
        store.create_package(PackageCreate(
            client_name="Ghost",
            customer_id=999,
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 2),
        ))
    assert excinfo.value.invariant == "package.customer_id"


def test_package_status_only_moves_forward(store, package):
    assert package.status == PackageStatus.QUOTE.value

    package = store.update_package(package.id, PackageUpdate(status=PackageStatus.ACTIVE))
    assert package.status == PackageStatus.ACTIVE.value

    with pytest.raises(EntityValidationError) as excinfo:
        store.update_package(package.id, PackageUpdate(status=PackageStatus.QUOTE))
    assert excinfo.value.invariant == "package.status_forward_only"

    package = store.update_package(package.id, PackageUpdate(status=PackageStatus.COMPLETED))
    assert package.status == PackageStatus.COMPLETED.value


def test_failed_update_leaves_package_untouched(store, package, db):
    with pytest.raises(EntityValidationError):
        store.update_package(package.id, PackageUpdate(client_name="Renamed", end_date=date(2024, 2, 1)))
    db.expire_all()
    reloaded = store.get_package(package.id)
    assert reloaded.client_name == package.client_name
    assert reloaded.end_date == date(2024, 3, 10)


def test_updates_refresh_updated_at(store, package):
    before = package.updated_at
    updated = store.update_package(package.id, PackageUpdate(client_name="Maria P."))
    assert updated.updated_at >= before
    assert updated.client_name == "Maria P."


def test_party_names_must_not_be_blank(store):
    with pytest.raises(EntityValidationError) as excinfo:
        store.create_supplier(SupplierCreate(name="   "))
    assert excinfo.value.invariant == "supplier.name"
    with pytest.raises(EntityValidationError) as excinfo:
        store.create_customer(CustomerCreate(name=""))
    assert excinfo.value.invariant == "customer.name"


def test_invoice_amount_cannot_be_negative(make_expense):
    with pytest.raises(EntityValidationError) as excinfo:
        make_expense(amount="-1.00")
    assert excinfo.value.invariant == "invoice.amount_non_negative"


def test_invoice_amount_may_be_missing_until_extracted(make_expense):
    invoice = make_expense(amount=None)
    assert invoice.amount is None
    assert invoice.currency == "EUR"


def test_invoice_due_date_not_before_invoice_date(make_expense):
    with pytest.raises(EntityValidationError) as excinfo:
        make_expense(due_date=date(2024, 3, 1))
    assert excinfo.value.invariant == "invoice.date_order"


def test_expense_invoice_cannot_reference_customer(make_expense, customer):
    with pytest.raises(EntityValidationError) as excinfo:
        make_expense(customer_id=customer.id)
    assert excinfo.value.invariant == "invoice.party"


def test_income_invoice_cannot_reference_supplier(store, package, supplier):
    with pytest.raises(EntityValidationError) as excinfo:
        store.create_invoice(InvoiceCreate(
            type=InvoiceType.INCOME,
            package_id=package.id,
            supplier_id=supplier.id,
            amount=Decimal("100"),
        ))
    assert excinfo.value.invariant == "invoice.party"


def test_invoice_references_must_exist(make_expense):
    with pytest.raises(EntityValidationError) as excinfo:
        make_expense(package_id=4242)
    assert excinfo.value.invariant == "invoice.package_id"


def test_invoice_enum_values_are_closed(store, make_expense):
    invoice = make_expense()
    with pytest.raises(EntityValidationError) as excinfo:
        store.update_invoice(invoice.id, InvoiceUpdate.model_construct(category="spaceship"))
    assert excinfo.value.invariant == "invoice.category"


def test_set_payment_status(store, make_expense):
    invoice = make_expense()
    updated = store.set_payment_status(invoice.id, PaymentStatus.PAID)
    assert updated.payment_status == PaymentStatus.PAID.value
    with pytest.raises(EntityValidationError):
        store.set_payment_status(invoice.id, "refunded")


def test_attach_extracted_data_fills_empty_fields(store, make_expense):
    invoice = make_expense(amount=None, invoice_date=None, merchant=None)
    updated = store.attach_extracted_data(invoice.id, {
        "merchant": "Aegean Airlines",
        "amount": "412.80",
        "date": "2024-03-04",
        "category": "airline",
        "confidence": 0.93,
        "currency": "eur",
        "vat_amount": "49.54",
        "invoice_number": "A3-118822",
        "line_items": [{"description": "ATH-JTR", "quantity": 2, "unit_price": "206.40"}],
    })

    assert updated.amount == Decimal("412.80")
    assert updated.invoice_date == date(2024, 3, 4)
    assert updated.merchant == "Aegean Airlines"
    assert updated.category == InvoiceCategory.AIRLINE.value
    assert updated.extracted_data["invoice_number"] == "A3-118822"
    assert updated.extracted_data["currency"] == "EUR"


def test_create_takes_currency_from_extraction(make_expense):
    invoice = make_expense(amount=None, extracted_data={"amount": "300.00", "currency": "usd", "confidence": 0.9})
    assert invoice.currency == "USD"
    assert invoice.amount == Decimal("300.00")

    assert make_expense().currency == "EUR"
    assert make_expense(currency="GBP", extracted_data={"currency": "USD", "confidence": 0.9}).currency == "GBP"


def test_attach_extracted_data_keeps_entered_values(store, make_expense):
    invoice = make_expense(amount="500.00")
    updated = store.attach_extracted_data(invoice.id, {"amount": "499.00", "confidence": 0.4})
    assert updated.amount == Decimal("500.00")


@pytest.mark.parametrize("record", [{"confidence": 1.5}, {"amount": "-3"}])
def test_attach_extracted_data_rejects_invalid_records(store, make_expense, record):
    invoice = make_expense(amount=None)
    with pytest.raises(EntityValidationError) as excinfo:
        store.attach_extracted_data(invoice.id, record)
    assert excinfo.value.invariant == "extracted_data"


def test_invoices_for_package_by_date_range(store, package, make_expense):
    march = make_expense(invoice_date=date(2024, 3, 5))
    make_expense(invoice_date=date(2024, 4, 2))
    make_expense(invoice_date=None)

    in_march = store.invoices_for_package(package.id, date(2024, 3, 1), date(2024, 3, 31))
    assert [i.id for i in in_march] == [march.id]
    assert len(store.invoices_for_package(package.id)) == 3


def test_pending_transactions_by_date_range(store, make_transaction):
    inside = make_transaction(transaction_date=date(2024, 3, 6))
    ignored = make_transaction(transaction_date=date(2024, 3, 7))
    store.ignore_transaction(ignored.id)
    make_transaction(transaction_date=date(2024, 4, 1))

    pending = store.pending_transactions(date(2024, 3, 1), date(2024, 3, 31))
    assert [t.id for t in pending] == [inside.id]


def test_ignored_transaction_never_needs_invoice(store, make_transaction):
    transaction = make_transaction()
    ignored = store.ignore_transaction(transaction.id)
    assert ignored.status == TransactionStatus.IGNORED.value
    assert ignored.needs_invoice is False

    with pytest.raises(EntityValidationError) as excinfo:
        store.update_transaction(transaction.id, TransactionUpdate(needs_invoice=True))
    assert excinfo.value.invariant == "transaction.ignored_needs_no_invoice"


def test_transaction_cannot_be_marked_matched_directly(store, make_transaction):
    transaction = make_transaction()
    with pytest.raises(EntityValidationError) as excinfo:
        store.update_transaction(transaction.id, TransactionUpdate(status=TransactionStatus.MATCHED))
    assert excinfo.value.invariant == "transaction.matched_requires_confirmed_match"


def test_matched_transaction_status_is_locked(store, make_expense, make_transaction):
    from travel_ledger.services.match_engine import MatchEngine

    engine = MatchEngine(store.db)
    transaction = make_transaction()
    match = engine.propose(make_expense().id, transaction.id)
    engine.confirm(match.id)

    with pytest.raises(InvalidStateError):
        store.update_transaction(transaction.id, TransactionUpdate(status=TransactionStatus.PENDING))


def test_missing_entities_are_not_found(store):
    with pytest.raises(NotFoundError) as excinfo:
        store.get_invoice(12345)
    assert excinfo.value.kind == ErrorKind.NOT_FOUND
    with pytest.raises(NotFoundError):
        store.get_transaction(12345)
