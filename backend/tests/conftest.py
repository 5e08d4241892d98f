import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_travel_ledger.db")
os.environ.setdefault("DEFAULT_LOCALE", "el")
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "false")

from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402

from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from travel_ledger.database import Base, build_engine, get_db  # noqa: E402
from travel_ledger.main import app  # noqa: E402
from travel_ledger.models.enums import InvoiceType  # noqa: E402
from travel_ledger.schemas.invoice import InvoiceCreate  # noqa: E402
from travel_ledger.schemas.package import PackageCreate  # noqa: E402
from travel_ledger.schemas.party import CustomerCreate, SupplierCreate  # noqa: E402
from travel_ledger.schemas.transaction import TransactionCreate  # noqa: E402
from travel_ledger.services.reconciliation_store import ReconciliationStore  # noqa: E402
import travel_ledger.models  # noqa: E402,F401


@pytest.fixture()
def db_engine(tmp_path):
    # File-backed so that sessions on different threads share one database
    engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def store(db) -> ReconciliationStore:
    return ReconciliationStore(db)


@pytest.fixture()
def client(session_factory) -> TestClient:
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def supplier(store):
    return store.create_supplier(SupplierCreate(name="Aegean Airlines", vat_number="EL094111111"))


@pytest.fixture()
def customer(store):
    return store.create_customer(CustomerCreate(name="Maria Papadopoulou", email="maria@example.com"))


@pytest.fixture()
def package(store, customer):
    return store.create_package(PackageCreate(
        client_name=customer.name,
        customer_id=customer.id,
        start_date=date(2024, 3, 1),
        end_date=date(2024, 3, 10),
        target_margin_percent=Decimal("15"),
    ))


@pytest.fixture()
def make_expense(store, package, supplier):
    def _make(amount="500.00", invoice_date=date(2024, 3, 5), **overrides):
        values = dict(
            type=InvoiceType.EXPENSE,
            package_id=package.id,
            supplier_id=supplier.id,
            merchant=supplier.name,
            amount=Decimal(amount) if amount is not None else None,
            invoice_date=invoice_date,
        )
        values.update(overrides)
        return store.create_invoice(InvoiceCreate(**values))
    return _make


@pytest.fixture()
def make_transaction(store, package):
    def _make(amount="-500.00", transaction_date=date(2024, 3, 6), **overrides):
        values = dict(
            transaction_date=transaction_date,
            description="AEGEAN AIRLINES ATHENS",
            amount=Decimal(amount),
            package_id=package.id,
            needs_invoice=True,
        )
        values.update(overrides)
        return store.create_transaction(TransactionCreate(**values))
    return _make
