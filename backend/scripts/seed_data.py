"""
Seed script to generate synthetic customers, packages, invoices and bank
transactions for demo purposes. Everything goes through the store so the
demo data obeys the same invariants as real input.
"""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.orm import Session
from travel_ledger.database import SessionLocal, engine, Base
from travel_ledger.models.enums import InvoiceCategory, InvoiceType, PackageStatus, PaymentStatus
from travel_ledger.models.invoice import Invoice
from travel_ledger.models.package import Package
from travel_ledger.models.party import Customer, Supplier
from travel_ledger.schemas.invoice import InvoiceCreate
from travel_ledger.schemas.package import PackageCreate
from travel_ledger.schemas.party import CustomerCreate, SupplierCreate
from travel_ledger.schemas.transaction import TransactionCreate
from travel_ledger.services.match_engine import MatchEngine
from travel_ledger.services.period_resolver import resolve_period
from travel_ledger.services.reconciliation_store import ReconciliationStore
from decimal import Decimal
from datetime import date, timedelta
from typing import Optional
from faker import Faker

# Supplier name -> category; names double as bank statement descriptions
SUPPLIERS = {
    "Aegean Airlines": InvoiceCategory.AIRLINE,
    "Grande Bretagne Hotel": InvoiceCategory.HOTEL,
    "Attiki Odos": InvoiceCategory.TOLLS,
    "Blue Star Ferries": InvoiceCategory.TRANSPORT,
    "Acropolis Tours": InvoiceCategory.ACTIVITY,
}


def create_suppliers(store: ReconciliationStore, fake: Faker) -> list[Supplier]:
    """Create one supplier per category"""
    return [
        store.create_supplier(SupplierCreate(
            name=name,
            vat_number=fake.bothify(text='EL#########'),
            email=fake.company_email(),
            phone=fake.phone_number(),
        ))
        for name in SUPPLIERS
    ]


def create_customers(store: ReconciliationStore, fake: Faker, count: int = 4) -> list[Customer]:
    """Create synthetic customers"""
    return [
        store.create_customer(CustomerCreate(
            name=fake.name(),
            email=fake.email(),
            phone=fake.phone_number(),
            address=fake.address(),
        ))
        for _ in range(count)
    ]


def create_packages(store: ReconciliationStore, fake: Faker, customers: list[Customer], anchor: date) -> list[Package]:
    """One trip per customer, starting inside the anchor month"""
    window = resolve_period(anchor)
    packages = []
    for customer in customers:
        start = window.start_date + timedelta(days=fake.random_int(min=0, max=20))
        packages.append(store.create_package(PackageCreate(
            client_name=customer.name,
            customer_id=customer.id,
            start_date=start,
            end_date=start + timedelta(days=fake.random_int(min=2, max=10)),
            status=fake.random_element(elements=(PackageStatus.QUOTE, PackageStatus.ACTIVE)),
            target_margin_percent=Decimal(fake.random_element(elements=("10", "15", "20"))),
        )))
    return packages


def create_invoices(
    store: ReconciliationStore,
    fake: Faker,
    packages: list[Package],
    suppliers: list[Supplier],
) -> list[Invoice]:
    """Expense invoices per supplier plus one income invoice per package"""
    invoices = []
    for package in packages:
        for supplier in fake.random_elements(elements=suppliers, length=3, unique=True):
            amount = Decimal(str(round(fake.random.uniform(40.0, 900.0), 2)))
            invoice_date = package.start_date + timedelta(days=fake.random_int(min=0, max=3))
            invoices.append(store.create_invoice(InvoiceCreate(
                type=InvoiceType.EXPENSE,
                category=SUPPLIERS[supplier.name],
                package_id=package.id,
                supplier_id=supplier.id,
                merchant=supplier.name,
                amount=amount,
                invoice_date=invoice_date,
                due_date=invoice_date + timedelta(days=30),
            )))

        expenses = sum((i.amount for i in invoices if i.package_id == package.id), Decimal("0"))
        markup = Decimal(str(fake.random.uniform(1.05, 1.30))).quantize(Decimal("0.01"))
        invoices.append(store.create_invoice(InvoiceCreate(
            type=InvoiceType.INCOME,
            package_id=package.id,
            customer_id=package.customer_id,
            merchant=package.client_name,
            amount=(expenses * markup).quantize(Decimal("0.01")),
            invoice_date=package.start_date - timedelta(days=7),
            due_date=package.start_date,
        )))

    # Uploaded but not yet extracted
    invoices.append(store.create_invoice(InvoiceCreate(
        type=InvoiceType.EXPENSE,
        package_id=packages[0].id,
        invoice_date=packages[0].start_date,
        file_name="scan_pending.pdf",
    )))
    return invoices


def create_transactions(store: ReconciliationStore, fake: Faker, invoices: list[Invoice]) -> list:
    """
    Bank lines for most invoices (money out for expenses, in for income),
    plus a bank fee that needs no invoice.
    """
    transactions = []
    for invoice in invoices:
        if invoice.amount is None or fake.random_int(min=0, max=9) < 2:
            continue
        sign = Decimal("-1") if invoice.type == InvoiceType.EXPENSE.value else Decimal("1")
        transactions.append(store.create_transaction(TransactionCreate(
            transaction_date=invoice.invoice_date + timedelta(days=fake.random_int(min=0, max=3)),
            description=f"{invoice.merchant} {fake.bothify(text='REF#####')}",
            amount=sign * invoice.amount,
            package_id=invoice.package_id,
        )))

    fee = store.create_transaction(TransactionCreate(
        transaction_date=invoices[0].invoice_date,
        description="Bank fee",
        amount=Decimal("-2.50"),
        needs_invoice=False,
    ))
    transactions.append(store.ignore_transaction(fee.id))
    return transactions


def mark_paid(store: ReconciliationStore, fake: Faker, invoices: list[Invoice]) -> int:
    """Mark a random share of priced invoices as paid"""
    paid = 0
    for invoice in invoices:
        if invoice.amount is not None and fake.boolean(chance_of_getting_true=30):
            store.set_payment_status(invoice.id, PaymentStatus.PAID)
            paid += 1
    return paid


def seed(db: Session, anchor: Optional[date] = None, fake: Optional[Faker] = None) -> dict:
    """
    Populate ``db`` with one month of demo data around ``anchor``.

    Returns:
        Counts per created entity type
    """
    if anchor is None:
        anchor = date.today()
    if fake is None:
        fake = Faker("el_GR")
        Faker.seed(2024)

    store = ReconciliationStore(db)
    suppliers = create_suppliers(store, fake)
    customers = create_customers(store, fake)
    packages = create_packages(store, fake, customers, anchor)
    invoices = create_invoices(store, fake, packages, suppliers)
    transactions = create_transactions(store, fake, invoices)
    paid = mark_paid(store, fake, invoices)

    result = MatchEngine(db).auto_propose(resolve_period(anchor))
    return {
        "suppliers": len(suppliers),
        "customers": len(customers),
        "packages": len(packages),
        "invoices": len(invoices),
        "transactions": len(transactions),
        "paid": paid,
        "proposed_matches": len(result.proposed),
    }


def main():
    """Main seeding function"""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        print("Seeding demo data...")
        counts = seed(db)

        print("\nSeeding complete!")
        print(f"Summary:")
        for name, count in counts.items():
            print(f"  - {name.replace('_', ' ').capitalize()}: {count}")

    except Exception as e:
        print(f"Error during seeding: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
