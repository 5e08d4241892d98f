from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from travel_ledger.database import get_db
from travel_ledger.schemas.party import SupplierCreate, CustomerCreate, SupplierResponse, CustomerResponse
from travel_ledger.services.reconciliation_store import ReconciliationStore

router = APIRouter(prefix="/api", tags=["parties"])


@router.get("/suppliers", response_model=List[SupplierResponse])
def list_suppliers(db: Session = Depends(get_db)):
    """List all suppliers"""
    return ReconciliationStore(db).list_suppliers()


@router.post("/suppliers", response_model=SupplierResponse, status_code=201)
def create_supplier(data: SupplierCreate, db: Session = Depends(get_db)):
    return ReconciliationStore(db).create_supplier(data)


@router.get("/suppliers/{supplier_id}", response_model=SupplierResponse)
def get_supplier(supplier_id: int, db: Session = Depends(get_db)):
    return ReconciliationStore(db).get_supplier(supplier_id)


@router.get("/customers", response_model=List[CustomerResponse])
def list_customers(db: Session = Depends(get_db)):
    """List all customers"""
    return ReconciliationStore(db).list_customers()


@router.post("/customers", response_model=CustomerResponse, status_code=201)
def create_customer(data: CustomerCreate, db: Session = Depends(get_db)):
    return ReconciliationStore(db).create_customer(data)


@router.get("/customers/{customer_id}", response_model=CustomerResponse)
def get_customer(customer_id: int, db: Session = Depends(get_db)):
    return ReconciliationStore(db).get_customer(customer_id)
