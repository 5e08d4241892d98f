"""Initial schema: packages, parties, invoices, bank transactions, matches, export logs

Revision ID: 001_initial
Revises: 
Create Date: 2024-03-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CONFIRMED_ONLY = sa.text("status = 'confirmed'")


def upgrade() -> None:
    # Create suppliers and customers tables
    for table in ('suppliers', 'customers'):
        op.create_table(
            table,
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('vat_number', sa.String(), nullable=True),
            sa.Column('email', sa.String(), nullable=True),
            sa.Column('phone', sa.String(), nullable=True),
            sa.Column('address', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f(f'ix_{table}_id'), table, ['id'], unique=False)
        op.create_index(op.f(f'ix_{table}_name'), table, ['name'], unique=False)

    # Create packages table
    op.create_table(
        'packages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('client_name', sa.String(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='quote'),
        sa.Column('target_margin_percent', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_packages_id'), 'packages', ['id'], unique=False)
    op.create_index(op.f('ix_packages_client_name'), 'packages', ['client_name'], unique=False)
    op.create_index(op.f('ix_packages_customer_id'), 'packages', ['customer_id'], unique=False)
    op.create_index(op.f('ix_packages_start_date'), 'packages', ['start_date'], unique=False)
    op.create_index(op.f('ix_packages_status'), 'packages', ['status'], unique=False)

    # Create invoices table
    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('package_id', sa.Integer(), nullable=True),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(length=10), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False, server_default='other'),
        sa.Column('merchant', sa.String(), nullable=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='EUR'),
        sa.Column('payment_status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('invoice_date', sa.Date(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('file_path', sa.String(), nullable=True),
        sa.Column('file_name', sa.String(), nullable=True),
        sa.Column('extracted_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['package_id'], ['packages.id'], ),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_invoices_id'), 'invoices', ['id'], unique=False)
    op.create_index(op.f('ix_invoices_package_id'), 'invoices', ['package_id'], unique=False)
    op.create_index(op.f('ix_invoices_supplier_id'), 'invoices', ['supplier_id'], unique=False)
    op.create_index(op.f('ix_invoices_customer_id'), 'invoices', ['customer_id'], unique=False)
    op.create_index(op.f('ix_invoices_type'), 'invoices', ['type'], unique=False)
    op.create_index(op.f('ix_invoices_payment_status'), 'invoices', ['payment_status'], unique=False)
    op.create_index(op.f('ix_invoices_invoice_date'), 'invoices', ['invoice_date'], unique=False)

    # Create bank_transactions table
    op.create_table(
        'bank_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('description', sa.String(), nullable=False, server_default=''),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('package_id', sa.Integer(), nullable=True),
        sa.Column('needs_invoice', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['package_id'], ['packages.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_bank_transactions_id'), 'bank_transactions', ['id'], unique=False)
    op.create_index(op.f('ix_bank_transactions_transaction_date'), 'bank_transactions', ['transaction_date'], unique=False)
    op.create_index(op.f('ix_bank_transactions_package_id'), 'bank_transactions', ['package_id'], unique=False)
    op.create_index(op.f('ix_bank_transactions_status'), 'bank_transactions', ['status'], unique=False)

    # Create invoice_transaction_matches table
    op.create_table(
        'invoice_transaction_matches',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('confidence_score', sa.Numeric(3, 2), nullable=True),
        sa.Column('reasons', sa.JSON(), nullable=True),
        sa.Column('matched_by', sa.String(length=20), nullable=True),
        sa.Column('matched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ),
        sa.ForeignKeyConstraint(['transaction_id'], ['bank_transactions.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_invoice_transaction_matches_id'), 'invoice_transaction_matches', ['id'], unique=False)
    op.create_index(op.f('ix_invoice_transaction_matches_invoice_id'), 'invoice_transaction_matches', ['invoice_id'], unique=False)
    op.create_index(op.f('ix_invoice_transaction_matches_transaction_id'), 'invoice_transaction_matches', ['transaction_id'], unique=False)
    op.create_index(op.f('ix_invoice_transaction_matches_status'), 'invoice_transaction_matches', ['status'], unique=False)
    # At most one confirmed match per transaction and per invoice
    op.create_index(
        'uq_matches_confirmed_transaction', 'invoice_transaction_matches', ['transaction_id'], unique=True,
        sqlite_where=CONFIRMED_ONLY, postgresql_where=CONFIRMED_ONLY
    )
    op.create_index(
        'uq_matches_confirmed_invoice', 'invoice_transaction_matches', ['invoice_id'], unique=True,
        sqlite_where=CONFIRMED_ONLY, postgresql_where=CONFIRMED_ONLY
    )

    # Create export_logs table
    op.create_table(
        'export_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('month_year', sa.String(length=7), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('packages_included', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('invoices_included', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_export_logs_id'), 'export_logs', ['id'], unique=False)
    op.create_index(op.f('ix_export_logs_month_year'), 'export_logs', ['month_year'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_export_logs_month_year'), table_name='export_logs')
    op.drop_index(op.f('ix_export_logs_id'), table_name='export_logs')
    op.drop_table('export_logs')
    op.drop_index('uq_matches_confirmed_invoice', table_name='invoice_transaction_matches')
    op.drop_index('uq_matches_confirmed_transaction', table_name='invoice_transaction_matches')
    op.drop_index(op.f('ix_invoice_transaction_matches_status'), table_name='invoice_transaction_matches')
    op.drop_index(op.f('ix_invoice_transaction_matches_transaction_id'), table_name='invoice_transaction_matches')
    op.drop_index(op.f('ix_invoice_transaction_matches_invoice_id'), table_name='invoice_transaction_matches')
    op.drop_index(op.f('ix_invoice_transaction_matches_id'), table_name='invoice_transaction_matches')
    op.drop_table('invoice_transaction_matches')
    op.drop_index(op.f('ix_bank_transactions_status'), table_name='bank_transactions')
    op.drop_index(op.f('ix_bank_transactions_package_id'), table_name='bank_transactions')
    op.drop_index(op.f('ix_bank_transactions_transaction_date'), table_name='bank_transactions')
    op.drop_index(op.f('ix_bank_transactions_id'), table_name='bank_transactions')
    op.drop_table('bank_transactions')
    op.drop_index(op.f('ix_invoices_invoice_date'), table_name='invoices')
    op.drop_index(op.f('ix_invoices_payment_status'), table_name='invoices')
    op.drop_index(op.f('ix_invoices_type'), table_name='invoices')
    op.drop_index(op.f('ix_invoices_customer_id'), table_name='invoices')
    op.drop_index(op.f('ix_invoices_supplier_id'), table_name='invoices')
    op.drop_index(op.f('ix_invoices_package_id'), table_name='invoices')
    op.drop_index(op.f('ix_invoices_id'), table_name='invoices')
    op.drop_table('invoices')
    op.drop_index(op.f('ix_packages_status'), table_name='packages')
    op.drop_index(op.f('ix_packages_start_date'), table_name='packages')
    op.drop_index(op.f('ix_packages_customer_id'), table_name='packages')
    op.drop_index(op.f('ix_packages_client_name'), table_name='packages')
    op.drop_index(op.f('ix_packages_id'), table_name='packages')
    op.drop_table('packages')
    for table in ('customers', 'suppliers'):
        op.drop_index(op.f(f'ix_{table}_name'), table_name=table)
        op.drop_index(op.f(f'ix_{table}_id'), table_name=table)
        op.drop_table(table)
