from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

BACKEND_DIR = Path(__file__).resolve().parent.parent


def _alembic_config(url: str) -> Config:
    config = Config(str(BACKEND_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    config.set_main_option("sqlalchemy.url", url)
    return config


def test_upgrade_creates_schema_and_downgrade_removes_it(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    config = _alembic_config(url)

    command.upgrade(config, "head")
    engine = create_engine(url)
    inspector = inspect(engine)
    assert {
        "packages", "suppliers", "customers", "invoices",
        "bank_transactions", "invoice_transaction_matches", "export_logs",
    } <= set(inspector.get_table_names())

    unique_indexes = {
        index["name"] for index in inspector.get_indexes("invoice_transaction_matches") if index["unique"]
    }
    assert {"uq_matches_confirmed_transaction", "uq_matches_confirmed_invoice"} <= unique_indexes
    assert "version" in {column["name"] for column in inspector.get_columns("bank_transactions")}

    command.downgrade(config, "base")
    assert "invoices" not in inspect(engine).get_table_names()
    engine.dispose()
