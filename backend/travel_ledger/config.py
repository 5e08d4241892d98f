from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./travel_ledger.db"
    create_tables_on_startup: bool = False  # In production, use migrations

    # Period resolution
    default_locale: str = "el"  # Greek in the reference deployment
    period_label_pattern: str = "LLLL yyyy"  # CLDR stand-alone month name + year
    quick_pick_months: int = 12

    # Matching Configuration
    match_date_window_days: int = 7  # Transaction date within +/- N days of invoice date
    match_amount_tolerance: float = 0.01  # Absolute tolerance in currency units
    match_min_confidence: float = 0.5  # Suggestions below this score are dropped
    auto_propose_min_confidence: float = 0.8  # Bulk proposals only above this score
    max_suggestions: int = 5

    # Concurrency
    lock_timeout_seconds: float = 5.0
    optimistic_retry_attempts: int = 3

    # Receivables
    receivables_overdue_days: int = 30

    # Logging
    log_level: str = "INFO"

    # CORS Configuration
    cors_origins: str = "http://localhost:3000,http://localhost:5173"
    cors_origin_regex: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields in .env file


settings = Settings()
