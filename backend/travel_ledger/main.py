from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from travel_ledger.routers import periods, packages, parties, invoices, transactions, matches, ledger, exports
from travel_ledger.database import engine, Base
from travel_ledger.config import settings
from travel_ledger.errors import ErrorKind, HTTP_STATUS_BY_KIND, LedgerError, error_payload
import travel_ledger.models  # noqa: F401  (registers tables on Base.metadata)
import logging
import sys

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)

# Log startup information
logger.info("="*60)
logger.info("Starting Travel Ledger API")
logger.info("="*60)
logger.info(f"Database: {engine.url.render_as_string(hide_password=True)}")
logger.info(f"Default locale: {settings.default_locale}")
logger.info(f"Match window: +/-{settings.match_date_window_days} days, tolerance {settings.match_amount_tolerance}")
logger.info("="*60)

# In production, use migrations (alembic upgrade head)
if settings.create_tables_on_startup:
    Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Travel Ledger API",
    description="Monthly periods, invoice/bank reconciliation and package ledgers for a travel agency",
    version="1.0.0"
)


def parse_cors_origins(origins_str: str) -> list:
    """Parse CORS origins string into a list."""
    return [origin.strip() for origin in origins_str.split(",") if origin.strip()]


app.add_middleware(
    CORSMiddleware,
    allow_origins=parse_cors_origins(settings.cors_origins),
    allow_origin_regex=settings.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Include routers
app.include_router(periods.router)
app.include_router(packages.router)
app.include_router(parties.router)
app.include_router(invoices.router)
app.include_router(transactions.router)
app.include_router(matches.router)
app.include_router(ledger.router)
app.include_router(exports.router)


@app.get("/")
def root():
    return {"message": "Travel Ledger API", "version": "1.0.0"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    """Map typed core errors to their HTTP status"""
    status_code = HTTP_STATUS_BY_KIND[exc.kind]
    logger.info(f"{request.method} {request.url.path} -> {status_code} {exc.kind.value}: {exc.message}")
    return JSONResponse(status_code=status_code, content=error_payload(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies share the VALIDATION error shape"""
    return JSONResponse(
        status_code=HTTP_STATUS_BY_KIND[ErrorKind.VALIDATION],
        content={"error": ErrorKind.VALIDATION.value, "detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Unexpected failures are logged with traceback and reported as 500"""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal server error: {str(exc)}"},
    )
