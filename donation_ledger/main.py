import logging
import time

from fastapi import FastAPI, Request, Depends, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from donation_ledger.accounts import SqlAccountDirectory
from donation_ledger.auth import verify_callback_token
from donation_ledger.config import LOG_FORMAT, LOG_LEVEL
from donation_ledger.database import Base, engine, SessionLocal, session_scope
from donation_ledger.errors import LedgerError
from donation_ledger.ledger import LifecycleController
from donation_ledger.logging_setup import setup_logging
from donation_ledger.routes import router
from donation_ledger.schemas import DonationResponse, PaymentOutcomeRequest

setup_logging(LOG_LEVEL, LOG_FORMAT)
logger = logging.getLogger(__name__)

app = FastAPI(title="Donation Ledger")

app.include_router(router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code}",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000, 1),
        },
    )
    return response


Base.metadata.create_all(bind=engine)


@app.post("/payments/callback", response_model=DonationResponse)
def payment_callback(
    outcome: PaymentOutcomeRequest,
    _=Depends(verify_callback_token),
):
    with session_scope(SessionLocal) as db:
        controller = LifecycleController(db, SqlAccountDirectory(db))
        donation = controller.report_payment_outcome(
            outcome.donation_id, outcome.outcome, outcome.transaction_id,
        )
        return DonationResponse.model_validate(donation)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    if exc.http_status >= 500:
        logger.error(
            f"LedgerError: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path},
        )
    else:
        logger.info(
            f"LedgerError: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path},
        )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Invalid request data",
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in e["loc"]),
                        "message": e["msg"],
                    }
                    for e in exc.errors()
                ],
            },
        },
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": {"code": "UNEXPECTED_ERROR", "message": "An unexpected error occurred"}},
    )
