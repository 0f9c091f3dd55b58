"""
HTTP API for Partnership Ledger

A thin layer over LedgerRepository. Every route translates one request
into one repository call and maps repository errors to status codes:
- NotFoundError           -> 404
- InvalidTransactionError -> 422
- PersistenceFailedError  -> 500

Error bodies are {"error": "..."}. Any origin may call the API.
"""

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from partnership_ledger import __version__
from partnership_ledger.config import validate_all_settings
from partnership_ledger.log import get_logger
from partnership_ledger.models import (
    InvalidTransactionError,
    MalformedRecordError,
    TransactionInput,
    TransactionPatch,
    parse_document,
)
from partnership_ledger.repository import LedgerRepository, create_repository
from partnership_ledger.services.storage import NotFoundError, PersistenceFailedError
from partnership_ledger.summaries import live_transactions, partner_summaries


logger = get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,OPTIONS,PATCH,DELETE,POST,PUT",
    "Access-Control-Allow-Headers": (
        "X-CSRF-Token, X-Requested-With, Accept, Accept-Version, Content-Length, "
        "Content-MD5, Content-Type, Date, X-Api-Version"
    ),
}


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """Open CORS for every response; preflight gets 200 and no body."""

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response


@lru_cache()
def get_repository() -> LedgerRepository:
    """Repository built from settings (cached)."""
    return create_repository()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log configuration problems at startup without refusing to start."""
    results = validate_all_settings()
    problems = {k: v for k, v in results.items() if k.endswith("_error")}
    if problems:
        logger.warning("configuration_problems", **problems)
    logger.info("ledger_api_started", version=__version__)
    yield
    logger.info("ledger_api_stopped")


app = FastAPI(
    title="Partnership Ledger",
    version=__version__,
    description="Partner transaction ledger backed by Google Sheets with a local fallback",
    lifespan=lifespan,
)
app.add_middleware(CORSHeadersMiddleware)


# --- Error mapping ---

@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = "Method not allowed" if exc.status_code == 405 else exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(NotFoundError)
async def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "Transaction not found"})


@app.exception_handler(InvalidTransactionError)
async def invalid_transaction(request: Request, exc: InvalidTransactionError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"error": str(exc)})


@app.exception_handler(PersistenceFailedError)
async def persistence_failed(request: Request, exc: PersistenceFailedError) -> JSONResponse:
    logger.error("request_not_persisted", path=request.url.path, method=request.method)
    return JSONResponse(status_code=500, content={"error": "Failed to save changes"})


# --- Routes ---

@app.get("/api/data")
async def read_ledger(repository: LedgerRepository = Depends(get_repository)) -> dict[str, Any]:
    """The whole ledger document."""
    document = await repository.load()
    return document.to_record()


@app.post("/api/data")
async def replace_ledger(
    payload: dict[str, Any] = Body(...),
    repository: LedgerRepository = Depends(get_repository),
) -> dict[str, Any]:
    """Replace the whole ledger document."""
    try:
        document, skipped = parse_document(payload)
    except MalformedRecordError as e:
        raise HTTPException(status_code=422, detail=str(e))
    await repository.save(document)
    return {"message": "Data saved successfully", "skipped": len(skipped)}


@app.get("/api/transactions")
async def list_transactions(
    transaction_type: Optional[str] = Query(default=None, alias="type"),
    partner: Optional[str] = None,
    repository: LedgerRepository = Depends(get_repository),
) -> dict[str, Any]:
    """Live transactions in display order, optionally filtered."""
    document = await repository.load()
    selected = live_transactions(document, transaction_type=transaction_type, partner=partner)
    return {"transactions": [t.to_record() for t in selected]}


@app.post("/api/transaction")
async def create_transaction(
    payload: TransactionInput,
    repository: LedgerRepository = Depends(get_repository),
) -> dict[str, Any]:
    transaction = await repository.append(payload)
    return {"message": "Transaction added successfully", "transaction": transaction.to_record()}


@app.put("/api/transaction/{transaction_id}")
async def update_transaction(
    transaction_id: int,
    payload: TransactionPatch,
    repository: LedgerRepository = Depends(get_repository),
) -> dict[str, Any]:
    transaction = await repository.update(transaction_id, payload)
    return {"message": "Transaction updated successfully", "transaction": transaction.to_record()}


@app.delete("/api/transaction/{transaction_id}")
async def delete_transaction(
    transaction_id: int,
    repository: LedgerRepository = Depends(get_repository),
) -> dict[str, Any]:
    transaction = await repository.soft_delete(transaction_id)
    return {"message": "Transaction marked as deleted", "transaction": transaction.to_record()}


@app.get("/api/summary")
async def read_summary(repository: LedgerRepository = Depends(get_repository)) -> dict[str, Any]:
    """Per-partner and combined totals over live transactions."""
    document = await repository.load()
    summaries = partner_summaries(document, repository.partners)
    return {
        "partners": list(repository.partners),
        "summaries": {name: s.model_dump(mode="json") for name, s in summaries.items()},
    }


@app.get("/api/debug-sheets")
async def debug_sheets(repository: LedgerRepository = Depends(get_repository)) -> dict[str, Any]:
    """Backend diagnostics (sheet layout, row count, local file path)."""
    return await repository.describe_backends()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000)
