from contextlib import asynccontextmanager
from datetime import timezone
from pathlib import Path
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError
from .config import settings
from .models import Transaction, TransactionCreate, create_db_and_tables, wait_for_database
from . import crud, models
import logging

STATIC_DIR = Path(__file__).resolve().parent / "static"

ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
ALLOW_HEADERS = "Content-Type, Authorization"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # a DatabaseUnavailableError here aborts startup and the server exits
    await run_in_threadpool(wait_for_database)
    await run_in_threadpool(create_db_and_tables)
    yield
    models.engine.dispose()


app = FastAPI(title="Transaction Ledger - Backend", lifespan=lifespan)


@app.middleware("http")
async def cors_headers(request: Request, call_next):
    """Echo allow-listed origins and answer every preflight without touching the handlers."""
    if request.method == "OPTIONS":
        response = Response(status_code=200)
    else:
        response = await call_next(request)

    origin = request.headers.get("origin")
    if origin and origin in settings.allowed_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
    response.headers["Access-Control-Allow-Methods"] = ALLOW_METHODS
    response.headers["Access-Control-Allow-Headers"] = ALLOW_HEADERS
    return response


@app.exception_handler(StarletteHTTPException)
async def plain_text_http_error(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if exc.status_code == 405:
        detail = "method not allowed"
    elif exc.status_code == 404 and detail == "Not Found":
        detail = "not found"
    return PlainTextResponse(str(detail), status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def plain_text_validation_error(request: Request, exc: RequestValidationError):
    """Map FastAPI's 422 payloads onto the 400 plain-text messages clients expect."""
    errors = exc.errors()
    if any(err.get("loc", ())[:1] == ("path",) for err in errors):
        message = "invalid transaction id"
    elif any(err.get("type") == "json_invalid" or tuple(err.get("loc", ())) == ("body",) for err in errors):
        message = "malformed JSON body"
    else:
        message = "invalid description, amount or type"
    return PlainTextResponse(message, status_code=400)


def _tx_to_dict(tx: Transaction) -> dict:
    created_at = tx.created_at
    # drivers without time zone support hand back naive UTC values
    if created_at is not None and created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return {
        "id": tx.id,
        "description": tx.description,
        "amount": float(tx.amount) if tx.amount is not None else None,
        "type": tx.type,
        "created_at": created_at.isoformat() if created_at else None,
    }


def _server_error(e: Exception, where: str) -> HTTPException:
    logging.exception("%s failed", where)
    return HTTPException(status_code=500, detail=str(e))


@app.get("/transactions")
def api_transactions():
    try:
        items = crud.list_transactions()
    except SQLAlchemyError as e:
        raise _server_error(e, "list_transactions")
    return [_tx_to_dict(t) for t in items]


@app.post("/transaction", status_code=201)
def api_transaction_create(payload: TransactionCreate):
    try:
        tx = crud.create_transaction(payload)
    except SQLAlchemyError as e:
        raise _server_error(e, "create_transaction")
    return _tx_to_dict(tx)


@app.get("/transaction/{txn_id}")
def api_transaction_get(txn_id: int):
    try:
        tx = crud.get_transaction(txn_id)
    except SQLAlchemyError as e:
        raise _server_error(e, "get_transaction")
    if not tx:
        raise HTTPException(status_code=404, detail="transaction not found")
    return _tx_to_dict(tx)


@app.put("/transaction/{txn_id}", response_class=PlainTextResponse)
def api_transaction_put(txn_id: int, payload: TransactionCreate):
    try:
        updated = crud.update_transaction(txn_id, payload)
    except SQLAlchemyError as e:
        raise _server_error(e, "update_transaction")
    if not updated:
        raise HTTPException(status_code=404, detail="transaction not found")
    return f"Transaction {txn_id} updated successfully"


@app.delete("/transaction/{txn_id}", response_class=PlainTextResponse)
def api_transaction_delete(txn_id: int):
    try:
        deleted = crud.delete_transaction(txn_id)
    except SQLAlchemyError as e:
        raise _server_error(e, "delete_transaction")
    if not deleted:
        raise HTTPException(status_code=404, detail="transaction not found")
    return f"Transaction {txn_id} deleted successfully"


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/", include_in_schema=False)
def index():
    return FileResponse(STATIC_DIR / "index.html", media_type="text/html")
