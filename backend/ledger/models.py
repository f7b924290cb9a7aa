from sqlmodel import SQLModel, Field, create_engine
from pydantic import field_validator
from typing import Optional
from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, Numeric, String, func, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
import logging
import math
import time

from .config import settings

TRANSACTION_TYPES = ("income", "expense")

# shared pool; sessions are opened per request in crud
engine = create_engine(settings.database_url, echo=False, pool_pre_ping=True)


class DatabaseUnavailableError(RuntimeError):
    """Raised when the datastore cannot be reached within the startup retry budget."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransactionBase(SQLModel):
    description: str = Field(min_length=1)
    amount: float = Field(gt=0)
    # "income" or "expense"
    type: str

    @field_validator("amount", mode="before")
    @classmethod
    def check_amount(cls, v):
        # JSON numbers only: no booleans, numeric strings, NaN or Infinity
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("amount must be a JSON number")
        if isinstance(v, float) and not math.isfinite(v):
            raise ValueError("amount must be finite")
        return v

    @field_validator("type")
    @classmethod
    def check_type(cls, v: str) -> str:
        if v not in TRANSACTION_TYPES:
            raise ValueError(f"type must be one of {', '.join(TRANSACTION_TYPES)}")
        return v


class TransactionCreate(TransactionBase):
    """Request body for both create and full update."""


class Transaction(TransactionBase, table=True):
    __tablename__ = "transactions"

    id: Optional[int] = Field(default=None, primary_key=True)
    amount: float = Field(sa_column=Column(Numeric(10, 2, asdecimal=False), nullable=False))
    type: str = Field(sa_column=Column(String(10), nullable=False))
    # assigned on insert; the server default covers rows written outside the API
    created_at: Optional[datetime] = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, server_default=func.now()),
    )


def wait_for_database(db_engine: Optional[Engine] = None,
                      attempts: Optional[int] = None,
                      delay: Optional[float] = None) -> None:
    """
    Block until the datastore answers a trivial query.
    Tries `attempts` times with a fixed `delay` (seconds) between tries and raises
    DatabaseUnavailableError once the budget is spent.
    """
    db_engine = db_engine or engine
    attempts = attempts if attempts is not None else settings.db_connect_attempts
    delay = delay if delay is not None else settings.db_connect_delay

    last_error: Optional[Exception] = None
    for attempt in range(1, attempts + 1):
        try:
            with db_engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logging.info("Connected to database %s", db_engine.url.render_as_string(hide_password=True))
            return
        except SQLAlchemyError as e:
            last_error = e
            logging.warning("Could not connect to database, retrying in %s seconds (%d/%d): %s",
                            delay, attempt, attempts, e)
            if attempt < attempts:
                time.sleep(delay)
    raise DatabaseUnavailableError(f"database unreachable after {attempts} attempts") from last_error


def create_db_and_tables(db_engine: Optional[Engine] = None) -> None:
    """Create the transactions table if it does not exist yet."""
    db_engine = db_engine or engine
    SQLModel.metadata.create_all(db_engine)
    logging.info("Table '%s' verified/created", Transaction.__tablename__)
