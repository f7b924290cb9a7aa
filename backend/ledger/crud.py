from sqlmodel import Session, select
from sqlalchemy import delete, update
from .models import engine, Transaction, TransactionCreate
from typing import List, Optional


# One statement per helper; each opens its own short-lived session on the shared engine.

def list_transactions() -> List[Transaction]:
    """Return all transactions, most recent first."""
    with Session(engine) as session:
        stmt = select(Transaction).order_by(Transaction.created_at.desc(), Transaction.id.desc())
        return list(session.exec(stmt).all())


def create_transaction(data: TransactionCreate) -> Transaction:
    """Insert a transaction and return it with its assigned id and created_at."""
    tx = Transaction(description=data.description, amount=data.amount, type=data.type)
    with Session(engine) as session:
        session.add(tx)
        session.commit()
        session.refresh(tx)
    return tx


def get_transaction(transaction_id: int) -> Optional[Transaction]:
    """Return a single transaction by id or None if not found."""
    with Session(engine) as session:
        return session.get(Transaction, transaction_id)


def update_transaction(transaction_id: int, data: TransactionCreate) -> bool:
    """
    Replace description, amount and type of a transaction.
    Returns False when no row has that id.
    """
    stmt = (
        update(Transaction)
        .where(Transaction.id == transaction_id)
        .values(description=data.description, amount=data.amount, type=data.type)
    )
    with Session(engine) as session:
        result = session.exec(stmt)
        session.commit()
        return result.rowcount > 0


def delete_transaction(transaction_id: int) -> bool:
    """Delete a transaction by id. Returns True if deleted, False if not found."""
    with Session(engine) as session:
        result = session.exec(delete(Transaction).where(Transaction.id == transaction_id))
        session.commit()
        return result.rowcount > 0
