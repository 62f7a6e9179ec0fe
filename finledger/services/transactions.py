import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from loguru import logger
from sqlmodel import Session

from ..core.clock import utcnow
from ..core.errors import ValidationError
from ..database import atomic
from ..models.account import Account
from ..models.category import Category, EntryType
from ..models.transaction import Transaction
from ..repository import get_owned, list_owned
from . import balance


def create_transaction(
    session: Session,
    user_id: uuid.UUID,
    account_id: uuid.UUID,
    category_id: uuid.UUID,
    amount: Decimal,
    entry_type: EntryType,
    date: Optional[datetime] = None,
    note: Optional[str] = None,
) -> Transaction:
    """Record a transaction and move its amount on the account, all or nothing."""
    with atomic(session):
        account = get_owned(session, Account, account_id, user_id)
        category = get_owned(session, Category, category_id, user_id)
        if category.type != EntryType(entry_type):
            raise ValidationError("Category type does not match transaction type")

        delta = balance.transaction_create_delta(entry_type, amount)
        balance.apply_delta(session, account, delta, reason="transaction")

        now = utcnow()
        transaction = Transaction(
            user_id=user_id,
            account_id=account.id,
            category_id=category.id,
            amount=balance.to_money(amount),
            type=EntryType(entry_type),
            date=date or now,
            note=note,
            created_at=now,
            updated_at=now,
        )
        session.add(transaction)

    session.refresh(transaction)
    logger.info("Transaction {} created for user {}", transaction.id, user_id)
    return transaction


def list_transactions(
    session: Session,
    user_id: uuid.UUID,
    entry_type: Optional[EntryType] = None,
    account_id: Optional[uuid.UUID] = None,
    category_id: Optional[uuid.UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> List[Transaction]:
    filters = []
    if entry_type is not None:
        filters.append(Transaction.type == entry_type)
    if account_id is not None:
        filters.append(Transaction.account_id == account_id)
    if category_id is not None:
        filters.append(Transaction.category_id == category_id)
    if start_date is not None:
        filters.append(Transaction.date >= start_date)
    if end_date is not None:
        filters.append(Transaction.date <= end_date)
    return list_owned(
        session,
        Transaction,
        user_id,
        *filters,
        order_by=(Transaction.date.desc(), Transaction.created_at.desc()),
    )


def delete_transaction(session: Session, user_id: uuid.UUID, transaction_id: uuid.UUID) -> None:
    """Remove a transaction after taking its effect back off the account.

    The reversal has no floor: undoing a past movement is always allowed.
    """
    with atomic(session):
        transaction = get_owned(session, Transaction, transaction_id, user_id)
        delta = balance.transaction_delete_delta(transaction.type, transaction.amount)
        balance.reverse_on_account(
            session,
            transaction.account_id,
            user_id,
            delta,
            floor=False,
            reason="transaction delete",
        )
        session.delete(transaction)

    logger.info("Transaction {} deleted for user {}", transaction_id, user_id)
