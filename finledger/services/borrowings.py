"""Borrowing and lending records.

A borrowing is ``active`` while anything remains to be repaid and
``completed`` once ``paid_amount`` reaches ``total_amount``. The derived
``remaining_amount`` and ``status`` are recomputed by the model on every
flush (see ``Borrowing.recompute_remaining``); this module only moves
``paid_amount`` and ``total_amount`` and routes the account side of each
event through :mod:`finledger.services.balance`.
"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from loguru import logger
from sqlalchemy import delete
from sqlmodel import Session, select

from ..core.clock import utcnow
from ..core.errors import InvalidStateError
from ..database import atomic
from ..models.account import Account
from ..models.borrowing import (
    Borrowing,
    BorrowingStatus,
    BorrowingTransaction,
    BorrowingTransactionType,
    BorrowingType,
)
from ..repository import get_owned, list_owned
from . import balance


def create_borrowing(
    session: Session,
    user_id: uuid.UUID,
    friend_name: str,
    borrowing_type: BorrowingType,
    total_amount: Decimal,
    friend_email: Optional[str] = None,
    friend_phone: Optional[str] = None,
    initial_account_id: Optional[uuid.UUID] = None,
) -> Borrowing:
    borrowing_type = BorrowingType(borrowing_type)
    total_amount = balance.positive_amount(total_amount)

    with atomic(session):
        if initial_account_id is not None:
            account = get_owned(session, Account, initial_account_id, user_id)
            balance.apply_delta(
                session,
                account,
                balance.borrowing_create_delta(borrowing_type, total_amount),
                floor=borrowing_type == BorrowingType.LEND,
                reason=f"{borrowing_type.value} with {friend_name}",
            )

        now = utcnow()
        borrowing = Borrowing(
            user_id=user_id,
            friend_name=friend_name.strip(),
            friend_email=friend_email or None,
            friend_phone=friend_phone or None,
            type=borrowing_type,
            total_amount=total_amount,
            paid_amount=Decimal("0"),
            initial_account_id=initial_account_id,
            created_at=now,
            updated_at=now,
        )
        borrowing.recompute_remaining()
        session.add(borrowing)

    session.refresh(borrowing)
    logger.info("Borrowing {} ({}) created for user {}", borrowing.id, borrowing_type.value, user_id)
    return borrowing


def list_borrowings(
    session: Session,
    user_id: uuid.UUID,
    borrowing_type: Optional[BorrowingType] = None,
    status: Optional[BorrowingStatus] = None,
) -> List[Borrowing]:
    filters = []
    if borrowing_type is not None:
        filters.append(Borrowing.type == BorrowingType(borrowing_type))
    if status is not None:
        filters.append(Borrowing.status == BorrowingStatus(status))
    return list_owned(session, Borrowing, user_id, *filters, order_by=Borrowing.created_at.desc())


def list_borrowing_transactions(session: Session, borrowing: Borrowing) -> List[BorrowingTransaction]:
    stmt = (
        select(BorrowingTransaction)
        .where(
            BorrowingTransaction.borrowing_id == borrowing.id,
            BorrowingTransaction.user_id == borrowing.user_id,
        )
        .order_by(BorrowingTransaction.date.desc(), BorrowingTransaction.created_at.desc())
    )
    return list(session.exec(stmt).all())


def get_borrowing_detail(
    session: Session, user_id: uuid.UUID, borrowing_id: uuid.UUID
) -> Tuple[Borrowing, List[BorrowingTransaction]]:
    borrowing = get_owned(session, Borrowing, borrowing_id, user_id)
    return borrowing, list_borrowing_transactions(session, borrowing)


def update_borrowing(session: Session, user_id: uuid.UUID, borrowing_id: uuid.UUID, **changes) -> Borrowing:
    """Edit counterparty details or the total.

    Changing the total does not touch any account; it only re-derives the
    remaining amount, which can move a completed borrowing back to active.
    """
    with atomic(session):
        borrowing = get_owned(session, Borrowing, borrowing_id, user_id)
        if changes.get("friend_name"):
            borrowing.friend_name = changes["friend_name"].strip()
        if "friend_email" in changes:
            borrowing.friend_email = changes["friend_email"] or None
        if "friend_phone" in changes:
            borrowing.friend_phone = changes["friend_phone"] or None
        if changes.get("total_amount") is not None:
            borrowing.total_amount = balance.positive_amount(changes["total_amount"])
        borrowing.recompute_remaining()
        borrowing.updated_at = utcnow()
        session.add(borrowing)

    session.refresh(borrowing)
    return borrowing


def pay_borrowing(
    session: Session,
    user_id: uuid.UUID,
    borrowing_id: uuid.UUID,
    amount: Decimal,
    account_id: uuid.UUID,
    date: Optional[datetime] = None,
    note: Optional[str] = None,
) -> Tuple[Borrowing, BorrowingTransaction]:
    """Repay part of a borrow, or receive part of a lend back.

    A borrow repayment leaves the account and needs the funds; a lend return
    arrives in the account. The payment may not exceed what remains.
    """
    amount = balance.positive_amount(amount)

    with atomic(session):
        borrowing = get_owned(session, Borrowing, borrowing_id, user_id, for_update=True)
        if borrowing.status == BorrowingStatus.COMPLETED:
            raise InvalidStateError("This borrowing is already completed")

        account = get_owned(session, Account, account_id, user_id)

        remaining = Decimal(borrowing.total_amount) - Decimal(borrowing.paid_amount)
        if amount > remaining:
            raise InvalidStateError(
                f"Payment amount exceeds remaining amount. Maximum payment: {balance.to_money(remaining)}"
            )

        balance.apply_delta(
            session,
            account,
            balance.borrowing_pay_delta(borrowing.type, amount),
            floor=borrowing.type == BorrowingType.BORROW,
            reason=f"{borrowing.type.value} payment",
        )

        now = utcnow()
        borrowing.paid_amount = balance.to_money(Decimal(borrowing.paid_amount) + amount)
        borrowing.recompute_remaining()
        borrowing.updated_at = now
        session.add(borrowing)

        transaction = BorrowingTransaction(
            borrowing_id=borrowing.id,
            user_id=user_id,
            account_id=account.id,
            amount=amount,
            date=date or now,
            note=note,
            type=(
                BorrowingTransactionType.PAYMENT
                if borrowing.type == BorrowingType.BORROW
                else BorrowingTransactionType.RETURN
            ),
            created_at=now,
        )
        session.add(transaction)

    session.refresh(borrowing)
    session.refresh(transaction)
    logger.info(
        "Borrowing {} paid {} ({}), remaining {}",
        borrowing.id,
        amount,
        borrowing.status.value,
        borrowing.remaining_amount,
    )
    return borrowing, transaction


def delete_borrowing(session: Session, user_id: uuid.UUID, borrowing_id: uuid.UUID) -> None:
    """Delete a borrowing with its payment history.

    Only the creation effect on ``initial_account_id`` is undone, once, no
    matter how much was repaid since. The reversal is held to the balance
    floor, so a borrow whose money has already been spent cannot be deleted
    until the account is topped up.
    """
    with atomic(session):
        borrowing = get_owned(session, Borrowing, borrowing_id, user_id)

        if borrowing.initial_account_id is not None:
            balance.reverse_on_account(
                session,
                borrowing.initial_account_id,
                user_id,
                balance.borrowing_delete_delta(borrowing.type, borrowing.total_amount),
                floor=True,
                reason=f"{borrowing.type.value} delete",
            )

        session.exec(
            delete(BorrowingTransaction).where(
                BorrowingTransaction.borrowing_id == borrowing.id,
                BorrowingTransaction.user_id == user_id,
            )
        )
        session.delete(borrowing)

    logger.info("Borrowing {} and its transactions deleted for user {}", borrowing_id, user_id)
