"""Account balance mutations.

Every change to ``Account.balance`` goes through :func:`apply_delta` (or
:func:`set_balance` for an explicit edit). The delta functions below are pure:
they only decide the sign of a movement for a given domain event.

``apply_delta`` never reads the balance into Python and writes it back. It
issues one conditional ``UPDATE ... SET balance = balance + :delta`` whose
``WHERE`` clause carries the non-negative guard, so two requests debiting the
same account cannot both pass the check on a stale value.
"""
import uuid
from decimal import Decimal

from loguru import logger
from sqlalchemy import func, update
from sqlmodel import Session

from ..core.clock import utcnow
from ..core.errors import InsufficientBalanceError, NotFoundError, ValidationError
from ..models.account import Account
from ..models.allocation import AllocationType
from ..models.borrowing import BorrowingType
from ..models.category import EntryType
from ..repository import find_owned


CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS)


def positive_amount(amount) -> Decimal:
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Amount must be greater than 0")
    return amount


def transaction_create_delta(entry_type: EntryType, amount) -> Decimal:
    amount = positive_amount(amount)
    return amount if EntryType(entry_type) == EntryType.INCOME else -amount


def transaction_delete_delta(entry_type: EntryType, amount) -> Decimal:
    return -transaction_create_delta(entry_type, amount)


def allocation_mark_paid_delta(allocation_type: AllocationType, amount) -> Decimal:
    amount = positive_amount(amount)
    return amount if AllocationType(allocation_type) == AllocationType.INCOME else -amount


def borrowing_create_delta(borrowing_type: BorrowingType, total_amount) -> Decimal:
    # Borrowed money lands in the account; lent money leaves it.
    total_amount = positive_amount(total_amount)
    return total_amount if BorrowingType(borrowing_type) == BorrowingType.BORROW else -total_amount


def borrowing_pay_delta(borrowing_type: BorrowingType, amount) -> Decimal:
    return -borrowing_create_delta(borrowing_type, amount)


def borrowing_delete_delta(borrowing_type: BorrowingType, total_amount) -> Decimal:
    # Undo the creation effect once; payments made since are not unwound.
    return -borrowing_create_delta(borrowing_type, total_amount)


def apply_delta(
    session: Session,
    account: Account,
    delta,
    *,
    floor: bool = True,
    reason: str = "",
) -> Account:
    """Add ``delta`` to the account balance inside the session's transaction.

    With ``floor`` set, the update only matches when the resulting balance is
    not negative; a miss raises :class:`InsufficientBalanceError` and nothing
    is written. An account deleted since it was loaded raises
    :class:`NotFoundError` instead. The caller owns the commit.
    """
    delta = to_money(delta)
    new_balance = func.round(Account.balance + delta, 2)

    stmt = update(Account).where(Account.id == account.id, Account.user_id == account.user_id)
    if floor:
        stmt = stmt.where(new_balance >= 0)
    stmt = stmt.values(balance=new_balance, updated_at=utcnow())
    stmt = stmt.execution_options(synchronize_session=False)

    result = session.exec(stmt)
    if result.rowcount == 0:
        if find_owned(session, Account, account.id, account.user_id) is None:
            logger.warning("Account {} disappeared before {}", account.id, reason or "mutation")
            raise NotFoundError("Account not found")
        logger.info("Rejected {} of {} on account {}: insufficient balance", reason or "mutation", delta, account.id)
        raise InsufficientBalanceError()

    session.refresh(account)
    logger.info("Account {} balance {:+} ({}) -> {}", account.id, delta, reason or "mutation", account.balance)
    return account


def set_balance(session: Session, account: Account, new_balance, reason: str = "adjustment") -> Account:
    new_balance = to_money(new_balance)
    if new_balance < 0:
        raise ValidationError("Balance cannot be negative")
    stmt = (
        update(Account)
        .where(Account.id == account.id, Account.user_id == account.user_id)
        .values(balance=new_balance, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    session.exec(stmt)
    session.refresh(account)
    logger.info("Account {} balance set to {} ({})", account.id, new_balance, reason)
    return account


def reverse_on_account(
    session: Session,
    account_id: uuid.UUID,
    user_id: uuid.UUID,
    delta,
    *,
    floor: bool,
    reason: str,
) -> bool:
    """Apply ``delta`` to an account that may no longer exist.

    Returns False when the account is gone, which callers treat as nothing
    to reverse.
    """
    account = find_owned(session, Account, account_id, user_id)
    if account is None:
        logger.warning("Account {} missing while reversing {}; skipped", account_id, reason)
        return False
    apply_delta(session, account, delta, floor=floor, reason=reason)
    return True
