import re
import uuid
from decimal import Decimal
from typing import List, Optional

from loguru import logger
from sqlmodel import Session

from ..core.clock import utcnow
from ..core.errors import ValidationError
from ..database import atomic
from ..models.account import Account
from ..models.allocation import Allocation, AllocationType
from ..models.category import EntryType
from ..models.transaction import Transaction
from ..repository import get_owned, list_owned
from . import balance
from .categories import find_or_create_category


_MONTH_RE = re.compile(r"^[0-9]{4}-[0-9]{2}$")


def validate_month(month: str) -> str:
    if not month or not _MONTH_RE.fullmatch(month):
        raise ValidationError("Month must be in YYYY-MM format")
    return month


def create_allocation(
    session: Session,
    user_id: uuid.UUID,
    name: str,
    amount: Decimal,
    allocation_type: AllocationType,
    active: bool = True,
) -> Allocation:
    now = utcnow()
    allocation = Allocation(
        user_id=user_id,
        name=name.strip(),
        amount=balance.positive_amount(amount),
        type=AllocationType(allocation_type),
        active=active,
        created_at=now,
        updated_at=now,
    )
    with atomic(session):
        session.add(allocation)
    session.refresh(allocation)
    return allocation


def list_allocations(session: Session, user_id: uuid.UUID, active: Optional[bool] = None) -> List[Allocation]:
    filters = [] if active is None else [Allocation.active == active]
    return list_owned(session, Allocation, user_id, *filters, order_by=Allocation.created_at.desc())


def update_allocation(session: Session, user_id: uuid.UUID, allocation_id: uuid.UUID, **changes) -> Allocation:
    with atomic(session):
        allocation = get_owned(session, Allocation, allocation_id, user_id)
        if changes.get("name"):
            allocation.name = changes["name"].strip()
        if changes.get("amount") is not None:
            allocation.amount = balance.positive_amount(changes["amount"])
        if changes.get("type") is not None:
            allocation.type = AllocationType(changes["type"])
        if changes.get("active") is not None:
            allocation.active = changes["active"]
        allocation.updated_at = utcnow()
        session.add(allocation)
    session.refresh(allocation)
    return allocation


def delete_allocation(session: Session, user_id: uuid.UUID, allocation_id: uuid.UUID) -> None:
    with atomic(session):
        allocation = get_owned(session, Allocation, allocation_id, user_id)
        session.delete(allocation)


def mark_paid(
    session: Session,
    user_id: uuid.UUID,
    allocation_id: uuid.UUID,
    month: str,
    account_id: uuid.UUID,
) -> Allocation:
    """Mark ``month`` of an allocation as paid from ``account_id``.

    Every call moves the allocation amount on the account and writes one
    transaction mirroring it, including a repeat call for a month that is
    already paid. The month's payment entry is overwritten in that case, so
    the allocation still holds a single entry per month.
    """
    validate_month(month)

    with atomic(session):
        allocation = get_owned(session, Allocation, allocation_id, user_id)
        account = get_owned(session, Account, account_id, user_id)

        delta = balance.allocation_mark_paid_delta(allocation.type, allocation.amount)
        # Only outgoing allocations are held to the balance floor.
        balance.apply_delta(
            session,
            account,
            delta,
            floor=allocation.type != AllocationType.INCOME,
            reason=f"allocation {allocation.name} {month}",
        )

        now = utcnow()
        allocation.upsert_payment(month, account.id, now)
        allocation.updated_at = now
        session.add(allocation)

        entry_type = EntryType.INCOME if allocation.type == AllocationType.INCOME else EntryType.EXPENSE
        category = find_or_create_category(session, user_id, entry_type)
        session.add(
            Transaction(
                user_id=user_id,
                account_id=account.id,
                category_id=category.id,
                amount=allocation.amount,
                type=entry_type,
                date=now,
                note=f"{allocation.name} - {month}",
                created_at=now,
                updated_at=now,
            )
        )

    session.refresh(allocation)
    logger.info("Allocation {} marked paid for {} from account {}", allocation.id, month, account_id)
    return allocation
