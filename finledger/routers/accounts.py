import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy import delete
from sqlmodel import SQLModel, Field, Session

from ..core.clock import utcnow
from ..core.security import get_current_user
from ..database import atomic, get_session
from ..models.account import Account, AccountType
from ..models.transaction import Transaction
from ..models.user import User
from ..repository import get_owned, list_owned
from ..services import balance

router = APIRouter(
    prefix="/accounts",
    tags=["accounts"],
)

_HEX_COLOR = "^#[0-9A-Fa-f]{6}$"


class AccountCreate(SQLModel):
    name: str = Field(min_length=1, max_length=100)
    type: AccountType
    balance: Decimal = Field(default=Decimal("0"), ge=0, max_digits=14, decimal_places=2)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    icon: Optional[str] = Field(default=None, max_length=50)
    color: Optional[str] = Field(default=None, regex=_HEX_COLOR)


class AccountUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[AccountType] = None
    balance: Optional[Decimal] = Field(default=None, ge=0, max_digits=14, decimal_places=2)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    icon: Optional[str] = Field(default=None, max_length=50)
    color: Optional[str] = Field(default=None, regex=_HEX_COLOR)


class AccountRead(SQLModel):
    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    type: AccountType
    balance: Decimal
    currency: str
    icon: Optional[str] = None
    color: str
    created_at: datetime
    updated_at: datetime


@router.get(
    "",
    response_model=List[AccountRead],
)
def list_accounts(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return list_owned(session, Account, current_user.id, order_by=Account.created_at.desc())


@router.post(
    "",
    response_model=AccountRead,
    status_code=status.HTTP_201_CREATED,
)
def create_account(
    payload: AccountCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    # The opening balance is the account's starting state, not a movement.
    now = utcnow()
    account = Account(
        user_id=current_user.id,
        name=payload.name.strip(),
        type=payload.type,
        balance=balance.to_money(payload.balance),
        currency=payload.currency or current_user.default_currency,
        icon=payload.icon or None,
        color=payload.color or "#6366f1",
        created_at=now,
        updated_at=now,
    )
    with atomic(session):
        session.add(account)
    session.refresh(account)
    return account


@router.put(
    "/{account_id}",
    response_model=AccountRead,
)
def update_account(
    account_id: uuid.UUID,
    payload: AccountUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    changes = payload.model_dump(exclude_unset=True)
    with atomic(session):
        account = get_owned(session, Account, account_id, current_user.id)
        if changes.get("balance") is not None:
            balance.set_balance(session, account, changes["balance"], reason="manual edit")
        if changes.get("name"):
            account.name = changes["name"].strip()
        if changes.get("type"):
            account.type = changes["type"]
        if changes.get("currency"):
            account.currency = changes["currency"]
        if "icon" in changes:
            account.icon = changes["icon"] or None
        if changes.get("color"):
            account.color = changes["color"]
        account.updated_at = utcnow()
        session.add(account)
    session.refresh(account)
    return account


@router.delete(
    "/{account_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_account(
    account_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Delete an account together with the transactions recorded on it."""
    with atomic(session):
        account = get_owned(session, Account, account_id, current_user.id)
        session.exec(
            delete(Transaction).where(
                Transaction.account_id == account.id,
                Transaction.user_id == current_user.id,
            )
        )
        session.delete(account)
    return None
