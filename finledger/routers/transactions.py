import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlmodel import SQLModel, Field, Session

from ..core.security import get_current_user
from ..database import get_session
from ..models.category import EntryType
from ..models.user import User
from ..services import transactions as transaction_service

router = APIRouter(
    prefix="/transactions",
    tags=["transactions"],
)


# ─────────────────────────────
#   SCHEMAS
# ─────────────────────────────

class TransactionCreate(SQLModel):
    account_id: uuid.UUID
    category_id: uuid.UUID
    amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    type: EntryType
    date: Optional[datetime] = None
    note: Optional[str] = Field(default=None, max_length=500)


class TransactionRead(SQLModel):
    id: uuid.UUID
    user_id: uuid.UUID
    account_id: uuid.UUID
    category_id: uuid.UUID
    date: datetime
    amount: Decimal
    type: EntryType
    note: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# ─────────────────────────────
#   ENDPOINTS
# ─────────────────────────────

@router.get(
    "",
    response_model=List[TransactionRead],
)
def list_transactions(
    type: Optional[EntryType] = None,
    account_id: Optional[uuid.UUID] = None,
    category_id: Optional[uuid.UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """List the user's transactions, newest first."""
    return transaction_service.list_transactions(
        session,
        current_user.id,
        entry_type=type,
        account_id=account_id,
        category_id=category_id,
        start_date=start_date,
        end_date=end_date,
    )


@router.post(
    "",
    response_model=TransactionRead,
    status_code=status.HTTP_201_CREATED,
)
def create_transaction(
    payload: TransactionCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """
    Record a transaction and apply it to the account balance.

    - The category type must match the transaction type.
    - An expense larger than the account balance is rejected and nothing is saved.
    """
    return transaction_service.create_transaction(
        session,
        current_user.id,
        account_id=payload.account_id,
        category_id=payload.category_id,
        amount=payload.amount,
        entry_type=payload.type,
        date=payload.date,
        note=payload.note.strip() if payload.note else None,
    )


@router.delete(
    "/{transaction_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_transaction(
    transaction_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Delete a transaction and reverse its effect on the account balance."""
    transaction_service.delete_transaction(session, current_user.id, transaction_id)
    return None
