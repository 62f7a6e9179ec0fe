import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import EmailStr
from sqlmodel import SQLModel, Field, Session

from ..core.security import get_current_user
from ..database import get_session
from ..models.borrowing import BorrowingStatus, BorrowingTransactionType, BorrowingType
from ..models.user import User
from ..services import borrowings as borrowing_service

router = APIRouter(
    prefix="/borrowings",
    tags=["borrowings"],
)


class BorrowingCreate(SQLModel):
    friend_name: str = Field(min_length=1, max_length=100)
    friend_email: Optional[EmailStr] = None
    friend_phone: Optional[str] = Field(default=None, max_length=50)
    type: BorrowingType
    total_amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    initial_account_id: Optional[uuid.UUID] = None


class BorrowingUpdate(SQLModel):
    friend_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    friend_email: Optional[EmailStr] = None
    friend_phone: Optional[str] = Field(default=None, max_length=50)
    total_amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=14, decimal_places=2)


class PayIn(SQLModel):
    amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    account_id: uuid.UUID
    date: Optional[datetime] = None
    note: Optional[str] = Field(default=None, max_length=500)


class BorrowingRead(SQLModel):
    id: uuid.UUID
    user_id: uuid.UUID
    friend_name: str
    friend_email: Optional[str] = None
    friend_phone: Optional[str] = None
    type: BorrowingType
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    status: BorrowingStatus
    initial_account_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime


class BorrowingTransactionRead(SQLModel):
    id: uuid.UUID
    borrowing_id: uuid.UUID
    account_id: uuid.UUID
    amount: Decimal
    date: datetime
    note: Optional[str] = None
    type: BorrowingTransactionType


class BorrowingDetail(SQLModel):
    borrowing: BorrowingRead
    transactions: List[BorrowingTransactionRead]


class PayOut(SQLModel):
    borrowing: BorrowingRead
    transaction: BorrowingTransactionRead


@router.get(
    "",
    response_model=List[BorrowingRead],
)
def list_borrowings(
    type: Optional[BorrowingType] = None,
    status_filter: Optional[BorrowingStatus] = Query(default=None, alias="status"),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return borrowing_service.list_borrowings(session, current_user.id, borrowing_type=type, status=status_filter)


@router.get(
    "/{borrowing_id}",
    response_model=BorrowingDetail,
)
def get_borrowing(
    borrowing_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """A borrowing with its payment history, newest payment first."""
    borrowing, transactions = borrowing_service.get_borrowing_detail(session, current_user.id, borrowing_id)
    return BorrowingDetail(
        borrowing=BorrowingRead.model_validate(borrowing, from_attributes=True),
        transactions=[BorrowingTransactionRead.model_validate(t, from_attributes=True) for t in transactions],
    )


@router.post(
    "",
    response_model=BorrowingRead,
    status_code=status.HTTP_201_CREATED,
)
def create_borrowing(
    payload: BorrowingCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """
    Record money borrowed from or lent to a friend.

    - With initial_account_id, a borrow credits the account and a lend debits it.
    - A lend needs enough balance on the account.
    """
    return borrowing_service.create_borrowing(
        session,
        current_user.id,
        friend_name=payload.friend_name,
        borrowing_type=payload.type,
        total_amount=payload.total_amount,
        friend_email=payload.friend_email.lower() if payload.friend_email else None,
        friend_phone=payload.friend_phone.strip() if payload.friend_phone else None,
        initial_account_id=payload.initial_account_id,
    )


@router.post(
    "/{borrowing_id}/pay",
    response_model=PayOut,
)
def pay_borrowing(
    borrowing_id: uuid.UUID,
    payload: PayIn,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Repay a borrow or record money returned on a lend."""
    borrowing, transaction = borrowing_service.pay_borrowing(
        session,
        current_user.id,
        borrowing_id,
        amount=payload.amount,
        account_id=payload.account_id,
        date=payload.date,
        note=payload.note.strip() if payload.note else None,
    )
    return PayOut(
        borrowing=BorrowingRead.model_validate(borrowing, from_attributes=True),
        transaction=BorrowingTransactionRead.model_validate(transaction, from_attributes=True),
    )


@router.put(
    "/{borrowing_id}",
    response_model=BorrowingRead,
)
def update_borrowing(
    borrowing_id: uuid.UUID,
    payload: BorrowingUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return borrowing_service.update_borrowing(
        session,
        current_user.id,
        borrowing_id,
        **payload.model_dump(exclude_unset=True),
    )


@router.delete(
    "/{borrowing_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_borrowing(
    borrowing_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Delete a borrowing and its payments, undoing its opening balance effect."""
    borrowing_service.delete_borrowing(session, current_user.id, borrowing_id)
    return None
