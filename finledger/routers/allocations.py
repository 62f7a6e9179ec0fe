import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlmodel import SQLModel, Field, Session

from ..core.security import get_current_user
from ..database import get_session
from ..models.allocation import Allocation, AllocationType
from ..models.user import User
from ..services import allocations as allocation_service

router = APIRouter(
    prefix="/allocations",
    tags=["allocations"],
)


class AllocationCreate(SQLModel):
    name: str = Field(min_length=1, max_length=100)
    amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    type: AllocationType
    active: bool = True


class AllocationUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=14, decimal_places=2)
    type: Optional[AllocationType] = None
    active: Optional[bool] = None


class MarkPaidIn(SQLModel):
    account_id: uuid.UUID
    # Format is checked by the service so the error matches other month errors.
    month: str


class MonthlyPaymentRead(SQLModel):
    month: str
    account_id: uuid.UUID
    paid: bool
    paid_date: Optional[datetime] = None


class AllocationRead(SQLModel):
    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    amount: Decimal
    type: AllocationType
    active: bool
    monthly_payments: List[MonthlyPaymentRead] = []
    created_at: datetime
    updated_at: datetime


def _allocation_read(allocation: Allocation) -> AllocationRead:
    return AllocationRead(
        id=allocation.id,
        user_id=allocation.user_id,
        name=allocation.name,
        amount=allocation.amount,
        type=allocation.type,
        active=allocation.active,
        monthly_payments=[
            MonthlyPaymentRead(
                month=p.month,
                account_id=p.account_id,
                paid=p.paid,
                paid_date=p.paid_date,
            )
            for p in allocation.monthly_payments
        ],
        created_at=allocation.created_at,
        updated_at=allocation.updated_at,
    )


@router.get(
    "",
    response_model=List[AllocationRead],
)
def list_allocations(
    active: Optional[bool] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    allocations = allocation_service.list_allocations(session, current_user.id, active=active)
    return [_allocation_read(a) for a in allocations]


@router.post(
    "",
    response_model=AllocationRead,
    status_code=status.HTTP_201_CREATED,
)
def create_allocation(
    payload: AllocationCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    allocation = allocation_service.create_allocation(
        session,
        current_user.id,
        name=payload.name,
        amount=payload.amount,
        allocation_type=payload.type,
        active=payload.active,
    )
    return _allocation_read(allocation)


@router.put(
    "/{allocation_id}",
    response_model=AllocationRead,
)
def update_allocation(
    allocation_id: uuid.UUID,
    payload: AllocationUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    allocation = allocation_service.update_allocation(
        session,
        current_user.id,
        allocation_id,
        **payload.model_dump(exclude_unset=True),
    )
    return _allocation_read(allocation)


@router.post(
    "/{allocation_id}/mark-paid",
    response_model=AllocationRead,
)
def mark_paid(
    allocation_id: uuid.UUID,
    payload: MarkPaidIn,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """
    Mark one month of an allocation as paid from the given account.

    - Re-marking a month overwrites its entry and moves the amount again.
    - Expense and savings allocations need enough balance on the account.
    """
    allocation = allocation_service.mark_paid(
        session,
        current_user.id,
        allocation_id,
        month=payload.month,
        account_id=payload.account_id,
    )
    return _allocation_read(allocation)


@router.delete(
    "/{allocation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_allocation(
    allocation_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    allocation_service.delete_allocation(session, current_user.id, allocation_id)
    return None
