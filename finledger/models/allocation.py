import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship

from ..core.clock import utcnow


class AllocationType(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"
    SAVINGS = "savings"


class AllocationPayment(SQLModel, table=True):
    __tablename__ = "allocation_payments"
    __table_args__ = (UniqueConstraint("allocation_id", "month", name="uq_allocation_payment_month"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    allocation_id: uuid.UUID = Field(foreign_key="allocations.id", index=True)
    # Loose reference; the account may be deleted later
    account_id: uuid.UUID

    # YYYY-MM (e.g. 2025-01)
    month: str = Field(min_length=7, max_length=7)
    paid: bool = Field(default=False)
    paid_date: Optional[datetime] = Field(default=None)
    # Insertion order within the allocation, not calendar order
    position: int = Field(default=0)

    allocation: Optional["Allocation"] = Relationship(back_populates="monthly_payments")


class Allocation(SQLModel, table=True):
    __tablename__ = "allocations"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    name: str = Field(max_length=100)
    amount: Decimal = Field(max_digits=14, decimal_places=2)
    type: AllocationType
    active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    monthly_payments: List[AllocationPayment] = Relationship(
        back_populates="allocation",
        sa_relationship_kwargs={
            "order_by": "AllocationPayment.position",
            "cascade": "all, delete-orphan",
        },
    )

    def payment_for(self, month: str) -> Optional[AllocationPayment]:
        for payment in self.monthly_payments:
            if payment.month == month:
                return payment
        return None

    def upsert_payment(self, month: str, account_id: uuid.UUID, paid_date: datetime) -> AllocationPayment:
        """Record ``month`` as paid from ``account_id``.

        An existing entry for the month is overwritten where it stands; a new
        month is appended after the last entry. The set never holds two
        entries for one month.
        """
        payment = self.payment_for(month)
        if payment is None:
            position = max((p.position for p in self.monthly_payments), default=-1) + 1
            payment = AllocationPayment(month=month, position=position, account_id=account_id)
            self.monthly_payments.append(payment)
        payment.account_id = account_id
        payment.paid = True
        payment.paid_date = paid_date
        return payment
