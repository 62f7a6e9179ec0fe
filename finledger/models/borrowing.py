import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import event
from sqlmodel import SQLModel, Field

from ..core.clock import utcnow


class BorrowingType(str, Enum):
    BORROW = "borrow"  # the user owes the friend
    LEND = "lend"  # the friend owes the user


class BorrowingStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class BorrowingTransactionType(str, Enum):
    PAYMENT = "payment"  # repaying a borrow
    RETURN = "return"  # receiving back a lend


class Borrowing(SQLModel, table=True):
    __tablename__ = "borrowings"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    friend_name: str = Field(max_length=100)
    friend_email: Optional[str] = Field(default=None, max_length=255)
    friend_phone: Optional[str] = Field(default=None, max_length=50)
    type: BorrowingType = Field(index=True)

    total_amount: Decimal = Field(max_digits=14, decimal_places=2)
    paid_amount: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    # Derived, see recompute_remaining
    remaining_amount: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    status: BorrowingStatus = Field(default=BorrowingStatus.ACTIVE, index=True)

    initial_account_id: Optional[uuid.UUID] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def recompute_remaining(self) -> None:
        remaining = Decimal(self.total_amount) - Decimal(self.paid_amount or 0)
        if remaining <= 0:
            self.status = BorrowingStatus.COMPLETED
            self.remaining_amount = Decimal("0")
        else:
            self.status = BorrowingStatus.ACTIVE
            self.remaining_amount = remaining


@event.listens_for(Borrowing, "before_insert")
@event.listens_for(Borrowing, "before_update")
def _recompute_before_flush(mapper, connection, target: Borrowing) -> None:
    # Stored remaining_amount/status are never trusted; derive them on every write.
    target.recompute_remaining()


class BorrowingTransaction(SQLModel, table=True):
    __tablename__ = "borrowing_transactions"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    borrowing_id: uuid.UUID = Field(foreign_key="borrowings.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    # Loose reference; the account may be deleted later
    account_id: uuid.UUID

    amount: Decimal = Field(max_digits=14, decimal_places=2)
    date: datetime = Field(default_factory=utcnow, index=True)
    note: Optional[str] = Field(default=None, max_length=500)
    type: BorrowingTransactionType

    created_at: datetime = Field(default_factory=utcnow)
