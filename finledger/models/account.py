import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field

from ..core.clock import utcnow


class AccountType(str, Enum):
    BANK = "bank"
    WALLET = "wallet"
    INVESTMENT = "investment"
    CASH = "cash"


class Account(SQLModel, table=True):
    __tablename__ = "accounts"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    name: str = Field(max_length=100)
    type: AccountType
    # Written only through services.balance.apply_delta
    balance: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    currency: str = Field(default="BDT", max_length=3)
    icon: Optional[str] = Field(default=None, max_length=50)
    color: str = Field(default="#6366f1", max_length=7)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
