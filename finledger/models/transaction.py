import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import SQLModel, Field

from ..core.clock import utcnow
from .category import EntryType


class Transaction(SQLModel, table=True):
    __tablename__ = "transactions"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    account_id: uuid.UUID = Field(foreign_key="accounts.id", index=True)
    category_id: uuid.UUID = Field(index=True)

    date: datetime = Field(default_factory=utcnow, index=True)
    amount: Decimal = Field(max_digits=14, decimal_places=2)
    type: EntryType
    note: Optional[str] = Field(default=None, max_length=500)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
