import uuid
from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field

from ..core.clock import utcnow


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    email: str = Field(index=True, unique=True)
    hashed_password: str
    name: Optional[str] = Field(default=None, max_length=100)
    default_currency: str = Field(default="BDT", max_length=3)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
