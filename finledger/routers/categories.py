import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlmodel import SQLModel, Field, Session

from ..core.clock import utcnow
from ..core.security import get_current_user
from ..database import atomic, get_session
from ..models.category import Category, EntryType
from ..models.user import User
from ..repository import get_owned, list_owned

router = APIRouter(
    prefix="/categories",
    tags=["categories"],
)

_HEX_COLOR = "^#[0-9A-Fa-f]{6}$"


class CategoryCreate(SQLModel):
    name: str = Field(min_length=1, max_length=100)
    type: EntryType
    color: str = Field(regex=_HEX_COLOR)
    budget: Optional[Decimal] = Field(default=None, ge=0, max_digits=14, decimal_places=2)


class CategoryUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[EntryType] = None
    color: Optional[str] = Field(default=None, regex=_HEX_COLOR)
    budget: Optional[Decimal] = Field(default=None, ge=0, max_digits=14, decimal_places=2)


class CategoryRead(SQLModel):
    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    type: EntryType
    color: str
    budget: Optional[Decimal] = None
    created_at: datetime
    updated_at: datetime


@router.get(
    "",
    response_model=List[CategoryRead],
)
def list_categories(
    type: Optional[EntryType] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    filters = [] if type is None else [Category.type == type]
    return list_owned(session, Category, current_user.id, *filters, order_by=Category.created_at.desc())


@router.post(
    "",
    response_model=CategoryRead,
    status_code=status.HTTP_201_CREATED,
)
def create_category(
    payload: CategoryCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    now = utcnow()
    category = Category(
        user_id=current_user.id,
        name=payload.name.strip(),
        type=payload.type,
        color=payload.color,
        budget=payload.budget,
        created_at=now,
        updated_at=now,
    )
    with atomic(session):
        session.add(category)
    session.refresh(category)
    return category


@router.put(
    "/{category_id}",
    response_model=CategoryRead,
)
def update_category(
    category_id: uuid.UUID,
    payload: CategoryUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    changes = payload.model_dump(exclude_unset=True)
    with atomic(session):
        category = get_owned(session, Category, category_id, current_user.id)
        if changes.get("name"):
            category.name = changes["name"].strip()
        if changes.get("type"):
            category.type = changes["type"]
        if changes.get("color"):
            category.color = changes["color"]
        if "budget" in changes:
            category.budget = changes["budget"]
        category.updated_at = utcnow()
        session.add(category)
    session.refresh(category)
    return category


@router.delete(
    "/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_category(
    category_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    with atomic(session):
        category = get_owned(session, Category, category_id, current_user.id)
        session.delete(category)
    return None
