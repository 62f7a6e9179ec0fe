"""Ownership-scoped lookups shared by every service and router.

Nothing outside this module fetches a user-owned row by id. An id that
belongs to somebody else is reported exactly like an id that does not exist.
"""
import uuid
from typing import List, Optional, Type, TypeVar

from sqlmodel import Session, SQLModel, select

from .core.errors import NotFoundError


ModelT = TypeVar("ModelT", bound=SQLModel)


def find_owned(
    session: Session,
    model: Type[ModelT],
    entity_id: uuid.UUID,
    user_id: uuid.UUID,
    for_update: bool = False,
) -> Optional[ModelT]:
    stmt = select(model).where(model.id == entity_id, model.user_id == user_id)
    if for_update:
        stmt = stmt.with_for_update()
    return session.exec(stmt).first()


def get_owned(
    session: Session,
    model: Type[ModelT],
    entity_id: uuid.UUID,
    user_id: uuid.UUID,
    for_update: bool = False,
) -> ModelT:
    entity = find_owned(session, model, entity_id, user_id, for_update=for_update)
    if entity is None:
        raise NotFoundError(f"{model.__name__} not found")
    return entity


def list_owned(session: Session, model: Type[ModelT], user_id: uuid.UUID, *filters, order_by=None) -> List[ModelT]:
    stmt = select(model).where(model.user_id == user_id, *filters)
    if order_by is not None:
        stmt = stmt.order_by(*order_by) if isinstance(order_by, (list, tuple)) else stmt.order_by(order_by)
    return list(session.exec(stmt).all())
