import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import SQLModel, Field, Session, select
from pydantic import EmailStr

from ..config import settings
from ..core.clock import utcnow
from ..core.jwt import create_access_token
from ..core.security import get_current_user, hash_password, verify_password
from ..database import atomic, get_session
from ..models.user import User
from ..services.categories import seed_default_categories


router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


class RegisterIn(SQLModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: Optional[str] = Field(default=None, max_length=100)
    default_currency: Optional[str] = Field(default=None, min_length=3, max_length=3, regex="^[A-Z]{3}$")


class UserRead(SQLModel):
    id: uuid.UUID
    email: str
    name: Optional[str] = None
    default_currency: str
    created_at: datetime
    updated_at: datetime


class LoginIn(SQLModel):
    email: EmailStr
    password: str


class TokenOut(SQLModel):
    access_token: str
    token_type: str
    user: UserRead


def _authenticate(session: Session, email: str, password: str) -> User:
    email_norm = email.strip().lower()
    user = session.exec(select(User).where(User.email == email_norm)).first()
    if user is None or not verify_password(password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    return user


def _user_read(user: User) -> UserRead:
    return UserRead(
        id=user.id,
        email=user.email,
        name=user.name,
        default_currency=user.default_currency,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def _issue_token(user: User) -> TokenOut:
    token = create_access_token({"sub": str(user.id), "email": user.email})
    return TokenOut(access_token=token, token_type="bearer", user=_user_read(user))


@router.post(
    "/register",
    response_model=TokenOut,
    status_code=status.HTTP_201_CREATED,
)
def register_user(
    payload: RegisterIn,
    session: Session = Depends(get_session),
):
    email_norm = payload.email.strip().lower()
    existing = session.exec(select(User).where(User.email == email_norm)).first()
    if existing is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    now = utcnow()
    user = User(
        id=uuid.uuid4(),
        email=email_norm,
        hashed_password=hash_password(payload.password),
        name=payload.name.strip() if payload.name else None,
        default_currency=payload.default_currency or settings.default_currency,
        created_at=now,
        updated_at=now,
    )
    with atomic(session):
        session.add(user)
        session.flush()
        seed_default_categories(session, user.id)

    session.refresh(user)
    return _issue_token(user)


@router.post(
    "/login",
    response_model=TokenOut,
    status_code=status.HTTP_200_OK,
)
def login(payload: LoginIn, response: Response, session: Session = Depends(get_session)):
    user = _authenticate(session, payload.email, payload.password)
    token_out = _issue_token(user)

    # Mirror the bearer token in an HttpOnly cookie for browser clients.
    is_prod = settings.environment.lower() == "production"
    response.set_cookie(
        key="access_token",
        value=token_out.access_token,
        httponly=True,
        secure=is_prod,
        samesite="none" if is_prod else "lax",
        max_age=settings.access_token_expire_minutes * 60,
        path="/",
    )
    return token_out


@router.post(
    "/token",
    status_code=status.HTTP_200_OK,
)
def token(form_data: OAuth2PasswordRequestForm = Depends(), session: Session = Depends(get_session)):
    # OAuth2PasswordRequestForm carries the email in 'username'
    user = _authenticate(session, form_data.username, form_data.password)
    token_out = _issue_token(user)
    return {"access_token": token_out.access_token, "token_type": token_out.token_type}


@router.get(
    "/me",
    response_model=UserRead,
    status_code=status.HTTP_200_OK,
)
def me(current_user: User = Depends(get_current_user)):
    return _user_read(current_user)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
)
def logout(response: Response):
    response.delete_cookie(key="access_token", path="/")
    return None
