import os

# Keep the module-level engine away from the working directory.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("JWT_ALGORITHM", "HS256")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from finledger.core.jwt import create_access_token
from finledger.core.security import hash_password
from finledger.database import build_engine, get_session, init_db
from finledger.main import create_app
from finledger.models.account import Account, AccountType
from finledger.models.category import Category, EntryType
from finledger.models.user import User


@pytest.fixture
def engine(tmp_path):
    # A file database so that separate sessions get separate connections.
    engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


def _make_user(session: Session, email: str) -> User:
    user = User(email=email, hashed_password=hash_password("secret123"), default_currency="BDT")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def user(session):
    return _make_user(session, "owner@example.com")


@pytest.fixture
def other_user(session):
    return _make_user(session, "intruder@example.com")


@pytest.fixture
def make_account(session):
    def _make(owner: User, balance="0", name="Wallet", type=AccountType.WALLET) -> Account:
        account = Account(user_id=owner.id, name=name, type=type, balance=Decimal(balance))
        session.add(account)
        session.commit()
        session.refresh(account)
        return account

    return _make


@pytest.fixture
def make_category(session):
    def _make(owner: User, type=EntryType.EXPENSE, name="Food") -> Category:
        category = Category(user_id=owner.id, name=name, type=type, color="#f43f5e")
        session.add(category)
        session.commit()
        session.refresh(category)
        return category

    return _make


@pytest.fixture
def client(engine):
    app = create_app()

    def _session_override():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _session_override
    return TestClient(app)


@pytest.fixture
def auth_headers(user):
    token = create_access_token({"sub": str(user.id), "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_headers(other_user):
    token = create_access_token({"sub": str(other_user.id), "email": other_user.email})
    return {"Authorization": f"Bearer {token}"}
