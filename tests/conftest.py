import os

# Must be set before donation_ledger.database is imported
os.environ["DATABASE_URL"] = "sqlite:///./test_app.db"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["PAYMENT_CALLBACK_SECRET"] = "test-callback-secret"

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from donation_ledger.accounts import SqlAccountDirectory
from donation_ledger.database import Base, enable_sqlite_foreign_keys
from donation_ledger.main import app as fastapi_app

SQLALCHEMY_DATABASE_URL = "sqlite:///./test_ledger.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={
                       "check_same_thread": False})
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def client(monkeypatch):
    # Point every route module at the test database
    monkeypatch.setattr("donation_ledger.routes.SessionLocal", TestingSessionLocal)
    monkeypatch.setattr("donation_ledger.main.SessionLocal", TestingSessionLocal)
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


def make_account(username="creator", email=None, **kwargs):
    db = TestingSessionLocal()
    account = SqlAccountDirectory(db).register(
        username, email or f"{username}@example.com", **kwargs
    )
    db.commit()
    account_id = account.id
    db.close()
    return account_id


def auth_header(account_id):
    token = jwt.encode({"sub": account_id}, "test-jwt-secret", algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


CALLBACK_HEADERS = {"X-Callback-Token": "test-callback-secret"}
