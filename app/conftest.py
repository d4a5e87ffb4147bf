"""
Shared pytest fixtures

Tests run against an in-memory SQLite database; the schema is created and
dropped around every test.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")

import pytest
from uuid import uuid4
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.database.database import Base, engine, get_db
from app.main import app
from app.modules.accounts.models import Account
from app.modules.accounts.seed_data import seed_chart_of_accounts
from app.modules.pos.schemas import CashRegisterCreate
from app.modules.pos.services import CashRegisterService

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def chart(db_session):
    """Default chart of accounts, keyed by code"""
    seed_chart_of_accounts(db_session)
    return {account.code: account for account in db_session.query(Account).all()}


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def other_user_id():
    return uuid4()


@pytest.fixture
def register(db_session):
    return CashRegisterService(db_session).create_register(CashRegisterCreate(name="Caja 1"))


@pytest.fixture
def client(db_session):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
