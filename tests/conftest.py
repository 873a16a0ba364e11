"""
Shared test fixtures.

Sets up an isolated SQLite database so tests never touch a
real ledger. Tables are created before each test and dropped
after it.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from ledger_core.main import app
from ledger_core.api.dependencies import get_running_balances
from ledger_core.models.base import Base, build_engine, get_db
from ledger_core.models.enums import AccountType
from ledger_core.schemas.account import AccountCreate
from ledger_core.services.account_service import AccountService
from ledger_core.services.running_balances import RunningBalances


TEST_DATABASE_URL = "sqlite:///./test.db"

engine = build_engine(TEST_DATABASE_URL)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    """Session factory for tests that need several sessions (threads)."""
    return TestSessionLocal


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def tracker():
    return RunningBalances()


@pytest.fixture
def client(db_session, tracker):
    """
    Provide a test client bound to the test database.

    get_db is overridden so the app uses the test session, and
    each test gets its own running balance tracker.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_running_balances] = lambda: tracker
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def accounts(db_session):
    """A small chart of accounts, committed."""
    service = AccountService(db_session)

    def make(name, account_type, **kwargs):
        return service.create_account(
            AccountCreate(name=name, account_type=account_type, **kwargs)
        )

    chart = {
        "cash": make("Cash", AccountType.ASSET, code=1000),
        "receivable": make("Accounts Receivable", AccountType.ASSET, code=1100),
        "payable": make("Accounts Payable", AccountType.LIABILITY, code=2000),
        "equity": make("Owner's Equity", AccountType.EQUITY, code=3000),
        "revenue": make("Sales Revenue", AccountType.REVENUE, code=4000),
        "expense": make("Rent Expense", AccountType.EXPENSE, code=5000),
    }
    db_session.commit()
    return chart
