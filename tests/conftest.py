"""Pytest fixtures for testing"""

from decimal import Decimal
from types import SimpleNamespace
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from church_finance.api.main import create_app
from church_finance.config import settings
from church_finance.domain.guard import resolve_roles
from church_finance.domain.models import Actor
from church_finance.infrastructure.database.models import AccountRow, Base, BranchRow, UserRow
from church_finance.infrastructure.database.repositories import GlobalConfigRepository, UserRepository
from church_finance.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite+pysqlite:///:memory:"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def seed(db: Session) -> SimpleNamespace:
    """
    Two branches with their staff, plus accounts.

    central: requester, network pastor (branch manager), lead pastor, admin
    north:   network pastor, requester
    """
    central = BranchRow(name="Iglesia Central")
    north = BranchRow(name="Iglesia Norte")
    closed = BranchRow(name="Anexo Cerrado", active=False)
    db.add_all([central, north, closed])
    db.flush()

    def user(username, person_id, branch, roles, active=True):
        row = UserRow(
            username=username,
            person_id=person_id,
            branch_id=branch.id if branch else None,
            roles=roles,
            active=active,
        )
        db.add(row)
        return row

    requester = user("maria", 101, central, ["Solicitante"])
    network = user("pedro", 102, central, ["NETWORK_PASTOR"])
    north_network = user("juan", 103, north, ["network_pastor"])
    lead = user("pablo", 104, central, ["Pastor_Titular"])
    admin = user("ana", 105, central, ["Administrador"])
    north_requester = user("lucas", 106, north, ["REQUESTER"])
    visitor = user("tomas", 107, central, ["Visitante"])
    inactive = user("sara", 108, central, ["REQUESTER"], active=False)
    db.flush()

    central.manager_user_id = network.id
    north.manager_user_id = north_network.id

    own_account = AccountRow(person_id=101, bank_name="BCP", account_number="191-0000001")
    dormant_account = AccountRow(person_id=101, bank_name="BBVA", account_number="0011-22", active=False)
    foreign_account = AccountRow(person_id=106, bank_name="Interbank", account_number="200-300")
    db.add_all([own_account, dormant_account, foreign_account])
    db.commit()

    return SimpleNamespace(
        central=central.id,
        north=north.id,
        closed_branch=closed.id,
        requester=requester.id,
        network=network.id,
        north_network=north_network.id,
        lead=lead.id,
        admin=admin.id,
        north_requester=north_requester.id,
        visitor=visitor.id,
        inactive=inactive.id,
        own_account=own_account.id,
        dormant_account=dormant_account.id,
        foreign_account=foreign_account.id,
    )


@pytest.fixture
def actor_for(db: Session):
    """Build an Actor the same way the identity dependency does"""

    def _actor(user_id: int) -> Actor:
        user = UserRepository(db).get(user_id)
        return Actor(
            user_id=user.id,
            person_id=user.person_id,
            branch_id=user.branch_id,
            roles=resolve_roles(user.raw_roles),
        )

    return _actor


@pytest.fixture
def set_threshold(db: Session):
    """Change the global lead-approval threshold"""

    def _set(value) -> None:
        store = GlobalConfigRepository(db)
        config = store.load()
        config.max_amount_lead_approval = Decimal(str(value))
        store.save(config)
        db.commit()

    return _set


@pytest.fixture
def as_user():
    """HTTP headers identifying the caller"""

    def _headers(user_id: int) -> dict:
        return {settings.identity_header: str(user_id)}

    return _headers


@pytest.fixture
def taxi_and_food() -> list:
    return [
        {"description": "Taxi", "amount": 50},
        {"description": "Food", "amount": 30},
    ]
