"""
Fixtures partagées: base SQLite par test, client HTTP, données de catalogue.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import app.db.session as db_session_module
from app.core import rate_limiter
from app.core.security import create_access_token
from app.db.deps import get_db
from app.models import Base, Profile, Basket, Badge, Challenge
from app.routers import orders as orders_router


@pytest.fixture
def session_factory(tmp_path, monkeypatch):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False)
    # Jobs et seeds passent par get_db_session()
    monkeypatch.setattr(db_session_module, "SessionLocal", factory)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def reconcile_calls(monkeypatch):
    calls = []
    monkeypatch.setattr(
        orders_router,
        "request_reconciliation",
        lambda order_id, failed_steps: calls.append((order_id, failed_steps)) or "job-1",
    )
    return calls


@pytest.fixture
def client(session_factory, monkeypatch, reconcile_calls):
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr(rate_limiter, "check_rate_limit", lambda key, max_requests, window_seconds: (True, max_requests))
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def student(db):
    profile = Profile(email="lea@etu.univ-paris.fr", full_name="Léa Martin", student_status=True)
    db.add(profile)
    db.commit()
    return profile


@pytest.fixture
def admin(db):
    profile = Profile(email="admin@ecopanier.fr", full_name="Admin", is_admin=True)
    db.add(profile)
    db.commit()
    return profile


@pytest.fixture
def basket(db):
    item = Basket(
        title="Panier Fruits & Légumes",
        description="Fruits et légumes de saison",
        category="alimentaire",
        original_price=15.0,
        discounted_price=5.0,
        stock=10,
        store_name="Carrefour City",
        store_location="Paris 5e",
        co2_saved=2.5,
        food_saved=3.0,
    )
    db.add(item)
    db.commit()
    return item


@pytest.fixture
def first_order_badge(db):
    badge = Badge(code="first_order", name="Premier Pas", description="Première commande", icon="star")
    db.add(badge)
    db.commit()
    return badge


@pytest.fixture
def weekly_challenge(db):
    challenge = Challenge(title="3 paniers cette semaine", goal_value=3, points_reward=50)
    db.add(challenge)
    db.commit()
    return challenge


@pytest.fixture
def auth_headers():
    def build(profile_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(profile_id)}"}
    return build
