"""Общие фикстуры: in-memory SQLite, тестовая таблица тарифов, фиксированное время."""

import os

# До импорта приложения: модульный engine не должен трогать файл на диске
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel, Session, create_engine  # noqa: E402

from app.main import app  # noqa: E402
from app.api.deps import access_security, get_clock, get_db, get_publishing_config  # noqa: E402
from app.core.config import settings  # noqa: E402
from app.models import Profile, User, UserRole  # noqa: E402
from app.services.publishing_config import PromotionConfig  # noqa: E402

NOW = datetime(2026, 3, 1, 12, 0, 0)


def build_config(**sections) -> PromotionConfig:
    """Маленькая таблица тарифов (значения из сценариев расчёта)"""
    raw = {
        "publication": {"enabled": True, "tokenRequired": 1, "label": "Publication standard"},
        "promote": {
            "extended": {"options": [{"id": 1, "days": 45, "tokens": 1, "price": 4600}]},
            "featured": {
                "options": [
                    {"id": 1, "days": 3, "tokens": 1},
                    {"id": 2, "days": 7, "tokens": 2},
                ]
            },
            "autorenew": {
                "options": [
                    {"id": 1, "everyHours": 1, "days": 3, "tokens": 2},
                    {"id": 2, "everyHours": 4, "days": 30, "tokens": 5},
                ]
            },
            "urgent": {"options": [{"id": 2, "days": 7, "tokens": 1}]},
        },
        "rules": {
            "vip": {"definition": ["featured", "autorenew"], "discountTokens": 1},
            "stacking": {"maxTotalTokens": 20},
        },
    }
    raw.update(sections)
    return PromotionConfig.model_validate(raw)


@pytest.fixture
def publishing_config():
    return build_config()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def db(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_account(db):
    """Фабрика: пользователь + профиль"""

    def _make(
        username="alice",
        email="alice@example.com",
        email_verified=True,
        tokens_balance=5,
        role=UserRole.CUSTOMER,
        is_vip=False,
        ville="Paris",
    ):
        user = User(
            username=username,
            email=email,
            email_verified=email_verified,
            tokens_balance=tokens_balance,
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        profile = Profile(user_id=user.id, pseudo=username, ville=ville, is_vip=is_vip)
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return user, profile

    return _make


def auth_headers(user: User) -> dict:
    token = access_security.create_access_token(subject={"id": user.id, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(db, publishing_config, monkeypatch):
    monkeypatch.setattr(settings, "EMAIL_VERIFICATION_REQUIRED", True)

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_publishing_config] = lambda: publishing_config
    app.dependency_overrides[get_clock] = lambda: (lambda: NOW)

    yield TestClient(app)

    app.dependency_overrides.clear()
