# tests/conftest.py
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest

# app.config 를 import 하기 전에 테스트용 환경변수 설정
os.environ["SUPABASE_URL"] = "http://localhost:54321"
os.environ["SUPABASE_ANON_KEY"] = "test-anon-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["STORE_BACKEND"] = "supabase"
os.environ.pop("SUPABASE_ISSUER", None)

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, select  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.db.session import Base  # noqa: E402
from app.deps import get_auth_gateway, get_current_user, get_store  # noqa: E402
from app.main import app  # noqa: E402
from app.models.audit_log import AuditLog  # noqa: E402
from app.models.profile import Profile  # noqa: E402
from app.schemas.auth import AuthErrorOut, AuthResponse, RecoverySession  # noqa: E402
from app.services.profile_store import SqlStore  # noqa: E402

USER_ID = "11111111-1111-1111-1111-111111111111"
CREATED_AT = datetime(2026, 1, 5, 9, 30, 0)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return SqlStore(session_factory)


@pytest.fixture
def add_profile(session_factory):
    def _add(user_id: str = USER_ID, **overrides) -> None:
        values = {
            "user_id": user_id,
            "email": "a@b.com",
            "display_name": "Ada",
            "locale": "en",
            "timezone": "UTC",
            "created_at": CREATED_AT,
            "updated_at": CREATED_AT,
        }
        values.update(overrides)
        with session_factory() as db:
            db.add(Profile(**values))
            db.commit()
    return _add


@pytest.fixture
def audit_rows(session_factory):
    def _rows(action: Optional[str] = None) -> List[Dict[str, Any]]:
        with session_factory() as db:
            query = select(AuditLog).order_by(AuditLog.log_id)
            if action is not None:
                query = query.where(AuditLog.action == action)
            return [
                {
                    "action": r.action,
                    "resource_type": r.resource_type,
                    "resource_id": r.resource_id,
                    "old_values": r.old_values,
                    "new_values": r.new_values,
                    "user_id": r.user_id,
                    "error_message": r.error_message,
                }
                for r in db.execute(query).scalars()
            ]
    return _rows


@pytest.fixture
def stored_profile(session_factory):
    def _get(user_id: str = USER_ID) -> Optional[Profile]:
        with session_factory() as db:
            return db.get(Profile, user_id)
    return _get


class FakeAuthGateway:
    """Supabase Auth 대신 쓰는 가짜 게이트웨이. 호출 기록을 남긴다."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.exchange_error: Optional[AuthErrorOut] = None
        self.exchange_raises: Optional[Exception] = None
        self.set_password_error: Optional[AuthErrorOut] = None
        self.reset_error: Optional[AuthErrorOut] = None
        self.sign_in_error: Optional[AuthErrorOut] = None

    async def exchange_recovery_tokens(self, access_token, refresh_token):
        self.calls.append(("exchange", access_token, refresh_token))
        if self.exchange_raises is not None:
            raise self.exchange_raises
        if self.exchange_error is not None:
            return AuthResponse(error=self.exchange_error)
        return AuthResponse(data=RecoverySession(
            access_token=f"session-{access_token}",
            refresh_token=f"session-{refresh_token}",
        ))

    async def set_password(self, session, new_password):
        self.calls.append(("set_password", session.access_token, new_password))
        if self.set_password_error is not None:
            return AuthResponse(error=self.set_password_error)
        return AuthResponse(data={"message": "Password updated successfully"})

    async def request_password_reset(self, email, redirect_to):
        self.calls.append(("reset", email, redirect_to))
        if self.reset_error is not None:
            return AuthResponse(error=self.reset_error)
        return AuthResponse(data={"message": "Password reset email sent"})

    async def sign_up(self, email, password, redirect_to):
        self.calls.append(("sign_up", email, redirect_to))
        return AuthResponse(data={"message": "Verification email sent. Please check your inbox."})

    async def sign_in(self, email, password):
        self.calls.append(("sign_in", email))
        if self.sign_in_error is not None:
            return AuthResponse(error=self.sign_in_error)
        return AuthResponse(data={"user": {"id": USER_ID}, "session": {"access_token": "at"}})

    async def resend_verification(self, email, redirect_to):
        self.calls.append(("resend", email, redirect_to))
        return AuthResponse(data={"message": "Verification email resent successfully. Please check your inbox."})

    async def verify_email(self, token):
        self.calls.append(("verify_email", token))
        return AuthResponse(data={"user": {"id": USER_ID}, "session": None})


@pytest.fixture
def gateway():
    return FakeAuthGateway()


@pytest.fixture
def client(store, gateway):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_auth_gateway] = lambda: gateway
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def authed_client(client):
    app.dependency_overrides[get_current_user] = lambda: {
        "id": USER_ID,
        "email": "a@b.com",
        "access_token": "test-access-token",
    }
    return client
