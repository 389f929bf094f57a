"""
profiles / audit_logs 저장소 어댑터
- 모든 메서드는 (data, error) 형태로 돌려주고, 저장소 실패로 예외를 던지지 않는다.
- SupabaseStore: 요청마다 사용자 토큰으로 인증된 클라이언트 (RLS 적용)
- SqlStore: DATABASE_URL 직접 연결 (SQLAlchemy)
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

import httpx
from postgrest.exceptions import APIError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from supabase import AsyncClient

from app.models.audit_log import AuditLog
from app.models.profile import Profile

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"
AUDIT_LOGS_TABLE = "audit_logs"
PROFILE_COLUMNS = (
    "user_id",
    "email",
    "display_name",
    "locale",
    "timezone",
    "created_at",
    "updated_at",
    "deleted_at",
    "scheduled_for_deletion_until",
)

Row = Dict[str, Any]
StoreResult = Tuple[Optional[Row], Optional[str]]


class ProfileStore(ABC):
    """행 단위 select/update/insert. 조회/수정은 항상 deleted_at IS NULL 조건."""

    @abstractmethod
    async def select_profile(self, user_id: str) -> StoreResult:
        ...

    @abstractmethod
    async def update_profile(self, user_id: str, values: Row) -> StoreResult:
        ...

    @abstractmethod
    async def insert_audit_log(self, entry: Row) -> Optional[str]:
        """성공하면 None, 실패하면 에러 메시지"""
        ...


class SupabaseStore(ProfileStore):
    def __init__(self, client: AsyncClient):
        self.client = client

    async def select_profile(self, user_id: str) -> StoreResult:
        try:
            response = await (
                self.client.table(PROFILES_TABLE)
                .select(",".join(PROFILE_COLUMNS))
                .eq("user_id", user_id)
                .is_("deleted_at", "null")
                .limit(1)
                .execute()
            )
        except (APIError, httpx.HTTPError) as e:
            return None, _error_text(e)
        return (response.data[0] if response.data else None), None

    async def update_profile(self, user_id: str, values: Row) -> StoreResult:
        try:
            response = await (
                self.client.table(PROFILES_TABLE)
                .update(values)
                .eq("user_id", user_id)
                .is_("deleted_at", "null")
                .execute()
            )
        except (APIError, httpx.HTTPError) as e:
            return None, _error_text(e)
        return (response.data[0] if response.data else None), None

    async def insert_audit_log(self, entry: Row) -> Optional[str]:
        try:
            await self.client.table(AUDIT_LOGS_TABLE).insert(entry).execute()
        except (APIError, httpx.HTTPError) as e:
            return _error_text(e)
        return None


class SqlStore(ProfileStore):
    """동기 SQLAlchemy 세션을 threadpool에서 실행"""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    async def select_profile(self, user_id: str) -> StoreResult:
        return await run_in_threadpool(self._select_profile, user_id)

    async def update_profile(self, user_id: str, values: Row) -> StoreResult:
        return await run_in_threadpool(self._update_profile, user_id, values)

    async def insert_audit_log(self, entry: Row) -> Optional[str]:
        return await run_in_threadpool(self._insert_audit_log, entry)

    def _select_profile(self, user_id: str) -> StoreResult:
        try:
            with self.session_factory() as db:
                prof = db.execute(_visible_profile(user_id)).scalar_one_or_none()
                return (_profile_row(prof) if prof else None), None
        except SQLAlchemyError as e:
            return None, _error_text(e)

    def _update_profile(self, user_id: str, values: Row) -> StoreResult:
        try:
            with self.session_factory() as db:
                prof = db.execute(_visible_profile(user_id)).scalar_one_or_none()
                if prof is None:
                    return None, None
                for key, value in values.items():
                    setattr(prof, key, value)
                db.commit()
                db.refresh(prof)
                return _profile_row(prof), None
        except SQLAlchemyError as e:
            return None, _error_text(e)

    def _insert_audit_log(self, entry: Row) -> Optional[str]:
        try:
            with self.session_factory() as db:
                db.add(AuditLog(**entry))
                db.commit()
        except SQLAlchemyError as e:
            return _error_text(e)
        return None


def _visible_profile(user_id: str):
    return select(Profile).where(
        Profile.user_id == user_id,
        Profile.deleted_at.is_(None),  # soft delete 제외
    )


def _profile_row(prof: Profile) -> Row:
    return {col: getattr(prof, col) for col in PROFILE_COLUMNS}


def _error_text(e: Exception) -> str:
    # postgrest APIError는 message 속성, 나머지는 str(e)
    message = getattr(e, "message", None) or str(e) or e.__class__.__name__
    logger.warning("[STORE] %s: %s", e.__class__.__name__, message)
    return message
