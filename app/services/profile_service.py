"""
프로필 조회/수정 비즈니스 로직 (감사 로그 포함)
- 조회, 수정 시도 1회당 감사 로그 정확히 1건
- soft delete(deleted_at)된 프로필은 없는 것으로 취급
- 수정 전 스냅샷(old)은 반드시 update 요청 전에 읽은 값

동시 수정은 막지 않는다 (버전/ETag 없음, 마지막 쓰기가 이김).
같은 사용자를 동시에 수정하면 진 쪽 감사 로그의 old 값은 최종 저장 상태와 다를 수 있다.
"""
import logging
from typing import Any, Dict, Optional, Union

from app.schemas.profile import ProfileOut, ProfileUpdateIn
from app.services.audit_service import AuditSink
from app.services.errors import InvalidInput, StorageError
from app.services.profile_store import ProfileStore

logger = logging.getLogger(__name__)

GET_PROFILE = "get_profile"
GET_PROFILE_ERROR = "get_profile_error"
UPDATE_PROFILE = "update_profile"
UPDATE_PROFILE_ERROR = "update_profile_error"

UPDATABLE_FIELDS = frozenset({"display_name", "locale", "timezone"})

UpdateCommand = Union[ProfileUpdateIn, Dict[str, Any]]


class ProfileService:
    """프로필 조회/수정 + 감사 로그"""

    def __init__(self, store: ProfileStore, audit: Optional[AuditSink] = None):
        self.store = store
        self.audit = audit or AuditSink(store)

    async def get_profile(self, user_id: str) -> Optional[ProfileOut]:
        """
        내 프로필 조회

        Returns:
            프로필, 없거나 soft delete 됐으면 None

        Raises:
            InvalidInput: user_id 비어있음
            StorageError: 저장소 조회 실패
        """
        if not user_id:
            await self.audit.record(GET_PROFILE, user_id, None, None, "Invalid user ID")
            raise InvalidInput("Invalid user ID")

        try:
            row, error = await self.store.select_profile(user_id)
            profile = None if error else _visible(row)
        except Exception as e:
            await self._record_failure(GET_PROFILE_ERROR, user_id, None, None, e)
            raise StorageError("Failed to fetch profile") from e

        if error:
            await self.audit.record(GET_PROFILE_ERROR, user_id, None, None, error)
            raise StorageError("Failed to fetch profile")

        if profile is None:
            await self.audit.record(GET_PROFILE, user_id, None, None, "Profile not found")
            return None

        await self.audit.record(GET_PROFILE, user_id, None, profile.snapshot())
        return profile

    async def update_profile(self, user_id: str, updates: UpdateCommand) -> Optional[ProfileOut]:
        """
        내 프로필 부분 수정 (display_name, locale, timezone)

        Returns:
            수정된 프로필, 대상이 없으면 None

        Raises:
            InvalidInput: user_id 비어있음 / 수정할 필드 없음
            StorageError: 저장소 조회/수정 실패
        """
        raw = updates.to_command() if isinstance(updates, ProfileUpdateIn) else dict(updates or {})
        command = _sanitize(raw)

        if not user_id or not command:
            await self.audit.record(UPDATE_PROFILE, user_id, None, raw, "Invalid input")
            raise InvalidInput("Invalid input")

        # 1. 수정 전 스냅샷 (내부 조회라 감사 로그 따로 안 남김)
        try:
            row, error = await self.store.select_profile(user_id)
            current = None if error else _visible(row)
        except Exception as e:
            await self._record_failure(UPDATE_PROFILE_ERROR, user_id, None, command, e)
            raise StorageError("Failed to update profile") from e

        if error:
            await self.audit.record(UPDATE_PROFILE_ERROR, user_id, None, command, error)
            raise StorageError("Failed to update profile")

        if current is None:
            await self.audit.record(UPDATE_PROFILE, user_id, None, command, "Profile not found")
            return None
        old_values = current.snapshot()

        # 2. update (같은 가시성 조건)
        try:
            row, error = await self.store.update_profile(user_id, command)
            updated = None if error else _visible(row)
        except Exception as e:
            await self._record_failure(UPDATE_PROFILE_ERROR, user_id, old_values, command, e)
            raise StorageError("Failed to update profile") from e

        if error:
            await self.audit.record(UPDATE_PROFILE_ERROR, user_id, old_values, command, error)
            raise StorageError("Failed to update profile")

        if updated is None:
            # 스냅샷 이후 soft delete 된 경우
            await self.audit.record(
                UPDATE_PROFILE, user_id, old_values, command, "Profile not found after update"
            )
            return None

        await self.audit.record(UPDATE_PROFILE, user_id, old_values, updated.snapshot())
        logger.info("[PROFILE] updated user_id=%s fields=%s", user_id, sorted(command))
        return updated

    async def _record_failure(self, action, user_id, old_values, new_values, e: Exception) -> None:
        # 저장소가 못 잡은 예외 (잘못된 row, 드라이버 버그 등)
        logger.exception("[PROFILE] %s failed user_id=%s", action, user_id)
        await self.audit.record(action, user_id, old_values, new_values, str(e) or e.__class__.__name__)


def _visible(row: Optional[Dict[str, Any]]) -> Optional[ProfileOut]:
    # 저장소 필터(deleted_at IS NULL) + RLS에 더해 한 번 더 확인
    if not row or row.get("deleted_at") is not None:
        return None
    return ProfileOut.model_validate(row)


def _sanitize(command: Dict[str, Any]) -> Dict[str, Any]:
    # 수정 가능한 필드만 통과 (user_id, deleted_at 등은 버림)
    return {
        k: v.strip() if isinstance(v, str) else v
        for k, v in command.items()
        if k in UPDATABLE_FIELDS
    }
