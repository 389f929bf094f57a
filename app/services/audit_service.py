"""
감사 로그 기록 (fail-open)

record()는 호출자에게 절대 예외를 던지지 않는다. audit_logs insert가 실패하면
서버 로그에만 남기고 버린다. 즉 감사 로그는 best-effort이며, 기록 대상인
프로필 변경과 같은 트랜잭션으로 묶이지 않는다. 감사 기록 실패 때문에
사용자 요청이 막히거나 롤백되는 일은 없다.
"""
import logging
from typing import Any, Dict, Optional

from app.schemas.audit import PROFILE_RESOURCE, AuditLogEntry
from app.services.profile_store import ProfileStore

logger = logging.getLogger(__name__)


class AuditSink:
    def __init__(self, store: ProfileStore, resource_type: str = PROFILE_RESOURCE):
        self.store = store
        self.resource_type = resource_type

    async def record(
        self,
        action: str,
        actor_id: Optional[str],
        old_values: Optional[Dict[str, Any]],
        new_values: Optional[Dict[str, Any]],
        error_message: Optional[str] = None,
        resource_id: Optional[str] = None,
    ) -> None:
        """
        감사 로그 1건 append. 반환값 없음, 예외 없음.

        Args:
            action: get_profile, update_profile, *_error 등
            actor_id: 행위자 user_id (resource_id를 안 주면 대상도 동일)
            old_values: 변경 전 스냅샷
            new_values: 변경 후(또는 시도한) 값
            error_message: 실패 사유
        """
        try:
            entry = AuditLogEntry(
                action=action,
                resource_type=self.resource_type,
                resource_id=resource_id if resource_id is not None else actor_id,
                old_values=dict(old_values) if old_values is not None else None,
                new_values=dict(new_values) if new_values is not None else None,
                user_id=actor_id,
                error_message=error_message,
            )
            error = await self.store.insert_audit_log(entry.model_dump())
        except Exception:
            logger.exception("[AUDIT] write failed action=%s resource_id=%s", action, actor_id)
            return

        if error:
            logger.warning("[AUDIT] write failed action=%s resource_id=%s: %s", action, actor_id, error)
