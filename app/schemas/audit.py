from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

PROFILE_RESOURCE = "profile"


class AuditLogEntry(BaseModel):
    """audit_logs 한 행. log_id/created_at은 저장소가 채운다."""
    model_config = ConfigDict(frozen=True)

    action: str
    resource_type: str = PROFILE_RESOURCE
    resource_id: Optional[str] = None
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    user_id: Optional[str] = None
    error_message: Optional[str] = None
