from datetime import datetime
from functools import lru_cache
from typing import Literal, Optional, Set
from zoneinfo import available_timezones

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUPPORTED_LOCALES = ("en", "pl")


@lru_cache(maxsize=1)
def _iana_timezones() -> Set[str]:
    return available_timezones()


# -- Response --

class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    email: str
    display_name: Optional[str] = None
    locale: str
    timezone: str
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None
    scheduled_for_deletion_until: Optional[datetime] = None

    def snapshot(self) -> dict:
        """감사 로그 old/new 값으로 쓰는 JSON 직렬화 형태"""
        return self.model_dump(mode="json")


# -- Request --

# 프로필 부분 수정 (알 수 없는 필드는 400)
class ProfileUpdateIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    display_name: Optional[str] = Field(None, max_length=100)
    locale: Optional[Literal["en", "pl"]] = None
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in _iana_timezones():
            raise ValueError("Invalid IANA timezone")
        return v

    def to_command(self) -> dict:
        # 보낸 필드만 (null 값은 수정 대상 아님)
        return self.model_dump(exclude_none=True)
