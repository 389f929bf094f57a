"""
비밀번호 재설정 흐름 (2단계 상태 머신)

    request  --(재설정 링크: type=recovery + 토큰 쌍, 교환 성공)-->  update

- request: 이메일 입력 -> 재설정 메일 발송 요청
- update: 새 비밀번호 + 확인 입력 -> 비밀번호 변경, 성공하면 로그인 화면으로 이동 안내
  (성공하면 종료 상태. 이후 제출은 무시)

상태는 불변 객체다. 각 핸들러는 (현재 상태, 입력)을 받아 새 상태를 돌려준다.
링크 토큰은 URL fragment(#...)에서만 읽고, 교환은 링크당 한 번만 시도한다.
교환이 실패하면 같은 토큰으로 재시도하지 않는다 (새 링크를 받아야 함).
사용자에게는 항상 평문 메시지만 보여준다 (백엔드 에러코드 노출 안 함).
"""
import hashlib
import logging
from typing import Annotated, Dict, Literal, Optional, Protocol, Union
from urllib.parse import parse_qs, urlsplit

from pydantic import BaseModel, ConfigDict, EmailStr, Field, TypeAdapter, ValidationError

from app.schemas.auth import PASSWORD_MIN_LENGTH, AuthResponse, RecoverySession

logger = logging.getLogger(__name__)

RECOVERY_LINK_TYPE = "recovery"

MISSING_TOKENS_MESSAGE = "Missing reset tokens in the link."
INVALID_LINK_MESSAGE = "Invalid or expired reset link."
LINK_PROCESSING_ERROR_MESSAGE = "An error occurred while processing the reset link."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred."
INVALID_EMAIL_MESSAGE = "Invalid email format"
PASSWORD_TOO_SHORT_MESSAGE = f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
PASSWORD_MISMATCH_MESSAGE = "Passwords don't match"
RESET_EMAIL_SENT_MESSAGE = "Password reset email sent"
PASSWORD_UPDATED_MESSAGE = "Password updated successfully"

_email_adapter = TypeAdapter(EmailStr)


class CredentialExchange(Protocol):
    async def exchange_recovery_tokens(self, access_token: str, refresh_token: str) -> AuthResponse: ...

    async def set_password(self, session: RecoverySession, new_password: str) -> AuthResponse: ...

    async def request_password_reset(self, email: str, redirect_to: str) -> AuthResponse: ...


# ---------- 링크 파싱 ----------

class RecoveryIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str = ""
    refresh_token: str = ""

    @property
    def has_tokens(self) -> bool:
        return bool(self.access_token and self.refresh_token)

    @property
    def fingerprint(self) -> str:
        # 상태에는 토큰 대신 해시만 남긴다
        pair = f"{self.access_token}\n{self.refresh_token}".encode()
        return hashlib.sha256(pair).hexdigest()


def parse_recovery_link(url: str) -> Optional[RecoveryIntent]:
    """
    재설정 링크의 fragment에서 type/access_token/refresh_token을 읽는다.
    query string은 보지 않는다. type=recovery가 아니면 None.
    """
    params = parse_qs(urlsplit(url or "").fragment)
    if params.get("type", [None])[0] != RECOVERY_LINK_TYPE:
        return None
    return RecoveryIntent(
        access_token=params.get("access_token", [""])[0],
        refresh_token=params.get("refresh_token", [""])[0],
    )


# ---------- 상태 ----------

class _FormState(BaseModel):
    model_config = ConfigDict(frozen=True)

    field_errors: Dict[str, str] = Field(default_factory=dict)
    server_error: Optional[str] = None
    success_message: Optional[str] = None


class RequestState(_FormState):
    mode: Literal["request"] = "request"
    email: str = ""
    # 교환에 실패한 링크 (같은 토큰으로 재시도 금지)
    consumed_link: Optional[str] = None


class UpdateState(_FormState):
    mode: Literal["update"] = "update"
    session: RecoverySession
    completed: bool = False
    redirect_to: Optional[str] = None
    redirect_after_seconds: Optional[float] = None


RecoveryState = Annotated[Union[RequestState, UpdateState], Field(discriminator="mode")]


class RecoveryForm(BaseModel):
    email: Optional[str] = None
    new_password: Optional[str] = None
    confirm_password: Optional[str] = None


def _reset(state: _FormState, **changes) -> _FormState:
    # 제출할 때마다 이전 메시지는 지운다
    base = {"field_errors": {}, "server_error": None, "success_message": None}
    if isinstance(state, UpdateState):
        base.update(redirect_to=None, redirect_after_seconds=None)
    base.update(changes)
    return state.model_copy(update=base)


# ---------- 핸들러 ----------

async def open_recovery_link(
    state: Union[RequestState, UpdateState],
    url: str,
    gateway: CredentialExchange,
) -> Union[RequestState, UpdateState]:
    """재설정 링크를 열었을 때. 교환 성공 시에만 update로 전이."""
    if not isinstance(state, RequestState):
        return state

    intent = parse_recovery_link(url)
    if intent is None:
        return state
    if not intent.has_tokens:
        return _reset(state, server_error=MISSING_TOKENS_MESSAGE)

    link = intent.fingerprint
    if state.consumed_link == link:
        return state

    try:
        result = await gateway.exchange_recovery_tokens(intent.access_token, intent.refresh_token)
    except Exception:
        logger.exception("[RECOVERY] token exchange raised")
        return _reset(state, server_error=LINK_PROCESSING_ERROR_MESSAGE, consumed_link=link)

    if result.error is not None or result.data is None:
        logger.info("[RECOVERY] token exchange rejected: %s", result.error.code if result.error else None)
        return _reset(state, server_error=INVALID_LINK_MESSAGE, consumed_link=link)

    return UpdateState(session=RecoverySession.model_validate(result.data))


async def submit_reset_request(
    state: RequestState,
    email: str,
    gateway: CredentialExchange,
    redirect_to: str,
) -> RequestState:
    """request 모드: 재설정 메일 발송 요청"""
    email = (email or "").strip()
    try:
        _email_adapter.validate_python(email)
    except ValidationError:
        return _reset(state, email=email, field_errors={"email": INVALID_EMAIL_MESSAGE})

    try:
        result = await gateway.request_password_reset(email, redirect_to)
    except Exception:
        logger.exception("[RECOVERY] reset request raised")
        return _reset(state, email=email, server_error=UNEXPECTED_ERROR_MESSAGE)

    if result.error is not None:
        return _reset(state, email=email, server_error=result.error.message)
    return _reset(state, email=email, success_message=RESET_EMAIL_SENT_MESSAGE)


async def submit_new_password(
    state: UpdateState,
    new_password: str,
    confirm_password: str,
    gateway: CredentialExchange,
    login_path: str = "/auth/login",
    redirect_after_seconds: float = 2.0,
) -> UpdateState:
    """update 모드: 새 비밀번호 설정. 성공하면 일정 시간 뒤 로그인으로 이동하도록 안내."""
    if state.completed:
        return state

    new_password = new_password or ""
    field_errors = {}
    if len(new_password) < PASSWORD_MIN_LENGTH:
        field_errors["new_password"] = PASSWORD_TOO_SHORT_MESSAGE
    if new_password != (confirm_password or ""):
        field_errors["confirm_password"] = PASSWORD_MISMATCH_MESSAGE
    if field_errors:
        return _reset(state, field_errors=field_errors)

    try:
        result = await gateway.set_password(state.session, new_password)
    except Exception:
        logger.exception("[RECOVERY] password update raised")
        return _reset(state, server_error=UNEXPECTED_ERROR_MESSAGE)

    if result.error is not None:
        return _reset(state, server_error=result.error.message)

    return _reset(
        state,
        success_message=PASSWORD_UPDATED_MESSAGE,
        completed=True,
        redirect_to=login_path,
        redirect_after_seconds=redirect_after_seconds,
    )


async def submit_recovery_form(
    state: Union[RequestState, UpdateState],
    form: RecoveryForm,
    gateway: CredentialExchange,
    redirect_to: str,
    login_path: str = "/auth/login",
    redirect_after_seconds: float = 2.0,
) -> Union[RequestState, UpdateState]:
    if isinstance(state, RequestState):
        return await submit_reset_request(state, form.email or "", gateway, redirect_to)
    return await submit_new_password(
        state,
        form.new_password or "",
        form.confirm_password or "",
        gateway,
        login_path=login_path,
        redirect_after_seconds=redirect_after_seconds,
    )
