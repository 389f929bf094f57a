# app/services/supabase_auth.py
# Supabase Auth 호출 래퍼
# - 요청마다 만든 AsyncClient로 호출 (서버에 세션 보관 안 함)
# - 결과는 항상 AuthResponse {data, error}. 예외를 밖으로 던지지 않는다.
# - Supabase 에러코드 -> 고정 code/message 매핑 (원문 메시지는 로그에만)
import logging
from typing import Dict, Tuple

from supabase import AsyncClient

from app.schemas.auth import AuthErrorOut, AuthResponse, RecoverySession

logger = logging.getLogger(__name__)

_INVALID_TOKEN = ("INVALID_TOKEN", "Invalid or expired token")
_RATE_LIMITED = ("RATE_LIMITED", "Too many requests. Please try again later.")

# Supabase Auth error_code -> (code, message)
AUTH_ERROR_MAP: Dict[str, Tuple[str, str]] = {
    "invalid_credentials": ("INVALID_CREDENTIALS", "Invalid email or password"),
    "email_not_confirmed": ("EMAIL_NOT_CONFIRMED", "Please verify your email before signing in"),
    "weak_password": ("WEAK_PASSWORD", "Password is too weak"),
    "email_exists": ("EMAIL_ALREADY_EXISTS", "Email already exists"),
    "user_already_exists": ("EMAIL_ALREADY_EXISTS", "Email already exists"),
    "email_address_invalid": ("INVALID_EMAIL", "Invalid email"),
    "same_password": ("SAME_PASSWORD", "New password should be different from the old password"),
    "otp_expired": _INVALID_TOKEN,
    "bad_jwt": _INVALID_TOKEN,
    "session_not_found": _INVALID_TOKEN,
    "refresh_token_not_found": _INVALID_TOKEN,
    "over_email_send_rate_limit": _RATE_LIMITED,
    "over_request_rate_limit": _RATE_LIMITED,
}


def map_auth_error(error: Exception, default_code: str, default_message: str) -> AuthErrorOut:
    """Supabase 에러를 사용자용 code/message로 변환. 모르는 코드는 작업별 기본 문구."""
    supabase_code = getattr(error, "code", None)
    code, message = AUTH_ERROR_MAP.get(supabase_code or "", (default_code, default_message))
    return AuthErrorOut(code=code, message=message)


def _failure(op: str, error: Exception, default_code: str, default_message: str) -> AuthResponse:
    logger.warning(
        "[AUTH] %s failed: %s code=%s msg=%s",
        op, error.__class__.__name__, getattr(error, "code", None), error,
    )
    return AuthResponse(error=map_auth_error(error, default_code, default_message))


class SupabaseAuthGateway:
    """Supabase Auth (GoTrue) 호출 모음. 재설정 링크 토큰 교환/비밀번호 변경 포함."""

    def __init__(self, client: AsyncClient):
        self.client = client

    # ---------- 회원가입 / 로그인 ----------

    async def sign_up(self, email: str, password: str, redirect_to: str) -> AuthResponse:
        try:
            await self.client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"email_redirect_to": redirect_to},
            })
        except Exception as e:
            return _failure("sign_up", e, "AUTH_ERROR", "Sign up failed")
        # 미인증 상태라 세션 없음
        return AuthResponse(data={"message": "Verification email sent. Please check your inbox."})

    async def sign_in(self, email: str, password: str) -> AuthResponse:
        try:
            res = await self.client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            return _failure("sign_in", e, "AUTH_ERROR", "Authentication failed")
        return AuthResponse(data={
            "user": res.user.model_dump(mode="json") if res.user else None,
            "session": res.session.model_dump(mode="json") if res.session else None,
        })

    async def resend_verification(self, email: str, redirect_to: str) -> AuthResponse:
        try:
            await self.client.auth.resend({
                "type": "signup",
                "email": email,
                "options": {"email_redirect_to": redirect_to},
            })
        except Exception as e:
            return _failure("resend", e, "RESEND_ERROR", "Failed to resend email. Please try again later.")
        return AuthResponse(data={"message": "Verification email resent successfully. Please check your inbox."})

    async def verify_email(self, token: str) -> AuthResponse:
        try:
            res = await self.client.auth.verify_otp({"token_hash": token, "type": "email"})
        except Exception as e:
            return _failure("verify_email", e, "VERIFY_ERROR", "Verification failed")
        return AuthResponse(data={
            "user": res.user.model_dump(mode="json") if res.user else None,
            "session": res.session.model_dump(mode="json") if res.session else None,
        })

    # ---------- 비밀번호 재설정 ----------

    async def request_password_reset(self, email: str, redirect_to: str) -> AuthResponse:
        try:
            await self.client.auth.reset_password_for_email(email, {"redirect_to": redirect_to})
        except Exception as e:
            return _failure("reset_password_for_email", e, "RESET_ERROR", "Reset failed")
        return AuthResponse(data={"message": "Password reset email sent"})

    async def exchange_recovery_tokens(self, access_token: str, refresh_token: str) -> AuthResponse:
        """재설정 링크의 토큰 쌍으로 세션 수립. data = RecoverySession"""
        try:
            res = await self.client.auth.set_session(access_token, refresh_token)
        except Exception as e:
            return _failure("set_session", e, "VERIFICATION_FAILED", "Invalid or expired reset link.")

        session = res.session
        if session is None:
            return AuthResponse(
                error=AuthErrorOut(code="VERIFICATION_FAILED", message="Invalid or expired reset link.")
            )
        return AuthResponse(data=RecoverySession(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
        ))

    async def set_password(self, session: RecoverySession, new_password: str) -> AuthResponse:
        try:
            await self.client.auth.set_session(session.access_token, session.refresh_token)
            await self.client.auth.update_user({"password": new_password})
        except Exception as e:
            return _failure("update_user", e, "UPDATE_ERROR", "Update failed")
        return AuthResponse(data={"message": "Password updated successfully"})
