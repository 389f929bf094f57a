# app/routers/auth.py
# 인증 API. 실제 Supabase 호출은 app/services/supabase_auth.py
# 응답은 {data, error} 형식. error = {code, message}
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.config import settings
from app.deps import get_auth_gateway
from app.schemas.auth import (
    AuthErrorOut,
    AuthResponse,
    EmailIn,
    LoginIn,
    PasswordResetIn,
    RecoverySession,
    SignupIn,
    TokenPairIn,
)
from app.services.supabase_auth import SupabaseAuthGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


# ---------- Helpers ----------
def _respond(result: AuthResponse, error_status: int = 400) -> JSONResponse:
    status_code = 200 if result.error is None else error_status
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))

def _error(code: str, message: str, status_code: int = 400) -> JSONResponse:
    return _respond(AuthResponse(error=AuthErrorOut(code=code, message=message)), status_code)


# ---------- 회원가입 / 로그인 ----------

@router.post("/signup")
async def signup(body: SignupIn, gateway: SupabaseAuthGateway = Depends(get_auth_gateway)):
    """가입 후 인증 메일 발송. 미인증 상태라 세션은 없다."""
    result = await gateway.sign_up(body.email, body.password, settings.email_verify_redirect)
    return _respond(result)

@router.post("/signin")
async def signin(body: LoginIn, gateway: SupabaseAuthGateway = Depends(get_auth_gateway)):
    result = await gateway.sign_in(body.email, body.password)
    return _respond(result, error_status=401)

@router.post("/signout")
async def signout():
    """
    서버 세션은 없음. 클라에서 supabase.auth.signOut() 호출.
    이 엔드포인트는 UX용 메시지만 반환.
    """
    return _respond(AuthResponse(data={"message": "Logged out successfully"}))

@router.post("/resend-verification")
async def resend_verification(body: EmailIn, gateway: SupabaseAuthGateway = Depends(get_auth_gateway)):
    result = await gateway.resend_verification(body.email, settings.email_verify_redirect)
    return _respond(result)

@router.get("/verify-email")
async def verify_email(token: str | None = None, gateway: SupabaseAuthGateway = Depends(get_auth_gateway)):
    if not token:
        return _error("MISSING_TOKEN", "Token is required")
    result = await gateway.verify_email(token)
    return _respond(result)


# ---------- 비밀번호 재설정 ----------

@router.post("/reset-password")
async def request_password_reset(body: EmailIn, gateway: SupabaseAuthGateway = Depends(get_auth_gateway)):
    """재설정 메일 발송. 링크는 <SITE_URL>/auth/reset-password?type=update 로 돌아온다."""
    result = await gateway.request_password_reset(body.email, settings.password_reset_redirect)
    return _respond(result)

@router.patch("/reset-password")
async def update_password(body: PasswordResetIn, gateway: SupabaseAuthGateway = Depends(get_auth_gateway)):
    session = RecoverySession(access_token=body.access_token, refresh_token=body.refresh_token)
    result = await gateway.set_password(session, body.new_password)
    return _respond(result)

@router.post("/verify")
async def verify_recovery_tokens(body: TokenPairIn, gateway: SupabaseAuthGateway = Depends(get_auth_gateway)):
    """재설정 링크 토큰 쌍 -> 세션 교환 (토큰당 1회)"""
    if not body.access_token or not body.refresh_token:
        return _error("MISSING_TOKENS", "Access and refresh tokens required")

    result = await gateway.exchange_recovery_tokens(body.access_token, body.refresh_token)
    if result.error is not None:
        return _respond(result)
    return _respond(AuthResponse(data={
        "message": "Reset link verified",
        "session": result.data,
    }))
