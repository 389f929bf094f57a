# 인증 관련 Pydantic 스키마
# - 요청 바디 검증 (FastAPI Request Body)
# - 응답 포맷 {data, error} 통일
from typing import Any, Optional

from pydantic import BaseModel, EmailStr, Field

PASSWORD_MIN_LENGTH = 8


# ---------- Request ----------

class SignupIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)

class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

class EmailIn(BaseModel):
    # 인증 메일 재전송, 비밀번호 찾기 등 email만 받을 때
    email: EmailStr

class TokenPairIn(BaseModel):
    # 재설정 링크 fragment에 들어있던 토큰 쌍 (빈 값 검사는 라우터에서 MISSING_TOKENS로)
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

class PasswordResetIn(BaseModel):
    new_password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)
    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)


# ---------- Response ----------

class AuthErrorOut(BaseModel):
    code: str
    message: str

class AuthResponse(BaseModel):
    data: Optional[Any] = None
    error: Optional[AuthErrorOut] = None

    @property
    def ok(self) -> bool:
        return self.error is None

class RecoverySession(BaseModel):
    access_token: str
    refresh_token: str
