# app/config.py


from dotenv import load_dotenv
from pathlib import Path
from typing import List, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()  # .env 파일 먼저 읽기

BASE_DIR = Path(__file__).resolve().parent.parent

class Settings(BaseSettings):
    # 환경 구분
    app_env: str = "local"
    log_level: str = "INFO"

    # Supabase 필수 설정
    supabase_url: str                        # SUPABASE_URL
    supabase_anon_key: str                   # SUPABASE_ANON_KEY
    supabase_issuer: str | None = None       # SUPABASE_ISSUER
    supabase_jwt_audience: str = "authenticated"  # SUPABASE_JWT_AUDIENCE
    supabase_jwt_secret: str | None = None

    # 프로필/감사로그 저장소: supabase(RLS 적용) 또는 sql(DATABASE_URL 직접 연결)
    store_backend: Literal["supabase", "sql"] = "supabase"
    database_url: str | None = None          # DATABASE_URL

    # 메일 링크, 비밀번호 재설정 후 이동
    site_url: str = "http://localhost:3000"
    login_path: str = "/auth/login"
    recovery_redirect_delay_seconds: float = 2.0

    cors_allow_origins: List[str] = ["*"]

    # pydantic-settings v2 스타일
    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),  # 루트 .env 절대경로
        env_file_encoding="utf-8",
        extra="ignore",                   # 필요 없는 env 무시
    )

    @property
    def password_reset_redirect(self) -> str:
        return f"{self.site_url}/auth/reset-password?type=update"

    @property
    def email_verify_redirect(self) -> str:
        return f"{self.site_url}/auth/verify-email"

settings = Settings()
