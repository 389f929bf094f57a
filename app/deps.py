# app/deps.py
import logging

from fastapi import Depends, Header, HTTPException
from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions

from app.config import settings
from app.db.session import SessionLocal
from app.services.audit_service import AuditSink
from app.services.profile_service import ProfileService
from app.services.profile_store import ProfileStore, SqlStore, SupabaseStore
from app.services.supa_auth import verify_bearer
from app.services.supabase_auth import SupabaseAuthGateway

logger = logging.getLogger(__name__)

# ----------------------------
# Supabase 클라이언트 (요청마다 새로)
# ----------------------------
async def get_supabase() -> AsyncClient:
    """
    서버에 세션을 보관하지 않는다. 요청마다 anon key 클라이언트를 만들고,
    필요하면 사용자 토큰으로 인증해서 RLS가 적용되게 한다.
    """
    return await acreate_client(
        settings.supabase_url,
        settings.supabase_anon_key,
        options=AsyncClientOptions(auto_refresh_token=False, persist_session=False),
    )

# ----------------------------
# 현재 사용자 가져오기
# ----------------------------
async def get_current_user(
    authorization: str | None = Header(None),
):
    try:
        claims = await verify_bearer(authorization)
    except ValueError as e:
        logger.info("[AUTH] verify_bearer failed: %s", e)
        raise HTTPException(status_code=401, detail={"message": "unauthorized"})

    return {
        "id": claims["user_id"],
        "email": claims.get("email"),
        "access_token": claims["token"],
    }

# ----------------------------
# 프로필 저장소 / 서비스
# ----------------------------
async def get_store(current=Depends(get_current_user)) -> ProfileStore:
    if settings.store_backend == "sql":
        return SqlStore(SessionLocal)
    supabase = await get_supabase()
    supabase.postgrest.auth(current["access_token"])  # RLS: user_id = auth.uid()
    return SupabaseStore(supabase)


def get_profile_service(store: ProfileStore = Depends(get_store)) -> ProfileService:
    return ProfileService(store, AuditSink(store))

# ----------------------------
# Supabase Auth
# ----------------------------
def get_auth_gateway(supabase: AsyncClient = Depends(get_supabase)) -> SupabaseAuthGateway:
    return SupabaseAuthGateway(supabase)
