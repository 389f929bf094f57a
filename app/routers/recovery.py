# app/routers/recovery.py
# 비밀번호 재설정 화면 상태 머신 API
# - 상태는 서버에 저장하지 않는다. 클라가 현재 상태를 보내면 다음 상태를 돌려준다.
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.config import settings
from app.deps import get_auth_gateway
from app.services import recovery as svc
from app.services.supabase_auth import SupabaseAuthGateway

router = APIRouter(prefix="/api/auth/recovery", tags=["auth"])


class OpenLinkIn(BaseModel):
    url: str
    state: Optional[svc.RecoveryState] = None

class SubmitIn(svc.RecoveryForm):
    state: svc.RecoveryState


# 1) 재설정 링크 열기: type=recovery + 토큰 쌍이면 update 모드로
@router.post("/open")
async def open_link(body: OpenLinkIn, gateway: SupabaseAuthGateway = Depends(get_auth_gateway)):
    state = body.state or svc.RequestState()
    return await svc.open_recovery_link(state, body.url, gateway)


# 2) 폼 제출: request 모드는 메일 발송, update 모드는 비밀번호 변경
@router.post("/submit")
async def submit(body: SubmitIn, gateway: SupabaseAuthGateway = Depends(get_auth_gateway)):
    return await svc.submit_recovery_form(
        body.state,
        body,
        gateway,
        redirect_to=settings.password_reset_redirect,
        login_path=settings.login_path,
        redirect_after_seconds=settings.recovery_redirect_delay_seconds,
    )
