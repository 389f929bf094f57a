# app/main.py

# ------------------------
# 환경 변수 / 로깅
# ------------------------
import logging

from app.config import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# ------------------------
# FastAPI, CORS 미들웨어 import
# ------------------------
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# ------------------------
# 라우터 import
# ------------------------
from app.routers import auth as auth_router
from app.routers import recovery as recovery_router
from app.routers import user_profile as user_profile_router

# ------------------------
# 1) FastAPI 앱 생성
# ------------------------
app = FastAPI(title="Habit Tracker API")

# ------------------------
# 2) CORS 미들웨어 추가
#    - 기본값은 전체 허용, 운영은 CORS_ALLOW_ORIGINS로 제한
# ------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=False,  # 쿠키 안 씀 (Bearer 토큰)
    allow_methods=["*"],
    allow_headers=["*"],
)

# ------------------------
# 3) 에러 핸들러
#    - 요청 검증 실패는 422 대신 400 + 필드별 에러 목록
#    - 처리 못 한 예외는 500 (내부 메시지 노출 안 함)
# ------------------------
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            # ("body", "locale") -> "locale"
            "field": ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query")),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"detail": {"message": "validation_failed", "errors": errors}},
    )

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("[APP] unhandled error %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"data": None, "error": {"code": "INTERNAL_ERROR", "message": "Internal server error"}},
    )

# ------------------------
# 4) 라우터 등록
# ------------------------
app.include_router(auth_router.router)
app.include_router(recovery_router.router)
app.include_router(user_profile_router.router)

# ------------------------
# 5) Root 엔드포인트 (health check)
# ------------------------
@app.get("/")
def root():
    return {"ok": True}
