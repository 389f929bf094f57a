# app/routers/user_profile.py

from fastapi import APIRouter, Depends, HTTPException

from app.deps import get_current_user, get_profile_service
from app.schemas.profile import ProfileOut, ProfileUpdateIn
from app.services.errors import InvalidInput, StorageError
from app.services.profile_service import ProfileService

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


# ---- 내 프로필 조회 ----

@router.get("/me", response_model=ProfileOut)
async def get_my_profile(
    current=Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    try:
        profile = await service.get_profile(current["id"])
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail={"message": "invalid_input", "detail": str(e)})
    except StorageError as e:
        raise HTTPException(status_code=500, detail={"message": "internal_error", "detail": str(e)})

    if profile is None:
        raise HTTPException(status_code=404, detail={"message": "profile_not_found"})
    return profile


# ---- 내 프로필 수정 (display_name / locale / timezone) ----

@router.patch("/me", response_model=ProfileOut)
async def update_my_profile(
    payload: ProfileUpdateIn,
    current=Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    try:
        profile = await service.update_profile(current["id"], payload)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail={"message": "invalid_input", "detail": str(e)})
    except StorageError as e:
        raise HTTPException(status_code=500, detail={"message": "internal_error", "detail": str(e)})

    if profile is None:
        raise HTTPException(status_code=404, detail={"message": "profile_not_found"})
    return profile
