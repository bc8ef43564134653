from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.database import get_db
from conduit.dependencies import get_current_user, get_optional_user, get_profile
from conduit.models import User
from conduit.schemas import ProfileResponse
from conduit.services import relationship_service, user_service

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


@router.get("/{username}", response_model=ProfileResponse)
async def get_profile_view(
    profile: User = Depends(get_profile),
    viewer: User | None = Depends(get_optional_user),
):
    return {"profile": user_service.get_profile_info(profile, viewer)}


@router.post("/{username}/follow", response_model=ProfileResponse)
async def follow_user(
    profile: User = Depends(get_profile),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await relationship_service.follow(db, user, profile)
    return {"profile": user_service.get_profile_info(profile, user)}


@router.delete("/{username}/follow", response_model=ProfileResponse)
async def unfollow_user(
    profile: User = Depends(get_profile),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await relationship_service.unfollow(db, user, profile)
    return {"profile": user_service.get_profile_info(profile, user)}
