from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.database import get_db
from conduit.dependencies import get_current_user
from conduit.models import User
from conduit.schemas import UserLoginRequest, UserRegisterRequest, UserResponse, UserUpdateRequest
from conduit.services import user_service

router = APIRouter(prefix="/api", tags=["users"])


@router.post("/users", status_code=201, response_model=UserResponse)
async def register(data: UserRegisterRequest, db: AsyncSession = Depends(get_db)):
    user = await user_service.register_user(db, data.user)
    return {"user": user_service.get_user_info(user, include_token=True)}


@router.post("/users/login", response_model=UserResponse)
async def login(data: UserLoginRequest, db: AsyncSession = Depends(get_db)):
    user = await user_service.authenticate(db, data.user)
    return {"user": user_service.get_user_info(user, include_token=True)}


@router.get("/user", response_model=UserResponse)
async def current_user(user: User = Depends(get_current_user)):
    return {"user": user_service.get_user_info(user, include_token=True)}


@router.put("/user", response_model=UserResponse)
async def update_current_user(
    data: UserUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.update_user(db, user, data.user)
    return {"user": user_service.get_user_info(user, include_token=True)}
