from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from articles_api.database import get_db
from articles_api.dependencies import get_current_user
from articles_api.schemas import AuthResponse, CurrentUser, LoginRequest, RegisterRequest
from articles_api.services import auth_service

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=AuthResponse)
async def register(data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    return await auth_service.register(db, data)

@router.post("/login", response_model=AuthResponse)
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    return await auth_service.login(db, data)

@router.get("/me", response_model=CurrentUser)
async def me(user: CurrentUser = Depends(get_current_user)):
    return user
