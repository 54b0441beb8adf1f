from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.auth import create_access_token, get_current_user
from autocrm.core.database import get_db
from autocrm.models.master import Master, MasterRole
from autocrm.schemas.master import MasterResponse
from autocrm.services.master_service import authenticate, create_master, update_master, change_password

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    full_name: str = Field(min_length=1, max_length=100)
    phone: str = Field(min_length=5, max_length=20)
    password: str = Field(min_length=6)


class LoginRequest(BaseModel):
    phone: str
    password: str


class ProfileUpdateRequest(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = Field(default=None, min_length=5, max_length=20)
    current_password: str | None = None
    new_password: str | None = Field(default=None, min_length=6)


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: MasterResponse


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    # Self-registration never grants a management role
    try:
        master = await create_master(db, body.full_name, body.phone, body.password, role=MasterRole.master)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return TokenResponse(token=create_access_token(master), user=MasterResponse.model_validate(master))


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    master = await authenticate(db, body.phone, body.password)
    if not master:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid phone or password")
    if not master.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is deactivated")
    return TokenResponse(token=create_access_token(master), user=MasterResponse.model_validate(master))


@router.post("/logout")
async def logout(user: Master = Depends(get_current_user)):
    # Tokens are stateless; the client drops its copy
    return {"status": "ok"}


@router.get("/me", response_model=MasterResponse)
async def get_me(user: Master = Depends(get_current_user)):
    return user


@router.patch("/me", response_model=MasterResponse)
async def update_profile(
    body: ProfileUpdateRequest,
    user: Master = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if body.new_password:
        if not body.current_password:
            raise HTTPException(status_code=400, detail="Current password is required")
        try:
            await change_password(db, user, body.current_password, body.new_password)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    try:
        master = await update_master(db, user.id, {"full_name": body.full_name, "phone": body.phone})
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return master
