"""Authentication endpoints."""

from fastapi import APIRouter

from chronoline.dependencies import AuthServiceDep, CurrentUserDep
from chronoline.errors import NotFoundError
from chronoline.models import AuthResponse, LoginRequest, RegisterRequest, TokenResponse, User

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(body: RegisterRequest, service: AuthServiceDep):
    return await service.register(body.username, body.email, body.password)


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, service: AuthServiceDep):
    return await service.login(body.username, body.password)


@router.get("/me", response_model=User)
async def me(user: CurrentUserDep, service: AuthServiceDep):
    record = await service.get_user(user.id)
    if not record:
        raise NotFoundError("User not found")
    return record


@router.post("/refresh", response_model=TokenResponse)
async def refresh(user: CurrentUserDep, service: AuthServiceDep):
    return TokenResponse(token=service.refresh_token(user))
