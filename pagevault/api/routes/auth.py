"""Authentication routes."""

from fastapi import APIRouter, Request, status

from pagevault.api.deps import CurrentUser, DB
from pagevault.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from pagevault.services.auth_service import auth_service
from pagevault.utils.envelopes import api_success

router = APIRouter(tags=["auth"])


@router.post("/auth/register", response_model=dict, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, request: Request, db: DB):
	"""Create an account and return a token for it."""
	user = await auth_service.register(db, payload, request=request)
	token, expires_at = auth_service.issue_token(user)
	response = AuthResponse(user=UserResponse.from_user(user), token=token, expires_at=expires_at)
	return api_success(response.model_dump(by_alias=True))


@router.post("/auth/login", response_model=dict)
async def login(payload: LoginRequest, request: Request, db: DB):
	user, token, expires_at = await auth_service.login(db, payload.email, payload.password, request=request)
	response = AuthResponse(user=UserResponse.from_user(user), token=token, expires_at=expires_at)
	return api_success(response.model_dump(by_alias=True))


@router.get("/auth/me", response_model=dict)
async def me(current_user: CurrentUser):
	return api_success(UserResponse.from_user(current_user).model_dump(by_alias=True))
