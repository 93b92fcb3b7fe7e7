# app/routers/auth_router.py
from fastapi import APIRouter, Depends, Request
from sqlmodel import Session
import logging

from app.core.errors import AuthError
from app.db.models import User, UserRole
from app.db.session import get_session
from app.schemas.auth import LoginRequest, LoginResponse, UserResponse
from app.services.auth import create_jwt_token, decode_jwt_token
from app.services.auth.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


async def get_auth_service(session: Session = Depends(get_session)) -> AuthService:
    """Dependency to get auth service"""
    return AuthService(session)


async def get_current_user(request: Request, auth_service: AuthService = Depends(get_auth_service)) -> User:
    """Resolve the caller from the Bearer token"""
    auth_header = request.headers.get("Authorization")
    token = None
    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1].strip()

    if not token:
        raise AuthError("Access token required", status_code=401)

    payload = decode_jwt_token(token)
    if not payload or not payload.get("sub"):
        raise AuthError("Invalid token", status_code=403)

    user = auth_service.get_user(payload["sub"])
    if not user:
        raise AuthError("Invalid token: unknown user", status_code=403)
    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Admin-only endpoints"""
    if current_user.role != UserRole.ADMIN:
        raise AuthError("Admin access required", status_code=403)
    return current_user


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, auth_service: AuthService = Depends(get_auth_service)):
    """
    Exchange username and password for a Bearer token

    The token carries the user id, username and role and expires after
    JWT_EXPIRE_HOURS.
    """
    user = auth_service.authenticate(payload.username, payload.password)
    token = create_jwt_token({"sub": user.id, "username": user.username, "role": user.role})
    return LoginResponse(token=token, user=UserResponse.model_validate(user))


@router.post("/logout")
async def logout():
    """Tokens are stateless; the client simply discards its token"""
    return {"success": True, "message": "Logged out successfully"}


@router.get("/verify")
async def verify(current_user: User = Depends(get_current_user)):
    """Check a token and return the user it belongs to"""
    return {"success": True, "user": UserResponse.model_validate(current_user)}
