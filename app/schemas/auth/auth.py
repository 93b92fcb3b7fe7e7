from typing import Optional
from pydantic import BaseModel


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    username: str
    role: str
    email: Optional[str] = None

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    user: UserResponse
