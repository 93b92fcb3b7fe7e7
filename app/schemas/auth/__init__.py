from .auth import LoginRequest, LoginResponse, UserResponse

__all__ = ["LoginRequest", "LoginResponse", "UserResponse"]
