# app/services/auth/auth_service.py
import logging
from typing import Optional

from sqlmodel import Session, select
from werkzeug.security import check_password_hash, generate_password_hash

from app.core.errors import AuthError, ValidationError
from app.db.models import User, UserRole

logger = logging.getLogger(__name__)


class AuthService:
    """Dashboard accounts and credential checks"""

    def __init__(self, session: Session):
        self.session = session

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.username == username)).first()

    def get_user(self, user_id: str) -> Optional[User]:
        return self.session.get(User, user_id)

    def create_user(self, username: str, password: str, role: UserRole, email: Optional[str] = None) -> User:
        user = User(
            username=username,
            password_hash=generate_password_hash(password),
            role=role.value,
            email=email,
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        logger.info(f"User {username} created with role {role.value}")
        return user

    def authenticate(self, username: Optional[str], password: Optional[str]) -> User:
        if not username or not password:
            raise ValidationError("Username and password are required")

        user = self.get_user_by_username(username)
        # Same message for unknown user and bad password
        if not user or not check_password_hash(user.password_hash, password):
            logger.warning(f"Failed login for {username}")
            raise AuthError("Invalid credentials")

        logger.info(f"User {username} logged in")
        return user
