from uuid import uuid4

import bcrypt
import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from orderpay import errors
from orderpay.models import User

logger = structlog.get_logger(__name__)

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


class UserDirectory:
    def __init__(self, session_factory: sessionmaker):
        self._sessions = session_factory

    def register(self, name: str, email: str, password: str) -> User:
        if not name or not email or not password:
            raise errors.ValidationError("All fields required")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise errors.ValidationError("Password is too long")

        email = email.strip().lower()
        user = User(id=str(uuid4()), name=name, email=email, password_hash=hash_password(password))
        try:
            with self._sessions.begin() as session:
                session.add(user)
        except IntegrityError:
            raise errors.DuplicateUser("User already exists")

        logger.info("user_registered", user_id=user.id)
        return user

    def authenticate(self, email: str, password: str) -> User:
        with self._sessions() as session:
            user = session.scalars(select(User).where(User.email == email.strip().lower())).first()

        if not user or not check_password(password, user.password_hash):
            logger.info("login_rejected")
            raise errors.InvalidLogin("Invalid credentials")
        return user

    def get(self, user_id: str) -> User | None:
        with self._sessions() as session:
            return session.get(User, user_id)
