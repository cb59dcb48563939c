# server/core/identity.py

"""
Credential and session managers.

The account workflows only see the two protocols below. UserManager hashes
and persists accounts with passlib + SQLAlchemy, SignInManager verifies a
password and issues a signed session token with python-jose.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

from fastapi.concurrency import run_in_threadpool
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.config import (
    JWT_ALGORITHM,
    JWT_SECRET_KEY,
    PASSWORD_MIN_LENGTH,
    SESSION_EXPIRE_MINUTES,
)
from models.user import User


logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALLOWED_USERNAME = re.compile(r"^[A-Za-z0-9\-._@+]+$")


# -------------------------------
# Results
# -------------------------------

@dataclass
class IdentityError:
    code: str
    description: str


@dataclass
class IdentityResult:
    succeeded: bool
    errors: list[IdentityError] = field(default_factory=list)

    @classmethod
    def success(cls) -> "IdentityResult":
        return cls(succeeded=True)

    @classmethod
    def failed(cls, *errors: IdentityError) -> "IdentityResult":
        return cls(succeeded=False, errors=list(errors))


@dataclass
class SignInResult:
    succeeded: bool
    token: Optional[str] = None
    is_persistent: bool = False


# -------------------------------
# Capabilities seen by the workflows
# -------------------------------

class CredentialManager(Protocol):
    async def find_by_name(self, user_name: str) -> Optional[User]: ...

    async def create(self, user: User, password: str) -> IdentityResult: ...

    async def check_password(self, user: User, password: str) -> bool: ...


class SessionManager(Protocol):
    async def password_sign_in(
        self,
        user: User,
        password: str,
        is_persistent: bool,
        lockout_on_failure: bool,
    ) -> SignInResult: ...


# -------------------------------
# Password hashing
# -------------------------------

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # unrecognized or corrupt hash
        return False


# -------------------------------
# UserManager
# -------------------------------

class UserManager:
    """
    Creates and looks up accounts in the users table.

    Uniqueness of usernames is ultimately enforced by the table's unique
    index; the lookup in _validate_user only produces a friendlier error.
    """

    def __init__(self, db: Session, password_min_length: int = PASSWORD_MIN_LENGTH):
        self.db = db
        self.password_min_length = password_min_length

    async def find_by_name(self, user_name: str) -> Optional[User]:
        return await run_in_threadpool(self._find_by_name, user_name)

    async def create(self, user: User, password: str) -> IdentityResult:
        return await run_in_threadpool(self._create, user, password)

    async def check_password(self, user: User, password: str) -> bool:
        return await run_in_threadpool(verify_password, password, user.hashed_password)

    def _find_by_name(self, user_name: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == user_name).first()

    def _validate_user(self, user: User) -> list[IdentityError]:
        name = user.username or ""
        if not name.strip():
            return [IdentityError("InvalidUserName", "用户名不能为空")]
        if not ALLOWED_USERNAME.match(name):
            return [IdentityError("InvalidUserName", f"用户名 '{name}' 无效，只能包含字母或数字")]
        if self._find_by_name(name) is not None:
            return [IdentityError("DuplicateUserName", f"用户名 '{name}' 已被使用")]
        return []

    def _validate_password(self, password: str | None) -> list[IdentityError]:
        if not password:
            return [IdentityError("PasswordRequired", "密码不能为空")]
        if len(password) < self.password_min_length:
            return [IdentityError(
                "PasswordTooShort",
                f"密码长度至少为 {self.password_min_length} 个字符",
            )]
        if "\x00" in password:
            return [IdentityError("PasswordInvalid", "密码不能包含空字符")]
        return []

    def _create(self, user: User, password: str) -> IdentityResult:
        errors = self._validate_user(user) + self._validate_password(password)
        if errors:
            return IdentityResult.failed(*errors)

        try:
            user.hashed_password = get_password_hash(password)
        except ValueError as e:
            logger.info("Password rejected by hasher: %s", e, extra={"username": user.username})
            return IdentityResult.failed(IdentityError("PasswordInvalid", "密码格式无效"))
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info("Concurrent registration lost the race", extra={"username": user.username})
            return IdentityResult.failed(
                IdentityError("DuplicateUserName", f"用户名 '{user.username}' 已被使用")
            )
        self.db.refresh(user)
        return IdentityResult.success()


# -------------------------------
# SignInManager
# -------------------------------

def create_session_token(user_name: str, expires_delta: timedelta | None = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=SESSION_EXPIRE_MINUTES))
    to_encode = {"sub": user_name, "iat": now, "exp": expire}
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def read_session_token(token: str | None) -> Optional[str]:
    if not token:
        return None
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.debug("Session token rejected: %s", e)
        return None
    return payload.get("sub")


class SignInManager:
    """Verifies passwords through a CredentialManager and issues session tokens."""

    def __init__(self, credentials: CredentialManager):
        self.credentials = credentials

    async def password_sign_in(
        self,
        user: User,
        password: str,
        is_persistent: bool = False,
        lockout_on_failure: bool = False,
    ) -> SignInResult:
        if not await self.credentials.check_password(user, password):
            return SignInResult(succeeded=False)
        return SignInResult(
            succeeded=True,
            token=create_session_token(user.username),
            is_persistent=is_persistent,
        )
