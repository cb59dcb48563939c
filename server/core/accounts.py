# server/core/accounts.py

"""
Registration and login workflows.

Each call handles one submitted form and ends in one of two outcomes:
a Redirect to the landing page, or the same form returned with errors.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

from core.forms import (
    FieldError,
    LoginRequest,
    RegistrationRequest,
    validate_login,
    validate_registration,
)
from core.identity import CredentialManager, SessionManager
from models.user import User


logger = logging.getLogger(__name__)

HOME_URL = "/"

USER_NOT_FOUND = "用户不存在"
WRONG_PASSWORD = "密码不正确"


@dataclass
class Redirect:
    location: str
    session_token: Optional[str] = None
    persistent: bool = False


@dataclass
class FormWithErrors:
    form: Union[RegistrationRequest, LoginRequest]
    errors: list[FieldError] = field(default_factory=list)


AccountOutcome = Union[Redirect, FormWithErrors]


class AccountWorkflows:
    def __init__(self, credentials: CredentialManager, sessions: SessionManager):
        self.credentials = credentials
        self.sessions = sessions

    async def register(self, request: RegistrationRequest) -> AccountOutcome:
        errors = validate_registration(request)
        if errors:
            return FormWithErrors(request, errors)

        user = User(username=request.user_name)
        result = await self.credentials.create(user, request.password)
        if not result.succeeded:
            logger.info(
                "Registration rejected",
                extra={"username": request.user_name, "codes": [e.code for e in result.errors]},
            )
            return FormWithErrors(request, [FieldError("", e.description) for e in result.errors])

        logger.info("User registered", extra={"userId": user.id, "username": user.username})
        return Redirect(HOME_URL)

    async def login(self, request: LoginRequest) -> AccountOutcome:
        errors = validate_login(request)
        if errors:
            return FormWithErrors(request, errors)

        user = await self.credentials.find_by_name(request.user_name)
        if user is None:
            logger.info("Login for unknown user", extra={"username": request.user_name})
            return FormWithErrors(request, [FieldError("", USER_NOT_FOUND)])

        result = await self.sessions.password_sign_in(
            user, request.password, is_persistent=False, lockout_on_failure=False
        )
        if not result.succeeded:
            logger.info("Login with wrong password", extra={"username": request.user_name})
            return FormWithErrors(request, [FieldError("", WRONG_PASSWORD)])

        logger.info("User logged in", extra={"userId": user.id, "username": user.username})
        return Redirect(HOME_URL, session_token=result.token, persistent=result.is_persistent)
