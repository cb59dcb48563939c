# server/api/account.py

import logging
from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from sqlalchemy.orm import Session

from core.accounts import AccountOutcome, AccountWorkflows, HOME_URL, Redirect
from core.config import SESSION_COOKIE_NAME, SESSION_EXPIRE_MINUTES
from core.forms import LoginRequest, RegistrationRequest
from core.identity import SignInManager, UserManager, read_session_token
from core.pages import render_login_page, render_register_page
from database import get_db


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/Account", tags=["account"])


# -------------------------------
# Dependencies
# -------------------------------

def get_user_manager(db: Session = Depends(get_db)) -> UserManager:
    return UserManager(db)


def get_sign_in_manager(users: UserManager = Depends(get_user_manager)) -> SignInManager:
    return SignInManager(users)


def get_account_workflows(
    users: UserManager = Depends(get_user_manager),
    sign_in: SignInManager = Depends(get_sign_in_manager),
) -> AccountWorkflows:
    return AccountWorkflows(users, sign_in)


def to_response(outcome: AccountOutcome, render) -> HTMLResponse | RedirectResponse:
    """Turns a workflow outcome into a redirect (plus session cookie) or a re-rendered form."""
    if isinstance(outcome, Redirect):
        response = RedirectResponse(outcome.location, status_code=status.HTTP_303_SEE_OTHER)
        if outcome.session_token:
            response.set_cookie(
                SESSION_COOKIE_NAME,
                outcome.session_token,
                max_age=SESSION_EXPIRE_MINUTES * 60 if outcome.persistent else None,
                httponly=True,
                samesite="lax",
            )
        return response

    return HTMLResponse(render(outcome.form, outcome.errors))


# -------------------------------
# Routes
# -------------------------------

@router.get("/Index", response_class=PlainTextResponse)
def index():
    return "Welcome to Account"


@router.get("/Register", response_class=HTMLResponse)
def register_page():
    return render_register_page()


@router.post("/Register")
async def register(
    user_name: str = Form("", alias="UserName"),
    password: str = Form("", alias="Password"),
    confirm_password: str = Form("", alias="Confirmpassword"),
    workflows: AccountWorkflows = Depends(get_account_workflows),
):
    request = RegistrationRequest(user_name, password, confirm_password)
    outcome = await workflows.register(request)
    return to_response(outcome, render_register_page)


@router.get("/Login", response_class=HTMLResponse)
def login_page():
    return render_login_page()


@router.post("/Login")
async def login(
    user_name: str = Form("", alias="UserName"),
    password: str = Form("", alias="Password"),
    workflows: AccountWorkflows = Depends(get_account_workflows),
):
    request = LoginRequest(user_name, password)
    outcome = await workflows.login(request)
    return to_response(outcome, render_login_page)


@router.post("/Logout")
def logout(request: Request):
    user_name = read_session_token(request.cookies.get(SESSION_COOKIE_NAME))
    if user_name:
        logger.info("User logged out", extra={"username": user_name})
    response = RedirectResponse(HOME_URL, status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(SESSION_COOKIE_NAME)
    return response
