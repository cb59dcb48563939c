# server/api/home.py

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from core.config import SESSION_COOKIE_NAME
from core.identity import read_session_token


router = APIRouter(tags=["home"])


@router.get("/", response_class=PlainTextResponse)
@router.get("/Home/Index", response_class=PlainTextResponse)
def home(request: Request):
    user_name = read_session_token(request.cookies.get(SESSION_COOKIE_NAME))
    if user_name:
        return f"Welcome, {user_name}"
    return "Welcome"
