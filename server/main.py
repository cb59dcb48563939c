# server/main.py

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from api import account, home
from core.config import CORS_ORIGINS, LOG_LEVEL
from database import init_db


logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

init_db()

app = FastAPI(title="Identity")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(home.router)
app.include_router(account.router)
