from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _get_str(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


class Config:
    SECRET_KEY = _get_str("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_DATABASE_URI = _get_str("DATABASE_URL", "sqlite:///amigosecreto.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Optional urlsafe base64 Fernet key; derived from SECRET_KEY when empty.
    ASSIGNMENT_ENC_KEY = _get_str("ASSIGNMENT_ENC_KEY")

    # "cycle" (single rotating cycle) or "uniform" (any derangement)
    DRAW_STRATEGY = _get_str("DRAW_STRATEGY", "cycle").lower()

    # Header the upstream auth layer sets with the caller's participant id
    AUTH_HEADER = _get_str("AUTH_HEADER", "X-Participant-Id")

    API_PREFIX = _get_str("API_PREFIX").rstrip("/")

    LOG_LEVEL = _get_str("LOG_LEVEL", "INFO").upper()
