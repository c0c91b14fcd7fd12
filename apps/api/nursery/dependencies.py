"""FastAPI dependencies shared by the routers."""
from __future__ import annotations

from datetime import datetime

from fastapi import Depends

from .settings import UserSettings, load_user_settings


def get_settings() -> UserSettings:
    # Read fresh on every request; settings edits apply to the next computation.
    return load_user_settings()


def get_now(settings: UserSettings = Depends(get_settings)) -> datetime:
    return settings.now()
