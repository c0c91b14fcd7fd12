from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .db import initialize_db
from .routes import analytics as analytics_routes
from .routes import events as events_routes
from .routes import reminders as reminder_routes
from .routes import settings as settings_routes

logger = logging.getLogger(__name__)

initialize_db()

app = FastAPI(
    title="Nursery Engine API",
    version="0.1.0",
    description="Feeding progress, baselines, next-expected countdowns and overdue reminders",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

app.include_router(events_routes.router)
app.include_router(analytics_routes.router)
app.include_router(reminder_routes.router)
app.include_router(settings_routes.router)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
