from __future__ import annotations

import os
import tempfile
from pathlib import Path

os.environ.setdefault(
    "NURSERY_DATABASE_PATH",
    str(Path(tempfile.mkdtemp(prefix="nursery-tests-")) / "nursery.db"),
)

import pytest  # noqa: E402

from nursery.dashboard import get_dashboard_cache  # noqa: E402
from nursery.db import initialize_db, reset_db  # noqa: E402
from nursery.reminders import get_reminder_scheduler  # noqa: E402


@pytest.fixture(autouse=True)
def reset_state():
    initialize_db()
    reset_db()
    get_reminder_scheduler.cache_clear()
    get_dashboard_cache.cache_clear()
    yield
