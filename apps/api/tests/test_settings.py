from __future__ import annotations

from nursery.db import get_connection
from nursery.schemas import ActivityCategory
from nursery.settings import (
    DEFAULT_TIMEZONE,
    UserSettings,
    is_clock_string,
    load_user_settings,
    save_user_settings,
)


def test_defaults_when_nothing_saved() -> None:
    settings = load_user_settings()
    assert settings.feeding.target_amount == 24
    assert settings.feeding.target_time == "22:00"
    assert settings.feeding.wake_time == "07:00"
    assert settings.feeding.average_days == 3
    assert settings.timezone == DEFAULT_TIMEZONE
    assert settings.reminder(ActivityCategory.SLEEP).threshold_hours == 4
    assert settings.reminder(ActivityCategory.DIAPER).enabled is False
    assert settings.interval(ActivityCategory.PUMPING).interval_hours == 4
    assert settings.interval(ActivityCategory.SLEEP) is None


def test_malformed_values_fall_back_to_defaults() -> None:
    settings = UserSettings(
        timezone="Mars/Olympus_Mons",
        feeding={"target_amount": "lots", "target_time": "25:00", "wake_time": 7, "average_days": -2},
        reminders={"feeding": {"enabled": True, "threshold_hours": -1}, "bath": {"enabled": True}},
        intervals={"sleep": {"enabled": True, "interval_hours": 2}, "diaper": "often"},
    )
    assert settings.timezone == DEFAULT_TIMEZONE
    assert settings.feeding.target_amount == 24
    assert settings.feeding.target_time == "22:00"
    assert settings.feeding.wake_time == "07:00"
    assert settings.feeding.average_days == 3
    assert settings.reminder(ActivityCategory.FEEDING).enabled is True
    assert settings.reminder(ActivityCategory.FEEDING).threshold_hours == 3
    assert ActivityCategory.SLEEP not in settings.intervals
    assert settings.interval(ActivityCategory.DIAPER).enabled is False
    assert settings.interval(ActivityCategory.DIAPER).interval_hours == 3


def test_clock_strings() -> None:
    assert is_clock_string("7:30")
    assert is_clock_string("23:59")
    assert not is_clock_string("24:00")
    assert not is_clock_string("noon")
    assert not is_clock_string(None)


def test_save_and_reload() -> None:
    saved = save_user_settings(
        UserSettings(
            child_id=4,
            child_name="Robin",
            timezone="Europe/London",
            feeding={"target_amount": 30, "target_time": "21:30", "average_days": 5},
            reminders={"pumping": {"enabled": True, "threshold_hours": 2.5}},
        )
    )
    loaded = load_user_settings()
    assert loaded == saved
    assert loaded.reminder(ActivityCategory.PUMPING).threshold_hours == 2.5
    assert loaded.zone.key == "Europe/London"


def test_corrupt_row_loads_defaults() -> None:
    with get_connection() as conn:
        conn.execute(
            "INSERT INTO user_settings (id, payload, updated_at) VALUES (1, ?, ?)",
            ("{not json", "2024-06-01T00:00:00"),
        )
        conn.commit()
    assert load_user_settings() == UserSettings()


def test_enabled_flag_is_parsed_not_truthy() -> None:
    settings = UserSettings.model_validate(
        {
            "reminders": {
                "feeding": {"enabled": "false", "threshold_hours": 3},
                "diaper": {"enabled": "maybe", "threshold_hours": 2},
                "pumping": {"enabled": "true", "threshold_hours": 5},
            },
            "intervals": {"feeding": {"enabled": "no", "interval_hours": 2}},
        }
    )
    assert settings.reminder(ActivityCategory.FEEDING).enabled is False
    assert settings.reminder(ActivityCategory.DIAPER).enabled is False
    assert settings.reminder(ActivityCategory.DIAPER).threshold_hours == 3
    assert settings.reminder(ActivityCategory.PUMPING).enabled is True
    assert settings.reminder(ActivityCategory.PUMPING).threshold_hours == 5
    assert settings.interval(ActivityCategory.FEEDING).enabled is False
