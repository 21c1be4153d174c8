from src.services import (
    activity_service,
    analytics_service,
    auth_service,
    family_service,
    ledger_service,
    reset_service,
    streak_service,
    task_service,
    task_state_machine,
    today_service,
)


__all__ = [
    "activity_service",
    "analytics_service",
    "auth_service",
    "family_service",
    "ledger_service",
    "reset_service",
    "streak_service",
    "task_service",
    "task_state_machine",
    "today_service",
]
