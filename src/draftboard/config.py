"""Runtime settings read from ``DRAFTBOARD_*`` environment variables."""

import os
from dataclasses import dataclass
from functools import lru_cache


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    # All durations in seconds.
    drop_target_timeout: float = 0.5
    sync_debounce: float = 0.1
    inspection_toggle_delay: float = 0.1
    flow_toggle_delay: float = 0.15
    build_settled_delay: float = 0.1
    inspector_ready_delay: float = 0.05
    placeholder_removal_delay: float = 0.1
    navigation_duration: float = 0.3
    full_reset_threshold: int = 3
    fallback_file: str = "/App.tsx"
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        drop_target_timeout=_env_float("DRAFTBOARD_DROP_TARGET_TIMEOUT", 0.5),
        sync_debounce=_env_float("DRAFTBOARD_SYNC_DEBOUNCE", 0.1),
        inspection_toggle_delay=_env_float("DRAFTBOARD_INSPECTION_TOGGLE_DELAY", 0.1),
        flow_toggle_delay=_env_float("DRAFTBOARD_FLOW_TOGGLE_DELAY", 0.15),
        build_settled_delay=_env_float("DRAFTBOARD_BUILD_SETTLED_DELAY", 0.1),
        inspector_ready_delay=_env_float("DRAFTBOARD_INSPECTOR_READY_DELAY", 0.05),
        placeholder_removal_delay=_env_float("DRAFTBOARD_PLACEHOLDER_REMOVAL_DELAY", 0.1),
        navigation_duration=_env_float("DRAFTBOARD_NAVIGATION_DURATION", 0.3),
        full_reset_threshold=int(_env_float("DRAFTBOARD_FULL_RESET_THRESHOLD", 3)),
        fallback_file=os.getenv("DRAFTBOARD_FALLBACK_FILE", "/App.tsx"),
        log_level=os.getenv("DRAFTBOARD_LOG_LEVEL", "INFO").upper(),
    )
