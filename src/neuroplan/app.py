from __future__ import annotations

"""Application wiring: configuration, database, AI client and quota gate."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .database_manager import DBConfig, DatabaseManager
from .gemini_breakdown import GeminiClient, GeminiClientConfig
from .keys import load_api_key, redact
from .logging_setup import configure_logging
from .models import User
from .quota import DEFAULT_LIMITS, QuotaGate
from .repositories import create_user, get_user_by_external_id


APP_NAME = "neuroplan"
DB_FILENAME = "neuroplan.sqlite"


@dataclass(slots=True)
class AppConfig:
    data_dir: Path
    log_level: str = "INFO"
    gemini_api_key: str = ""
    free_limit: int = DEFAULT_LIMITS["free"]
    premium_limit: int = DEFAULT_LIMITS["premium"]

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "AppConfig":
        env = os.environ if environ is None else environ
        return cls(
            data_dir=Path(env.get("NEUROPLAN_DATA_DIR", "data")),
            log_level=env.get("NEUROPLAN_LOG_LEVEL", "INFO"),
            gemini_api_key=env.get("GEMINI_API_KEY", ""),
            free_limit=_positive_int(env.get("NEUROPLAN_FREE_LIMIT"), DEFAULT_LIMITS["free"]),
            premium_limit=_positive_int(
                env.get("NEUROPLAN_PREMIUM_LIMIT"), DEFAULT_LIMITS["premium"]
            ),
        )


def _positive_int(raw: Optional[str], default: int) -> int:
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(slots=True)
class AppState:
    config: AppConfig
    db_path: Path
    db: DatabaseManager
    quota_gate: QuotaGate
    gemini_client: GeminiClient | None

    def close(self) -> None:
        if self.gemini_client is not None:
            self.gemini_client.close()
        self.db.close()


def get_app_state(config: Optional[AppConfig] = None) -> AppState:
    config = config or AppConfig.from_env()
    data_dir = config.data_dir
    data_dir.mkdir(parents=True, exist_ok=True)
    # Logging first
    configure_logging(data_dir, config.log_level)
    db_path = data_dir / DB_FILENAME
    db = DatabaseManager(DBConfig(path=db_path))
    db.init_db()
    gate = QuotaGate(
        db, default_limits={"free": config.free_limit, "premium": config.premium_limit}
    )
    # Prefer the stored key, env only if none stored
    gemini_key = load_api_key(data_dir) or config.gemini_api_key
    gemini_client = GeminiClient(GeminiClientConfig(api_key=gemini_key)) if gemini_key else None
    logging.getLogger(__name__).info(
        "app_state_created", extra={"_json_gemini_key": redact(gemini_key)}
    )
    return AppState(
        config=config,
        db_path=db_path,
        db=db,
        quota_gate=gate,
        gemini_client=gemini_client,
    )


def ensure_user(state: AppState, external_id: str, display_name: str | None = None) -> User:
    """Return the user for an auth subject, creating them on first sight."""
    user = get_user_by_external_id(state.db, external_id)
    if user is not None:
        return user
    return create_user(
        state.db,
        User(id=None, external_id=external_id, display_name=display_name),
        requests_limit=state.quota_gate.limit_for("free"),
    )


__all__ = ["APP_NAME", "AppConfig", "AppState", "get_app_state", "ensure_user"]
