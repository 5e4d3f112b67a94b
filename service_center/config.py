"""Application configuration values and helpers.

Centralizes runtime configuration for:
  - Database URL (supports local file or server URL)
  - Log level

Values can be provided via environment variables or a user settings file at
``~/.service_center/settings.toml``.

Environment variables (quick overrides):
  - DATABASE_URL: full SQLAlchemy URL; overrides settings.toml
  - SC_SETTINGS_PATH: location of settings.toml
  - SC_LOG_LEVEL: logging level name (DEBUG, INFO, ...)
"""

from __future__ import annotations

import atexit
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from sqlmodel import create_engine
from sqlalchemy.engine import Engine, make_url

# TOML read/write helpers: prefer stdlib tomllib (3.11+),
# fall back to third-party toml if available; otherwise write minimal TOML.
try:  # Python 3.11+
    import tomllib as _toml_reader  # type: ignore[attr-defined]
except Exception:  # pragma: no cover - environment-dependent
    _toml_reader = None  # type: ignore

try:
    import toml as _toml_rw  # type: ignore
except Exception:  # pragma: no cover - environment-dependent
    _toml_rw = None  # type: ignore

BASE_DIR = Path(__file__).resolve().parent
REPO_ROOT = BASE_DIR.parent

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _determine_settings_path() -> Path:
    override = os.getenv("SC_SETTINGS_PATH")
    if override:
        return Path(override).expanduser().resolve()
    repo_settings = REPO_ROOT / "settings.toml"
    if repo_settings.exists():
        return repo_settings
    return (Path.home() / ".service_center" / "settings.toml").resolve()


SETTINGS_PATH = _determine_settings_path()


def _ensure_sqlite_directory(url: str) -> str:
    try:
        url_obj = make_url(url)
    except Exception:
        return url
    if url_obj.get_backend_name() != "sqlite":
        return url
    database = url_obj.database or ""
    if not database or database == ":memory:" or database.startswith("file:"):
        return url
    db_path = Path(database)
    if not db_path.is_absolute():
        db_path = (SETTINGS_PATH.parent / db_path).resolve()
        url_obj = url_obj.set(database=db_path.as_posix())
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return str(url_obj)


def _default_url() -> str:
    db_path = (SETTINGS_PATH.parent / "service_center.db").resolve()
    return f"sqlite:///{db_path.as_posix()}"


def _read_settings_dict() -> Dict[str, Any]:
    if not SETTINGS_PATH.exists():
        return {}
    try:
        if _toml_reader is not None:
            with open(SETTINGS_PATH, "rb") as handle:
                return _toml_reader.load(handle)  # type: ignore[arg-type]
        if _toml_rw is not None:
            return _toml_rw.load(SETTINGS_PATH)  # type: ignore[call-arg]
    except Exception:
        logging.getLogger(__name__).warning(
            "Could not parse settings file %s; using defaults", SETTINGS_PATH
        )
        return {}
    return {}


def _write_settings_data(data: Dict[str, Any]) -> None:
    """Persist ``data`` into SETTINGS_PATH.

    Without the optional ``toml`` writer a minimal subset is emitted: one
    table per top-level key holding string/number/bool values.
    """
    SETTINGS_PATH.parent.mkdir(parents=True, exist_ok=True)
    if _toml_rw is not None:
        with open(SETTINGS_PATH, "w", encoding="utf-8") as handle:
            _toml_rw.dump(data, handle)  # type: ignore[attr-defined]
        return
    with open(SETTINGS_PATH, "w", encoding="utf-8") as handle:
        for section, values in data.items():
            if not isinstance(values, dict):
                continue
            handle.write(f"[{section}]\n")
            for key, value in values.items():
                if isinstance(value, bool):
                    handle.write(f"{key} = {str(value).lower()}\n")
                elif isinstance(value, (int, float)):
                    handle.write(f"{key} = {value}\n")
                elif value is not None:
                    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
                    handle.write(f'{key} = "{escaped}"\n')
            handle.write("\n")


def load_settings() -> str:
    """Return database URL from env or settings.toml."""
    url = os.getenv("DATABASE_URL")
    if not url:
        url = (_read_settings_dict().get("database") or {}).get("url")
    return _ensure_sqlite_directory(url or _default_url())


def load_log_level() -> int:
    raw = os.getenv("SC_LOG_LEVEL")
    if not raw:
        raw = (_read_settings_dict().get("logging") or {}).get("level")
    level = logging.getLevelName(str(raw or "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: Optional[int] = None) -> None:
    """Install a root handler at the configured level (idempotent)."""
    logging.basicConfig(level=level if level is not None else load_log_level(), format=LOG_FORMAT)


DATABASE_URL = load_settings()
_ENGINE: Engine = create_engine(DATABASE_URL, echo=False)


def dispose_engine() -> None:
    """Dispose the global engine, releasing any pooled connections."""
    try:
        _ENGINE.dispose()
    except Exception:
        pass


atexit.register(dispose_engine)


def get_engine(url: Optional[str] = None) -> Engine:
    """Return engine, recreating if the URL changed."""
    global _ENGINE, DATABASE_URL
    new_url = _ensure_sqlite_directory(url) if url is not None else load_settings()
    if new_url != DATABASE_URL:
        DATABASE_URL = new_url
        _ENGINE.dispose()
        _ENGINE = create_engine(DATABASE_URL, echo=False)
    return _ENGINE


def save_database_url(url: str) -> None:
    data = _read_settings_dict()
    database = dict(data.get("database", {}))
    database["url"] = _ensure_sqlite_directory(url)
    data["database"] = database
    _write_settings_data(data)
    get_engine(load_settings())
