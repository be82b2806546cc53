"""Pre-DB bootstrap configuration. Zero imports from the rest of the app.

Stores user preferences that must be known before opening the DB (db_folder,
log_level). Config lives in ~/.pockets/config.json so it can be read before
the database exists.
"""
import json
import os
from pathlib import Path

CONFIG_DIR = Path.home() / ".pockets"
CONFIG_FILE = CONFIG_DIR / "config.json"

DEFAULT_LOG_LEVEL = "INFO"


def load_config(path: Path | None = None) -> dict:
    """Returns {} on a missing or corrupt file; never raises."""
    try:
        with open(path or CONFIG_FILE, "r", encoding="utf-8") as f:
            config = json.load(f)
    except Exception:
        return {}
    return config if isinstance(config, dict) else {}


def save_config(config: dict, path: Path | None = None) -> None:
    """Creates the config dir if needed; atomic write via .tmp + os.replace()."""
    target = Path(path or CONFIG_FILE)
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_suffix(".tmp")
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        os.replace(tmp, target)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


def get_db_folder(path: Path | None = None) -> str | None:
    """Return config["db_folder"] or None if not set."""
    return load_config(path).get("db_folder")


def set_db_folder(folder: str | None, path: Path | None = None) -> None:
    """Update db_folder in config and save."""
    config = load_config(path)
    if folder is None:
        config.pop("db_folder", None)
    else:
        config["db_folder"] = folder
    save_config(config, path)


def get_log_level(path: Path | None = None) -> str:
    level = load_config(path).get("log_level", DEFAULT_LOG_LEVEL)
    return str(level).upper()
