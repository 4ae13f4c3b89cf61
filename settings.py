"""
Display preferences stored as JSON next to the application.
Only look-and-feel lives here; calculator registers are never saved.
"""

import json
import logging
import sys
from dataclasses import asdict, dataclass, fields
from pathlib import Path

logger = logging.getLogger(__name__)


def get_app_path():
    """Resolve the correct path for both script and frozen (PyInstaller) execution."""
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent


def default_config_path():
    return get_app_path() / "config.json"


@dataclass
class Settings:
    show_prefixes: bool = True
    display_font: str = ""
    log_level: str = "INFO"


def load_settings(path=None):
    """Load settings from JSON file, falling back to defaults"""
    path = Path(path) if path is not None else default_config_path()
    settings = Settings()
    if not path.exists():
        return settings

    try:
        with open(path, 'r') as f:
            saved = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Error loading config %s: %s", path, e)
        return settings

    if not isinstance(saved, dict):
        logger.warning("Ignoring config %s: expected a JSON object", path)
        return settings

    known = {f.name for f in fields(Settings)}
    for key, value in saved.items():
        if key in known:
            setattr(settings, key, value)
    return settings


def save_settings(settings, path=None):
    """Save settings to JSON file"""
    path = Path(path) if path is not None else default_config_path()
    try:
        with open(path, 'w') as f:
            json.dump(asdict(settings), f, indent=4)
    except OSError as e:
        logger.warning("Error saving config %s: %s", path, e)
        return False
    return True
