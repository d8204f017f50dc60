"""
Settings loading.

Defaults live in collabtex/config/settings.yaml. Environment variables (read via
python-dotenv) and explicit dotlist overrides are merged on top, in that order.

Examples:
    >>> settings = load_settings()
    >>> settings.rendering.compile_timeout_s
    60

    >>> settings = load_settings(overrides=["rendering.backend_load_retry=once"])
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf

load_dotenv()

DEFAULT_SETTINGS_PATH = Path(__file__).resolve().parent.parent / "config" / "settings.yaml"

# Environment variable -> settings key
ENV_OVERRIDES = {
    "COLLABTEX_BACKEND_MODULE": "rendering.backend_module",
    "COLLABTEX_COMPILE_TIMEOUT_S": "rendering.compile_timeout_s",
    "COLLABTEX_BACKEND_LOAD_RETRY": "rendering.backend_load_retry",
    "COLLABTEX_ENGINE_COMMAND": "rendering.engine_command",
    "COLLABTEX_ENTRY_FILE": "editing.entry_file",
    "COLLABTEX_HISTORY_LIMIT": "editing.history_limit",
}

VALID_LOAD_RETRY_POLICIES = ("never", "once")


def _env_dotlist() -> List[str]:
    """Collect settings overrides from environment variables as a dotlist."""
    return [f"{key}={os.environ[var]}" for var, key in ENV_OVERRIDES.items() if os.getenv(var)]


def load_settings(
    config_path: Optional[Path] = None,
    overrides: Optional[List[str]] = None,
) -> DictConfig:
    """
    Load settings from YAML and apply environment and explicit overrides.

    Args:
        config_path: Settings file (default: COLLABTEX_CONFIG_PATH env, else packaged defaults)
        overrides: Dotlist overrides applied last (e.g., ["rendering.compile_timeout_s=5"])

    Returns:
        Merged settings as an OmegaConf DictConfig

    Raises:
        ValueError: If rendering.backend_load_retry is not a known policy
    """
    if config_path is None:
        env_path = os.getenv("COLLABTEX_CONFIG_PATH")
        config_path = Path(env_path) if env_path else DEFAULT_SETTINGS_PATH

    settings = OmegaConf.load(config_path)
    # A custom settings file only needs the keys it changes
    if Path(config_path).resolve() != DEFAULT_SETTINGS_PATH:
        settings = OmegaConf.merge(OmegaConf.load(DEFAULT_SETTINGS_PATH), settings)

    settings = OmegaConf.merge(settings, OmegaConf.from_dotlist(_env_dotlist()))
    if overrides:
        settings = OmegaConf.merge(settings, OmegaConf.from_dotlist(list(overrides)))

    policy = settings.rendering.backend_load_retry
    if policy not in VALID_LOAD_RETRY_POLICIES:
        raise ValueError(
            f"rendering.backend_load_retry must be one of {VALID_LOAD_RETRY_POLICIES}, got: {policy}"
        )

    return settings
