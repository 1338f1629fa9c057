import logging
import os
import yaml
from pathlib import Path
from typing import Optional
from .config_models import RollbackConfig, parse_rollback_config

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_ENV = "RCT_CONFIG"


def load_rollback_config(path: Optional[str] = None) -> RollbackConfig:
    """
    Load and validate a rollback config YAML file.

    Args:
        path: Config file; falls back to $RCT_CONFIG when omitted

    Raises:
        FileNotFoundError: no such file (or no path given at all)
        ValueError: YAML is not a mapping, or fails validation
    """
    path = path or os.getenv(DEFAULT_CONFIG_ENV)
    if not path:
        raise FileNotFoundError(f"No rollback config given and {DEFAULT_CONFIG_ENV} is not set")

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Rollback config not found: {path}")

    data = yaml.safe_load(p.read_text(encoding="utf8"))
    if not isinstance(data, dict):
        raise ValueError(f"Rollback config must be a YAML mapping/object: {path}")

    config = parse_rollback_config(data)
    logger.info(
        f"Loaded rollback config {p.name}: project={config.project}, "
        f"order={[env.value for env in config.full_rollback_order]}"
    )
    return config
