"""Editor configuration: built-in defaults merged with ``minisheet.yaml``."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "minisheet.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "rows": 30,
    "cols": 12,
    "recalc_delay_ms": 16,
    "log_dir": None,  # event logging disabled
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
}


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from a YAML file, with defaults.

    Args:
        path: A config file, or a directory containing ``minisheet.yaml``.
            ``None`` returns the defaults.

    Returns:
        Merged configuration dict.

    Raises:
        ValueError: If a size or delay is out of range.
    """
    config = dict(DEFAULT_CONFIG)
    if path is not None:
        path = Path(path)
        if path.is_dir():
            path = path / CONFIG_FILENAME
        if path.exists():
            user_config = yaml.safe_load(path.read_text()) or {}
            if not isinstance(user_config, dict):
                raise ValueError(f"{path} must contain a mapping")
            config.update({k: v for k, v in user_config.items() if k in DEFAULT_CONFIG})
            if config["log_dir"] is not None:
                log_dir = Path(config["log_dir"]).expanduser()
                if not log_dir.is_absolute():
                    log_dir = path.parent / log_dir
                config["log_dir"] = str(log_dir)
    return validate_config(config)


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Check value ranges and normalise types.  Returns *config*."""
    config["rows"] = int(config["rows"])
    config["cols"] = int(config["cols"])
    if config["rows"] < 1 or config["cols"] < 1:
        raise ValueError(f"rows and cols must be >= 1, got {config['rows']}x{config['cols']}")
    config["recalc_delay_ms"] = float(config["recalc_delay_ms"])
    if config["recalc_delay_ms"] < 0:
        raise ValueError(f"recalc_delay_ms must be >= 0, got {config['recalc_delay_ms']}")
    return config
