"""Atomic YAML config write-back for lanwake."""

import os
from pathlib import Path
from typing import Any

import yaml

from lanwake.config.loader import Settings


def build_config_dict(settings: Settings) -> dict[str, Any]:
    """Serialize Settings back to the raw YAML dict format the loader expects."""
    raw: dict[str, Any] = {
        "host": settings.host,
        "port": settings.port,
        "secret": settings.secret,
        "allowed_origins": list(settings.allowed_origins),
        "devices_file": str(settings.devices_file),
        "broadcast_address": settings.broadcast_address,
        "wol_port": settings.wol_port,
        "scan_timeout": settings.scan_timeout,
    }
    if settings.token_max_age:
        raw["token_max_age"] = settings.token_max_age
    return {"settings": raw}


def write_config(path: Path, config: dict[str, Any]) -> None:
    """
    Atomically write a config dict to a YAML file.

    Uses a temp-file + os.replace so a crash mid-write never leaves a
    half-written file.

    Args:
        path: Destination config.yaml path.
        config: Full config dict.
    """
    tmp = path.with_suffix(".yaml.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w", encoding="utf-8") as f:
            yaml.dump(
                config,
                f,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False,
            )
        os.replace(tmp, path)
    except Exception:
        # Clean up temp file on failure
        if tmp.exists():
            tmp.unlink(missing_ok=True)
        raise
