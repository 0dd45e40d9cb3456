"""YAML configuration loader and validator."""

import ipaddress
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "lanwake"
DEFAULT_CONFIG = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_DEVICES_FILE = DEFAULT_CONFIG_DIR / "devices.json"


class ConfigError(Exception):
    """Raised for invalid or missing configuration."""


@dataclass
class Settings:
    """Resolved server settings."""

    host: str = "0.0.0.0"
    port: int = 8080
    secret: str = ""
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    devices_file: Path = DEFAULT_DEVICES_FILE
    broadcast_address: str = "255.255.255.255"
    wol_port: int = 9
    scan_timeout: int = 30
    # None → tokens never expire
    token_max_age: Optional[int] = None


def load_config(path: Path) -> Optional[dict[str, Any]]:
    """
    Load configuration from a YAML file.

    Args:
        path: Path to the YAML config file

    Returns:
        Parsed configuration dictionary, or None if file is empty

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
    """
    with open(path) as f:
        result: Optional[dict[str, Any]] = yaml.safe_load(f)
        return result


def _valid_port(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 65535


def _positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_config(config: dict[str, Any]) -> list[str]:
    """
    Validate a loaded configuration dictionary.

    Returns:
        List of validation error messages (empty list = valid)
    """
    if not isinstance(config, dict):
        return ["Config root must be a YAML mapping"]

    settings = config.get("settings", {})
    if settings is None:
        return []
    if not isinstance(settings, dict):
        return ["'settings' must be a mapping"]

    errors: list[str] = []
    for key in ("port", "wol_port"):
        if key in settings and not _valid_port(settings[key]):
            errors.append(f"settings.{key}: must be an integer between 1 and 65535")

    broadcast = settings.get("broadcast_address")
    if broadcast is not None:
        try:
            ipaddress.IPv4Address(str(broadcast))
        except ValueError:
            errors.append(f"settings.broadcast_address: invalid IPv4 address '{broadcast}'")

    origins = settings.get("allowed_origins")
    if origins is not None and not (
        isinstance(origins, list) and all(isinstance(o, str) for o in origins)
    ):
        errors.append("settings.allowed_origins: must be a list of strings")

    timeout = settings.get("scan_timeout")
    if timeout is not None and not _positive_int(timeout):
        errors.append("settings.scan_timeout: must be a positive integer")

    max_age = settings.get("token_max_age")
    if max_age is not None and not _positive_int(max_age):
        errors.append("settings.token_max_age: must be a positive integer")

    return errors


def settings_from_config(
    config: Optional[dict[str, Any]],
    base_dir: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Construct Settings from a validated config dict plus environment overrides.

    Recognised variables: LANWAKE_PORT, LANWAKE_SECRET, LANWAKE_ALLOWED_ORIGINS
    (comma-separated) and LANWAKE_DEVICES_FILE.

    Args:
        config: Parsed and validated config dictionary (or None)
        base_dir: Directory that a relative devices_file is resolved against
        environ: Environment mapping (defaults to os.environ)

    Raises:
        ConfigError: If an environment override is malformed
    """
    env = os.environ if environ is None else environ
    raw: dict[str, Any] = dict((config or {}).get("settings") or {})

    if env.get("LANWAKE_PORT"):
        try:
            raw["port"] = int(env["LANWAKE_PORT"])
        except ValueError:
            raise ConfigError(
                f"LANWAKE_PORT must be an integer, got '{env['LANWAKE_PORT']}'"
            ) from None
    if env.get("LANWAKE_SECRET"):
        raw["secret"] = env["LANWAKE_SECRET"]
    if env.get("LANWAKE_ALLOWED_ORIGINS"):
        raw["allowed_origins"] = [
            o.strip() for o in env["LANWAKE_ALLOWED_ORIGINS"].split(",") if o.strip()
        ]
    if env.get("LANWAKE_DEVICES_FILE"):
        raw["devices_file"] = env["LANWAKE_DEVICES_FILE"]

    defaults = Settings()
    devices_file = Path(raw.get("devices_file", defaults.devices_file)).expanduser()
    if not devices_file.is_absolute() and base_dir is not None:
        devices_file = base_dir / devices_file

    return Settings(
        host=str(raw.get("host", defaults.host)),
        port=int(raw.get("port", defaults.port)),
        secret=str(raw.get("secret") or ""),
        allowed_origins=list(raw.get("allowed_origins") or defaults.allowed_origins),
        devices_file=devices_file,
        broadcast_address=str(raw.get("broadcast_address", defaults.broadcast_address)),
        wol_port=int(raw.get("wol_port", defaults.wol_port)),
        scan_timeout=int(raw.get("scan_timeout", defaults.scan_timeout)),
        token_max_age=raw.get("token_max_age"),
    )
