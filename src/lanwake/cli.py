"""Command-line interface for lanwake."""

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn, Optional

import click

from lanwake import __version__
from lanwake.config.loader import DEFAULT_CONFIG, ConfigError, Settings
from lanwake.core.errors import LanwakeError

if TYPE_CHECKING:
    from lanwake.core.registry import DeviceRegistry


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_settings(config: str) -> Settings:
    from lanwake.config.loader import load_config, settings_from_config, validate_config

    path = Path(config)
    if not path.exists():
        # Environment variables alone are enough to run.
        return settings_from_config(None)
    raw = load_config(path) or {}
    errors = validate_config(raw)
    if errors:
        click.echo("Config validation errors:", err=True)
        for e in errors:
            click.echo(f"  • {e}", err=True)
        sys.exit(1)
    try:
        return settings_from_config(raw, base_dir=path.parent)
    except ConfigError as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)


def _registry(ctx: click.Context) -> tuple["DeviceRegistry", Settings]:
    from lanwake.core.registry import DeviceRegistry
    from lanwake.core.store import JsonFileStore

    settings = _load_settings(ctx.obj["config"])
    return DeviceRegistry(JsonFileStore(settings.devices_file)), settings


def _fail(exc: Exception) -> NoReturn:
    click.echo(f"✗  {exc}", err=True)
    sys.exit(1)


# ── Root group ────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=__version__, prog_name="lanwake")
@click.option(
    "--config",
    "-c",
    default=str(DEFAULT_CONFIG),
    envvar="LANWAKE_CONFIG",
    show_default=True,
    help="Path to lanwake config.yaml",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config: str, verbose: bool) -> None:
    """lanwake: LAN device registry and Wake-on-LAN server."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# ── init command ──────────────────────────────────────────────────────────────


@main.command()
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Write a default config.yaml with a freshly generated token secret."""
    from lanwake.auth.token import generate_secret
    from lanwake.config.writer import build_config_dict, write_config

    path = Path(ctx.obj["config"])
    if path.exists() and not force:
        click.echo(f"Config already exists: {path} (use --force to overwrite)", err=True)
        sys.exit(1)
    settings = Settings(secret=generate_secret(), devices_file=path.parent / "devices.json")
    write_config(path, build_config_dict(settings))
    click.echo(f"Wrote {path}")


# ── token command ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--principal", "-p", default="admin", show_default=True, help="Token subject")
@click.pass_context
def token(ctx: click.Context, principal: str) -> None:
    """Print a bearer token for the API."""
    from lanwake.auth.token import make_token

    settings = _load_settings(ctx.obj["config"])
    if not settings.secret:
        click.echo("No secret configured; run 'lanwake init' or set LANWAKE_SECRET.", err=True)
        sys.exit(1)
    click.echo(make_token(settings.secret, principal))


# ── devices group ─────────────────────────────────────────────────────────────


@main.group()
def devices() -> None:
    """Manage registered devices."""


@devices.command("list")
@click.pass_context
def devices_list(ctx: click.Context) -> None:
    """List all registered devices."""
    registry, _ = _registry(ctx)
    found = registry.list_devices()
    if not found:
        click.echo("No devices registered.")
        return
    click.echo(f"{'ID':<34} {'MAC':<19} {'IP':<16} {'NAME'}")
    click.echo("─" * 85)
    for d in found:
        click.echo(f"{d.id:<34} {d.mac_address:<19} {d.ip_address or '-':<16} {d.name}")


@devices.command("add")
@click.argument("mac_address")
@click.option("--name", "-n", help="Display name")
@click.option("--ip", "ip_address", help="Last known IPv4 address")
@click.option("--tag", "-t", "tags", multiple=True, help="Tag (repeatable)")
@click.pass_context
def devices_add(
    ctx: click.Context,
    mac_address: str,
    name: Optional[str],
    ip_address: Optional[str],
    tags: tuple[str, ...],
) -> None:
    """Add a device, or merge into the one with the same MAC."""
    registry, _ = _registry(ctx)
    try:
        device = registry.upsert_by_mac(mac_address, name=name, ip_address=ip_address, tags=tags)
    except LanwakeError as exc:
        _fail(exc)
    click.echo(f"✓  {device.name} [{device.id}]")


@devices.command("remove")
@click.argument("device_id")
@click.pass_context
def devices_remove(ctx: click.Context, device_id: str) -> None:
    """Remove a device by id."""
    registry, _ = _registry(ctx)
    try:
        registry.delete_by_id(device_id)
    except LanwakeError as exc:
        _fail(exc)
    click.echo(f"Removed {device_id}")


# ── wake command ──────────────────────────────────────────────────────────────


@main.command()
@click.argument("target")
@click.option("--broadcast", "-b", help="Broadcast address (default from config)")
@click.option("--port", "-p", type=int, help="UDP port (default from config)")
@click.pass_context
def wake(ctx: click.Context, target: str, broadcast: Optional[str], port: Optional[int]) -> None:
    """Send a Wake-on-LAN packet to a MAC address or registered device id."""
    from lanwake.core.mac import MAC_RE
    from lanwake.core.wol import wake as do_wake
    from lanwake.core.wol import wake_device

    registry, settings = _registry(ctx)
    try:
        if MAC_RE.match(target):
            broadcast = broadcast or settings.broadcast_address
            port = port if port is not None else settings.wol_port
            do_wake(target, broadcast_address=broadcast, port=port)
            click.echo(f"WOL packet sent to {target} via {broadcast}:{port}")
            return
        sent = wake_device(
            registry,
            target,
            broadcast_address=broadcast,
            port=port,
            default_broadcast=settings.broadcast_address,
            default_port=settings.wol_port,
        )
    except LanwakeError as exc:
        _fail(exc)
    click.echo(f"WOL packet sent to {sent.mac_address} via {sent.broadcast_address}:{sent.port}")


# ── scan command ──────────────────────────────────────────────────────────────


@main.command()
@click.option("--adopt", is_flag=True, help="Add every discovered device to the registry")
@click.pass_context
def scan(ctx: click.Context, adopt: bool) -> None:
    """Discover devices on the local network."""
    from lanwake.core.scan import scan as do_scan

    registry, settings = _registry(ctx)
    try:
        candidates = do_scan(timeout=settings.scan_timeout)
    except LanwakeError as exc:
        _fail(exc)
    if not candidates:
        click.echo("No devices found.")
        return
    click.echo(f"{'IP':<16} {'MAC':<19} {'NAME'}")
    click.echo("─" * 60)
    for c in candidates:
        click.echo(f"{c.ip_address:<16} {c.mac_address:<19} {c.name}")
    if adopt:
        for c in candidates:
            registry.upsert_by_mac(c.mac_address, ip_address=c.ip_address)
        click.echo(f"Adopted {len(candidates)} device(s).")


# ── serve command ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--host", default=None, help="Bind host (default from config)")
@click.option("--port", default=None, type=int, help="Bind port (default from config)")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int]) -> None:
    """Start the lanwake API server."""
    import uvicorn

    from lanwake.api.routes import create_app

    config_path = ctx.obj["config"]
    settings = _load_settings(config_path)
    app = create_app(config_path=config_path)
    host = host or settings.host
    port = port or settings.port
    click.echo(f"Starting lanwake API at http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
