"""lanwake: LAN device registry and Wake-on-LAN server."""

__version__ = "1.0.0"
