"""Wake-on-LAN functionality."""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from wakeonlan import create_magic_packet, send_magic_packet

from lanwake.core.errors import NotFoundError, TransmissionError, ValidationError
from lanwake.core.mac import validate_mac

if TYPE_CHECKING:
    from lanwake.core.registry import DeviceRegistry

logger = logging.getLogger(__name__)

DEFAULT_BROADCAST = "255.255.255.255"
DEFAULT_PORT = 9


@dataclass
class WakeTarget:
    """Where a magic packet was sent."""

    mac_address: str
    broadcast_address: str = DEFAULT_BROADCAST
    port: int = DEFAULT_PORT
    device_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "macAddress": self.mac_address,
            "broadcastAddress": self.broadcast_address,
            "port": self.port,
        }


def build_magic_packet(mac_address: str) -> bytes:
    """
    Build the 102-byte magic packet for a MAC address.

    The payload is six 0xFF bytes followed by the 6-byte hardware address
    repeated 16 times.

    Raises:
        ValidationError: If the MAC address is missing or malformed
    """
    return create_magic_packet(validate_mac(mac_address))


def validate_port(port: int) -> int:
    try:
        value = int(port)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid port '{port}'") from None
    if not 1 <= value <= 65535:
        raise ValidationError(f"Invalid port '{port}'")
    return value


def wake(
    mac_address: str,
    broadcast_address: str = DEFAULT_BROADCAST,
    port: int = DEFAULT_PORT,
) -> None:
    """
    Send a Wake-on-LAN magic packet to wake a remote machine.

    Args:
        mac_address: MAC address of the target machine (e.g., "AA:BB:CC:DD:EE:FF")
        broadcast_address: Broadcast IP address (default: 255.255.255.255)
        port: UDP port for WOL packet (default: 9)

    Raises:
        ValidationError: If the MAC address or port is invalid
        TransmissionError: If the datagram could not be sent
    """
    mac_address = validate_mac(mac_address)
    port = validate_port(port)

    logger.info("Sending WOL magic packet to %s via %s:%d", mac_address, broadcast_address, port)
    try:
        send_magic_packet(mac_address, ip_address=broadcast_address, port=port)
    except OSError as exc:
        logger.error("WOL send to %s:%d failed: %s", broadcast_address, port, exc)
        raise TransmissionError("Failed to send WOL packet") from exc
    logger.debug("WOL packet sent successfully")


def wake_device(
    registry: "DeviceRegistry",
    device_id: str,
    broadcast_address: Optional[str] = None,
    port: Optional[int] = None,
    *,
    default_broadcast: str = DEFAULT_BROADCAST,
    default_port: int = DEFAULT_PORT,
) -> WakeTarget:
    """
    Wake a registered device by id.

    Explicit ``broadcast_address``/``port`` win, then the device's own
    overrides, then the defaults.

    Returns:
        The resolved target the packet was sent to

    Raises:
        NotFoundError: If no device has the id
        ValidationError: If the resolved port is invalid
        TransmissionError: If the datagram could not be sent
    """
    device = registry.find_by_id(device_id)
    if device is None:
        raise NotFoundError(f"Device '{device_id}' not found")
    target = WakeTarget(
        mac_address=device.mac_address,
        broadcast_address=broadcast_address or device.broadcast_address or default_broadcast,
        port=port if port is not None else (device.port or default_port),
        device_id=device.id,
    )
    wake(target.mac_address, broadcast_address=target.broadcast_address, port=target.port)
    return target
