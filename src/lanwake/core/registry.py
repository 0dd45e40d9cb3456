"""Device registry: the persisted, MAC-deduplicated set of known devices."""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from lanwake.core.errors import NotFoundError, ValidationError
from lanwake.core.mac import mac_key, validate_mac
from lanwake.core.store import JsonFileStore
from lanwake.core.wol import validate_port

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = ("id", "created_at")
PATCHABLE_FIELDS = (
    "mac_address",
    "name",
    "ip_address",
    "tags",
    "is_online",
    "broadcast_address",
    "port",
)


def _dedupe(tags: Iterable[str]) -> list[str]:
    out: list[str] = []
    for tag in tags:
        if tag not in out:
            out.append(tag)
    return out


def default_name(mac_address: str) -> str:
    return f"Device ({mac_address})"


@dataclass
class Device:
    """A known device, keyed by id for patch/delete and by MAC for upsert."""

    id: str
    mac_address: str
    name: str
    ip_address: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    is_online: bool = False
    broadcast_address: Optional[str] = None
    port: Optional[int] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "macAddress": self.mac_address,
            "name": self.name,
            "ipAddress": self.ip_address,
            "tags": list(self.tags),
            "isOnline": self.is_online,
            "broadcastAddress": self.broadcast_address,
            "port": self.port,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Device":
        mac = d["macAddress"]
        port = d.get("port")
        return cls(
            id=str(d["id"]),
            mac_address=mac,
            name=d.get("name") or default_name(mac),
            ip_address=d.get("ipAddress"),
            tags=_dedupe(d.get("tags") or []),
            is_online=bool(d.get("isOnline", False)),
            broadcast_address=d.get("broadcastAddress"),
            port=int(port) if port is not None else None,
            created_at=datetime.fromisoformat(d["createdAt"]),
        )


class DeviceRegistry:
    """
    Owns the canonical device collection.

    Every operation reads the whole store and every mutation rewrites it.
    A single lock serialises these cycles so concurrent callers cannot lose
    each other's updates.
    """

    def __init__(self, store: JsonFileStore) -> None:
        self._store = store
        self._lock = threading.Lock()

    def _load(self) -> list[Device]:
        return [Device.from_dict(r) for r in self._store.load()]

    def _save(self, devices: list[Device]) -> None:
        self._store.save([d.to_dict() for d in devices])

    def list_devices(self) -> list[Device]:
        with self._lock:
            return self._load()

    def find_by_mac(self, mac_address: Optional[str]) -> Optional[Device]:
        if not mac_address:
            return None
        key = mac_key(mac_address)
        with self._lock:
            return next((d for d in self._load() if mac_key(d.mac_address) == key), None)

    def find_by_id(self, device_id: str) -> Optional[Device]:
        with self._lock:
            return next((d for d in self._load() if d.id == device_id), None)

    def upsert_by_mac(
        self,
        mac_address: Optional[str],
        name: Optional[str] = None,
        ip_address: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> Device:
        """
        Insert a device, or merge into the one already holding this MAC.

        On merge, a non-empty ``name``/``ip_address`` replaces the stored value
        and ``tags`` are unioned; every other field is left alone.

        Raises:
            ValidationError: If the MAC address is missing or malformed
        """
        mac = validate_mac(mac_address)
        key = mac_key(mac)
        new_tags = _dedupe(tags or [])

        with self._lock:
            devices = self._load()
            device = next((d for d in devices if mac_key(d.mac_address) == key), None)
            if device is not None:
                if name:
                    device.name = name
                if ip_address:
                    device.ip_address = ip_address
                device.tags = _dedupe([*device.tags, *new_tags])
                logger.info("Merged device %s (%s)", device.id, device.mac_address)
            else:
                device = Device(
                    id=uuid.uuid4().hex,
                    mac_address=mac,
                    name=name or default_name(mac),
                    ip_address=ip_address or None,
                    tags=new_tags,
                )
                devices.append(device)
                logger.info("Added device %s (%s)", device.id, device.mac_address)
            self._save(devices)
            return device

    def patch_by_id(self, device_id: str, fields: dict[str, Any]) -> Device:
        """
        Overwrite the given fields of a device.

        Field names are the snake_case attribute names of :class:`Device`.
        ``id`` and ``created_at`` cannot be changed.

        Raises:
            NotFoundError: If no device has the id
            ValidationError: For immutable/unknown fields or invalid values
        """
        for name in fields:
            if name in IMMUTABLE_FIELDS:
                raise ValidationError(f"Field '{name}' cannot be modified")
            if name not in PATCHABLE_FIELDS:
                raise ValidationError(f"Unknown field '{name}'")

        with self._lock:
            devices = self._load()
            device = next((d for d in devices if d.id == device_id), None)
            if device is None:
                raise NotFoundError(f"Device '{device_id}' not found")

            updates = dict(fields)
            if "mac_address" in updates:
                mac = validate_mac(updates["mac_address"])
                clash = any(
                    d.id != device.id and mac_key(d.mac_address) == mac_key(mac) for d in devices
                )
                if clash:
                    raise ValidationError(f"MAC address {mac} belongs to another device")
                updates["mac_address"] = mac
            if "tags" in updates:
                updates["tags"] = _dedupe(updates["tags"] or [])
            if "is_online" in updates and not isinstance(updates["is_online"], bool):
                raise ValidationError("Field 'is_online' must be true or false")
            if updates.get("port") is not None:
                updates["port"] = validate_port(updates["port"])
            if "name" in updates and not updates["name"]:
                updates["name"] = default_name(updates.get("mac_address", device.mac_address))

            for name, value in updates.items():
                setattr(device, name, value)
            self._save(devices)
            logger.info("Updated device %s: %s", device.id, ", ".join(sorted(updates)))
            return device

    def delete_by_id(self, device_id: str) -> None:
        """
        Remove a device.

        Raises:
            NotFoundError: If no device has the id
        """
        with self._lock:
            devices = self._load()
            remaining = [d for d in devices if d.id != device_id]
            if len(remaining) == len(devices):
                raise NotFoundError(f"Device '{device_id}' not found")
            self._save(remaining)
        logger.info("Deleted device %s", device_id)
