"""Parsers for ARP scan and ARP table output."""

import re
from dataclasses import dataclass
from typing import Any, Optional

_IPV4_RE = re.compile(r"(?<![\d.])((?:\d{1,3}\.){3}\d{1,3})(?![\d.])")
_SCAN_MAC_RE = re.compile(
    r"(?<![0-9A-Fa-f:])([0-9A-Fa-f]{2}(?::[0-9A-Fa-f]{2}){5})(?![0-9A-Fa-f:])"
)
# arp -a prints hyphens on Windows-style tables and drops leading zeros on BSD/macOS.
_TABLE_MAC_RE = re.compile(
    r"(?<![0-9A-Fa-f:\-])([0-9A-Fa-f]{1,2}(?:[:\-][0-9A-Fa-f]{1,2}){5})(?![0-9A-Fa-f:\-])"
)


@dataclass
class Candidate:
    """A device seen on the network but not yet adopted into the registry."""

    ip_address: str
    mac_address: str
    name: str = ""
    is_online: bool = True

    def __post_init__(self) -> None:
        if not self.name:
            self.name = f"Device ({self.ip_address})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "ipAddress": self.ip_address,
            "macAddress": self.mac_address,
            "name": self.name,
            "isOnline": self.is_online,
        }


def _normalize_table_mac(token: str) -> str:
    octets = re.split(r"[:\-]", token)
    return ":".join(o.zfill(2) for o in octets).lower()


def _extract(line: str, mac_re: re.Pattern[str]) -> Optional[tuple[str, str]]:
    ip_match = _IPV4_RE.search(line)
    if not ip_match:
        return None
    mac_match = mac_re.search(line, ip_match.end())
    if not mac_match:
        return None
    return ip_match.group(1), mac_match.group(1)


def parse_arp_scan(text: str) -> list[Candidate]:
    """
    Parse ``arp-scan`` output into candidates.

    Each line contributes at most one candidate: the first IPv4 address and the
    first colon-separated MAC after it. Header, footer and blank lines are
    skipped.
    """
    candidates: list[Candidate] = []
    for line in text.splitlines():
        found = _extract(line, _SCAN_MAC_RE)
        if found:
            ip, mac = found
            candidates.append(Candidate(ip_address=ip, mac_address=mac.lower()))
    return candidates


def parse_arp_table(text: str) -> list[Candidate]:
    """
    Parse ``arp -a`` output into candidates.

    MAC addresses are normalised to lower-case, colon-separated, zero-padded
    octets. Incomplete entries are skipped.
    """
    candidates: list[Candidate] = []
    for line in text.splitlines():
        found = _extract(line, _TABLE_MAC_RE)
        if found:
            ip, mac = found
            candidates.append(Candidate(ip_address=ip, mac_address=_normalize_table_mac(mac)))
    return candidates
