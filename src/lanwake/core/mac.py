"""MAC address validation and normalisation."""

import re
from typing import Optional

from lanwake.core.errors import ValidationError

MAC_RE = re.compile(r"^([0-9A-Fa-f]{2}[:\-]){5}[0-9A-Fa-f]{2}$")


def validate_mac(mac: Optional[str]) -> str:
    """
    Validate a MAC address and return it in colon-separated form.

    Case is preserved; only hyphen separators are rewritten.

    Raises:
        ValidationError: If the address is missing or malformed
    """
    if not mac:
        raise ValidationError("MAC address is required")
    mac = str(mac).strip()
    if not MAC_RE.match(mac):
        raise ValidationError("Invalid MAC address format")
    return mac.replace("-", ":")


def mac_key(mac: str) -> str:
    """Return the lower-cased colon form used to compare addresses."""
    return mac.strip().replace("-", ":").lower()
