"""Local network discovery via arp-scan, falling back to the ARP table."""

import logging
import shlex
import subprocess
import sys
from typing import Optional

from lanwake.core.discovery import Candidate, parse_arp_scan, parse_arp_table
from lanwake.core.errors import ScanFailedError, UnsupportedPlatformError

logger = logging.getLogger(__name__)

SUPPORTED_PLATFORMS = ("linux", "darwin")
ARP_SCAN_CMD = ["arp-scan", "--localnet"]
ARP_TABLE_CMD = ["arp", "-a"]
DEFAULT_TIMEOUT = 30


def _run(cmd: list[str], timeout: int) -> str:
    """
    Run a discovery command and return its stdout.

    Raises:
        FileNotFoundError: If the binary is not installed
        subprocess.CalledProcessError: On a non-zero exit status
        subprocess.TimeoutExpired: If the command outlives the timeout
    """
    logger.debug("Running: %s", shlex.join(cmd))
    result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    if result.returncode != 0:
        raise subprocess.CalledProcessError(
            result.returncode, cmd, output=result.stdout, stderr=result.stderr
        )
    return result.stdout


def scan(timeout: int = DEFAULT_TIMEOUT, platform: Optional[str] = None) -> list[Candidate]:
    """
    Discover devices on the local network segment.

    Tries ``arp-scan --localnet`` first and falls back to ``arp -a`` when it is
    missing, not permitted, fails or times out. The registry is never touched;
    callers decide which candidates to adopt.

    Args:
        timeout: Per-command timeout in seconds
        platform: Platform name override (defaults to sys.platform)

    Returns:
        Candidates in the order the command reported them

    Raises:
        UnsupportedPlatformError: If the host is not Linux or macOS
        ScanFailedError: If both commands fail
    """
    platform = platform or sys.platform
    if not platform.startswith(SUPPORTED_PLATFORMS):
        raise UnsupportedPlatformError(f"Network scanning is not supported on '{platform}'")

    try:
        output = _run(ARP_SCAN_CMD, timeout)
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("arp-scan unavailable (%s); falling back to arp -a", exc)
    else:
        candidates = parse_arp_scan(output)
        logger.info("arp-scan found %d device(s)", len(candidates))
        return candidates

    try:
        output = _run(ARP_TABLE_CMD, timeout)
    except (OSError, subprocess.SubprocessError) as exc:
        logger.error("arp -a failed: %s", exc)
        raise ScanFailedError(f"Network scan failed: {exc}", cause=exc) from exc

    candidates = parse_arp_table(output)
    logger.info("ARP table lists %d device(s)", len(candidates))
    return candidates
