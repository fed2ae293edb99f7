"""Link this host to an existing Signal account as a secondary device.

signal-cli prints a provisioning URI and then blocks until the phone scans
it; we render the URI as a terminal QR code so no copy-paste is needed.
"""

from __future__ import annotations

import logging
import subprocess
from typing import List, Optional

import qrcode

from core.errors import StartupError

LINK_URI_PREFIXES = ("sgnl://", "tsdevice:")
ASSOCIATED_PREFIX = "Associated with:"


def _print_qr(url: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(url)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def extract_link_uri(line: str) -> Optional[str]:
    stripped = line.strip()
    if stripped.startswith(LINK_URI_PREFIXES):
        return stripped
    return None


def extract_linked_number(line: str) -> Optional[str]:
    stripped = line.strip()
    if not stripped.startswith(ASSOCIATED_PREFIX):
        return None
    number = stripped[len(ASSOCIATED_PREFIX):].strip()
    return number or None


def link_command(binary: str, device_name: str, config_dir: Optional[str] = None) -> List[str]:
    args = [binary]
    if config_dir:
        args.extend(["--config", config_dir])
    args.extend(["link", "-n", device_name])
    return args


def link(binary: str, device_name: str, config_dir: Optional[str] = None) -> Optional[str]:
    """Run the link flow; returns the linked account number when reported."""

    try:
        process = subprocess.Popen(
            link_command(binary, device_name, config_dir),
            stdout=subprocess.PIPE,
            text=True,
        )
    except OSError as exc:
        raise StartupError(f"Failed to start signal-cli link: {exc}") from exc
    assert process.stdout is not None
    number = None
    for line in process.stdout:
        uri = extract_link_uri(line)
        if uri:
            print("Scan this code in Signal > Settings > Linked devices:\n")
            _print_qr(uri)
            print(f"\n{uri}\n")
            continue
        number = extract_linked_number(line) or number
    if process.wait() != 0:
        raise StartupError(f"signal-cli link failed with exit code {process.returncode}")

    logging.getLogger(__name__).info("Linked device %s to %s", device_name, number or "unknown account")
    return number
