"""Demo keystore export.

Writes the wallet secrets to a plain JSON file.  The file is NOT encrypted and
is explicitly labelled as unsuitable for production custody; it exists so the
key can be imported into other demo tooling.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path

from sepolia_wallet.credentials import SECURE_MODE
from sepolia_wallet.lifecycle import WalletMaterial

DEMO_NOTE = "DEMO ONLY - DO NOT USE FOR PRODUCTION CUSTODY"
DEFAULT_KEYSTORE_FILENAME = "keystore.json"


def write_demo_keystore(path: Path, material: WalletMaterial) -> Path:
    """Write *material* to *path* as JSON with mode ``0600``.

    Returns the path that was written.
    """
    payload = {
        "note": DEMO_NOTE,
        "address": material.address,
        "privateKey": material.private_key,
        "generatedAt": datetime.now(timezone.utc).isoformat(),
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, SECURE_MODE)
    with os.fdopen(fd, "w", encoding="utf-8") as fh:
        os.fchmod(fh.fileno(), SECURE_MODE)
        fh.write(json.dumps(payload, indent=2) + "\n")
    return path


def load_demo_keystore(path: Path) -> dict:
    """Read a demo keystore back.

    Raises
    ------
    FileNotFoundError
        If no keystore exists at *path*.
    ValueError
        If the file is not JSON or not a demo keystore written by this package.
    """
    if not path.exists():
        raise FileNotFoundError(f"No keystore found at {path}")

    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict) or data.get("note") != DEMO_NOTE:
        raise ValueError(f"{path} is not a sepolia-wallet demo keystore.")
    return data
