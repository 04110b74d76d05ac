"""Persistence for the ``.env.local`` credential file.

The file holds ``KEY=value`` lines plus ``#`` comments and is always left with
mode ``0600``.  Writes go through a temporary file in the same directory that
is created owner-only and then atomically renamed over the target, so a reader
never observes a half-written file and the secrets are never world-readable,
not even briefly.

Values that are not plain tokens are written double-quoted with ``\\``, ``"``
and line breaks escaped, so comments, whitespace and embedded newlines read
back exactly as they went in.

No lock is taken: two processes writing the same file race and the last
rename wins.  A symlinked ``.env.local`` is resolved before writing, so the
link stays in place and its target is the file that gets replaced.
"""

from __future__ import annotations

import logging
import os
import re
import stat
import tempfile
from collections.abc import Mapping
from datetime import datetime, timezone
from io import StringIO
from pathlib import Path

from dotenv import dotenv_values

from sepolia_wallet.errors import Issue, SchemaValidationError

logger = logging.getLogger("sepolia_wallet.credentials")

LOCAL_ENV_FILENAME = ".env.local"
SHARED_ENV_FILENAME = ".env"
OWNER = "sepolia-wallet"
SECURE_MODE = stat.S_IRUSR | stat.S_IWUSR  # 0o600

_BARE_VALUE_RE = re.compile(r"^[A-Za-z0-9_./:@+,=-]+$")
_ESCAPES = (("\\", "\\\\"), ('"', '\\"'), ("\n", "\\n"), ("\r", "\\r"))


def credentials_path(cwd: Path | str) -> Path:
    """Return the path of the managed credential file under *cwd*."""
    return Path(cwd) / LOCAL_ENV_FILENAME


def read_credentials(path: Path | str) -> dict[str, str]:
    """Parse a ``KEY=value`` file into a dict.

    Returns an empty dict when the file doesn't exist.  Keys declared without
    a value are dropped.
    """
    path = Path(path)
    if not path.is_file():
        return {}
    parsed = dotenv_values(path, interpolate=False, encoding="utf-8")
    return {key: value for key, value in parsed.items() if value}


def quote_value(value: str) -> str:
    """Return *value* as it should appear after ``KEY=``."""
    if _BARE_VALUE_RE.match(value):
        return value
    for raw, escaped in _ESCAPES:
        value = value.replace(raw, escaped)
    return f'"{value}"'


def serialize_credentials(values: Mapping[str, str], *, now: datetime | None = None) -> str:
    """Render *values* in the canonical on-disk form.

    Keys are sorted, empty values are skipped and the output ends with exactly
    one newline.
    """
    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    lines = [
        f"# Managed by {OWNER}. Never commit this file.",
        f"# Updated at {timestamp}",
    ]
    body = [
        f"{key}={quote_value(values[key])}"
        for key in sorted(values)
        if isinstance(values[key], str) and values[key]
    ]
    if body:
        lines.append("")
        lines.extend(body)
    return "\n".join(lines) + "\n"


def _check_round_trip(values: Mapping[str, str], content: str) -> None:
    """Refuse to write *content* unless it parses back to exactly *values*."""
    expected = {key: value for key, value in values.items() if isinstance(value, str) and value}
    parsed = dotenv_values(stream=StringIO(content), interpolate=False)
    issues = [
        Issue(field=key, message=f"{key} would not read back unchanged from the env file.")
        for key in sorted(set(expected) | set(parsed))
        if parsed.get(key) != expected.get(key)
    ]
    if issues:
        raise SchemaValidationError("Refusing to write credentials that would not read back.", issues)


def write_credentials(path: Path | str, values: Mapping[str, str]) -> bool:
    """Persist *values* to *path* with owner-only permissions.

    Returns ``True`` to signal that the file was touched.  If anything fails
    the previous file is left as it was.

    Raises
    ------
    SchemaValidationError
        If the serialized file would not parse back to *values*.  Nothing is
        written in that case.
    """
    path = Path(path)
    if path.is_symlink():
        path = path.resolve()
    content = serialize_credentials(values)
    _check_round_trip(values, content)

    fd, tmp_name = tempfile.mkstemp(prefix=f"{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            os.fchmod(fh.fileno(), SECURE_MODE)
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise

    # The replaced inode is the owner-only temp file; chmod again so the mode
    # holds even where the filesystem ignored fchmod.
    os.chmod(path, SECURE_MODE)
    logger.info(f"Wrote {len([v for v in values.values() if v])} keys to {path}")
    return True


def file_mode(path: Path | str) -> int | None:
    """Return the permission bits of *path*, or ``None`` if it doesn't exist."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        return None


def is_private(path: Path | str) -> bool:
    """True when *path* exists and grants nothing to group or other."""
    mode = file_mode(path)
    return mode is not None and not mode & (stat.S_IRWXG | stat.S_IRWXO)
