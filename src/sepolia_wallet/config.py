"""Environment resolution for sepolia-wallet.

Merges configuration from the process environment, ``.env.local`` and
``.env`` (in that order of precedence), then validates the result with
pydantic.  Two views exist: a permissive one, where every canonical field is
optional but shape-checked when present, and a strict one that additionally
requires all canonical fields.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Optional

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, TypeAdapter, ValidationError, field_validator

from sepolia_wallet.credentials import LOCAL_ENV_FILENAME, SHARED_ENV_FILENAME, read_credentials
from sepolia_wallet.errors import (
    Issue,
    MissingRequiredFieldError,
    Outcome,
    SchemaValidationError,
    WalletError,
)

logger = logging.getLogger("sepolia_wallet.config")


# ---------------------------------------------------------------------------
# Canonical fields
# ---------------------------------------------------------------------------

RPC_URL_KEY = "SEPOLIA_RPC_URL"
PRIVATE_KEY_KEY = "PRIVATE_KEY"
WALLET_ADDRESS_KEY = "WALLET_ADDRESS"
API_KEY_KEY = "ETHERSCAN_API_KEY"

REQUIRED_KEYS: tuple[str, ...] = (
    RPC_URL_KEY,
    PRIVATE_KEY_KEY,
    WALLET_ADDRESS_KEY,
    API_KEY_KEY,
)
SECRET_KEYS = frozenset({PRIVATE_KEY_KEY, API_KEY_KEY})

_PRIVATE_KEY_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
# Order of the secp256k1 group; a private key must lie in [1, n).
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
_HTTP_URL = TypeAdapter(AnyHttpUrl)


# ---------------------------------------------------------------------------
# Pydantic v2 schema
# ---------------------------------------------------------------------------


class BaseEnvironmentSchema(BaseModel):
    """Permissive schema: every canonical field is optional.

    Only the canonical fields are modelled here; unknown keys bypass the
    schema and are passed through untouched by :func:`validate_environment`.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, str_strip_whitespace=True)

    SEPOLIA_RPC_URL: Optional[str] = None
    PRIVATE_KEY: Optional[str] = None
    WALLET_ADDRESS: Optional[str] = None
    ETHERSCAN_API_KEY: Optional[str] = None

    @field_validator("SEPOLIA_RPC_URL")
    @classmethod
    def _check_rpc_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            _HTTP_URL.validate_python(value)
        except ValidationError:
            raise ValueError(
                "SEPOLIA_RPC_URL must be a valid URL beginning with an http:// or https:// scheme."
            ) from None
        return value

    @field_validator("PRIVATE_KEY")
    @classmethod
    def _check_private_key(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if not _PRIVATE_KEY_RE.match(value):
            raise ValueError(
                "PRIVATE_KEY must be a 32-byte hex string prefixed with 0x (64 hex chars)."
            )
        if not 0 < int(value, 16) < SECP256K1_N:
            raise ValueError(
                "PRIVATE_KEY is not a usable secp256k1 key; it must be non-zero and "
                "below the curve order."
            )
        return value

    @field_validator("WALLET_ADDRESS")
    @classmethod
    def _check_address(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not _ADDRESS_RE.match(value):
            raise ValueError("WALLET_ADDRESS must be a 20-byte hex string prefixed with 0x.")
        return value

    @field_validator("ETHERSCAN_API_KEY")
    @classmethod
    def _check_api_key(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value:
            raise ValueError("ETHERSCAN_API_KEY cannot be empty when provided.")
        return value


# ---------------------------------------------------------------------------
# Environment value
# ---------------------------------------------------------------------------


class Environment(Mapping[str, str]):
    """Immutable, validated view of the resolved configuration."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, str]) -> None:
        self._values = MappingProxyType(dict(values))

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        shown = {
            key: ("***" if key in SECRET_KEYS else value)
            for key, value in self._values.items()
            if key in REQUIRED_KEYS
        }
        return f"<Environment {shown} (+{len(self._values) - len(shown)} other keys)>"

    @property
    def rpc_url(self) -> str | None:
        return self._values.get(RPC_URL_KEY) or None

    @property
    def private_key(self) -> str | None:
        return self._values.get(PRIVATE_KEY_KEY) or None

    @property
    def wallet_address(self) -> str | None:
        return self._values.get(WALLET_ADDRESS_KEY) or None

    @property
    def etherscan_api_key(self) -> str | None:
        return self._values.get(API_KEY_KEY) or None


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def collect_environment(
    cwd: Path | str,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Merge the configuration sources without validating them.

    Precedence, highest first:

    1. *environ* (a snapshot of ``os.environ`` when ``None``).
    2. ``<cwd>/.env.local``.
    3. ``<cwd>/.env``.

    A key set by a higher source shadows the whole value from lower sources.
    Empty values count as unset and never block a lower source.
    """
    if environ is None:
        environ = dict(os.environ)

    merged: dict[str, str] = {
        key: value for key, value in environ.items() if isinstance(value, str) and value
    }

    base = Path(cwd)
    for filename in (LOCAL_ENV_FILENAME, SHARED_ENV_FILENAME):
        for key, value in read_credentials(base / filename).items():
            if key not in merged:
                merged[key] = value

    return merged


def _issues_from(exc: ValidationError) -> list[Issue]:
    issues: list[Issue] = []
    for err in exc.errors():
        loc = err.get("loc") or ("<environment>",)
        ctx_error = (err.get("ctx") or {}).get("error")
        message = str(ctx_error) if ctx_error is not None else err["msg"]
        issues.append(Issue(field=str(loc[0]), message=message))
    return issues


def validate_environment(values: Mapping[str, str], *, strict: bool = False) -> Environment:
    """Validate *values* against the permissive (or strict) schema.

    The permissive checks always run first, so the strict view never accepts
    a value the permissive view would reject.
    """
    canonical = {key: values[key] for key in REQUIRED_KEYS if values.get(key)}
    try:
        model = BaseEnvironmentSchema.model_validate(canonical)
    except ValidationError as exc:
        raise SchemaValidationError(
            "Environment contains invalid values.", _issues_from(exc)
        ) from exc

    validated = {key: value for key, value in values.items() if key not in REQUIRED_KEYS}
    validated.update(
        {key: value for key, value in model.model_dump().items() if value is not None}
    )

    if strict:
        missing = [
            Issue(
                field=key,
                message=(
                    f"{key} is required. Populate it in {LOCAL_ENV_FILENAME} "
                    "or regenerate via the wallet helper."
                ),
            )
            for key in REQUIRED_KEYS
            if not validated.get(key)
        ]
        if missing:
            raise MissingRequiredFieldError("Environment is missing required values.", missing)

    return Environment(validated)


def resolve_environment(
    cwd: Path | str,
    strict: bool = False,
    environ: Mapping[str, str] | None = None,
) -> Environment:
    """Collect and validate the environment for *cwd*.

    Never mutates ``os.environ``.  Raises :class:`SchemaValidationError` when a
    present value has the wrong shape and, in strict mode,
    :class:`MissingRequiredFieldError` when a canonical field is absent.
    """
    merged = collect_environment(cwd, environ)
    logger.debug(f"Resolved {len(merged)} environment keys for {cwd} (strict={strict})")
    return validate_environment(merged, strict=strict)


def try_resolve_environment(
    cwd: Path | str,
    strict: bool = False,
    environ: Mapping[str, str] | None = None,
) -> Outcome[Environment]:
    """Like :func:`resolve_environment` but returns an :class:`Outcome`."""
    try:
        return Outcome.success(resolve_environment(cwd, strict=strict, environ=environ))
    except WalletError as exc:
        return Outcome.failure(exc)
