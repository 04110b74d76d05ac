"""Error kinds and the explicit result type shared by the wallet core."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    SCHEMA_VALIDATION = "schema_validation"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    ROTATION_REFUSED = "rotation_refused"
    MISSING_SECRETS = "missing_secrets"


@dataclass(frozen=True)
class Issue:
    """A single problem attached to one environment field."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class WalletError(Exception):
    """Base class for every failure surfaced by the wallet core.

    Each error carries an :class:`ErrorKind` and the full list of issues so
    the CLI can report all offending fields at once.
    """

    kind: ErrorKind

    def __init__(self, summary: str, issues: list[Issue] | None = None) -> None:
        self.summary = summary
        self.issues: list[Issue] = list(issues or [])
        super().__init__(self._render())

    def _render(self) -> str:
        if not self.issues:
            return self.summary
        lines = [self.summary]
        lines.extend(f"  - {issue}" for issue in self.issues)
        return "\n".join(lines)

    @property
    def fields(self) -> list[str]:
        return [issue.field for issue in self.issues]


class SchemaValidationError(WalletError):
    kind = ErrorKind.SCHEMA_VALIDATION


class MissingRequiredFieldError(WalletError):
    kind = ErrorKind.MISSING_REQUIRED_FIELD


class RotationRefusedError(WalletError):
    kind = ErrorKind.ROTATION_REFUSED


class MissingSecretsError(WalletError):
    kind = ErrorKind.MISSING_SECRETS


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either a value or a :class:`WalletError`, never both."""

    value: Optional[T] = None
    error: Optional[WalletError] = field(default=None)

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: WalletError) -> "Outcome[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> T:
        """Return the value, or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
