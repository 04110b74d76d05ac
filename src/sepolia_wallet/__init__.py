"""sepolia-wallet: layered environment resolution and a guarded wallet lifecycle.

Resolves configuration from the process environment, ``.env.local`` and
``.env``, and keeps a single Sepolia keypair in ``.env.local`` with owner-only
permissions.  Existing keys are never overwritten unless rotation is
explicitly requested.
"""

from sepolia_wallet.config import Environment, resolve_environment, try_resolve_environment
from sepolia_wallet.errors import (
    ErrorKind,
    MissingRequiredFieldError,
    MissingSecretsError,
    Outcome,
    RotationRefusedError,
    SchemaValidationError,
    WalletError,
)
from sepolia_wallet.lifecycle import (
    WalletAction,
    WalletManager,
    WalletMaterial,
    ensure_wallet,
    require_secrets,
    rotate_wallet,
    verify_wallet,
)

__all__ = [
    # Environment
    "Environment",
    "resolve_environment",
    "try_resolve_environment",
    # Lifecycle
    "WalletAction",
    "WalletManager",
    "WalletMaterial",
    "ensure_wallet",
    "require_secrets",
    "rotate_wallet",
    "verify_wallet",
    # Errors
    "ErrorKind",
    "MissingRequiredFieldError",
    "MissingSecretsError",
    "Outcome",
    "RotationRefusedError",
    "SchemaValidationError",
    "WalletError",
]
