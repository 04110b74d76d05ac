"""Wallet lifecycle: reuse, repair, provision or rotate the managed keypair.

The decision is made fresh on every call from the resolved environment:

==========================  ==========  ==========
State on entry              ensure      force
==========================  ==========  ==========
private key + address       reuse       rotate
private key only            repair      rotate
no private key              provision   rotate
==========================  ==========  ==========

``ensure`` never discards an existing private key.  Only ``force`` rotates,
and callers are expected to gate it behind an explicit acknowledgement (see
:func:`rotate_wallet`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from sepolia_wallet.config import (
    PRIVATE_KEY_KEY,
    WALLET_ADDRESS_KEY,
    Environment,
    resolve_environment,
)
from sepolia_wallet.credentials import credentials_path, read_credentials, write_credentials
from sepolia_wallet.errors import Issue, MissingSecretsError, Outcome, RotationRefusedError
from sepolia_wallet.keys import KeyPairGenerator, default_generator

logger = logging.getLogger("sepolia_wallet.lifecycle")


class WalletAction(str, Enum):
    REUSE = "reuse"
    REPAIR = "repair"
    PROVISION = "provision"
    ROTATE = "rotate"


@dataclass(frozen=True)
class WalletMaterial:
    """The wallet that subsequent tooling should use."""

    address: str
    private_key: str
    created: bool = False
    rotated: bool = False
    wrote_env: bool = False
    action: WalletAction = WalletAction.REUSE

    def __post_init__(self) -> None:
        if self.rotated and not self.created:
            raise ValueError("A rotated wallet is always a newly created wallet.")

    def __repr__(self) -> str:
        return (
            f"WalletMaterial(address={self.address!r}, private_key='***', "
            f"created={self.created}, rotated={self.rotated}, "
            f"wrote_env={self.wrote_env}, action={self.action.value!r})"
        )


def plan_action(environment: Environment, force: bool = False) -> WalletAction:
    """Decide what :meth:`WalletManager.ensure` will do, without side effects."""
    if force:
        return WalletAction.ROTATE
    if environment.private_key and environment.wallet_address:
        return WalletAction.REUSE
    if environment.private_key:
        return WalletAction.REPAIR
    return WalletAction.PROVISION


class WalletManager:
    """Drives the lifecycle of the keypair stored in ``<cwd>/.env.local``."""

    def __init__(self, cwd: Path | str, generator: KeyPairGenerator | None = None) -> None:
        self.cwd = Path(cwd)
        self.generator = generator or default_generator()

    @property
    def credentials_path(self) -> Path:
        return credentials_path(self.cwd)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ensure(self, force: bool = False, environment: Environment | None = None) -> WalletMaterial:
        """Return a complete wallet, creating or repairing it when needed.

        *environment* may be supplied to avoid re-reading the env files; it
        must be a validated :class:`Environment`.
        """
        if environment is None:
            environment = resolve_environment(self.cwd)

        action = plan_action(environment, force)
        logger.debug(f"Wallet action for {self.cwd}: {action.value}")

        if action is WalletAction.REUSE:
            return self._reuse(environment)
        if action is WalletAction.REPAIR:
            return self._repair(environment)
        return self._generate(rotate=action is WalletAction.ROTATE)

    def _reuse(self, environment: Environment) -> WalletMaterial:
        address = environment.wallet_address
        if verify_wallet(environment, self.generator) is False:
            logger.warning(
                f"{WALLET_ADDRESS_KEY}={address} does not match the address derived from "
                f"{PRIVATE_KEY_KEY}; leaving both untouched."
            )
        return WalletMaterial(
            address=address,
            private_key=environment.private_key,
            action=WalletAction.REUSE,
        )

    def _repair(self, environment: Environment) -> WalletMaterial:
        private_key = environment.private_key
        address = self.generator.derive_address(private_key)
        wrote_env = self._persist(private_key, address)
        logger.info(f"Repaired missing {WALLET_ADDRESS_KEY} in {self.credentials_path}: {address}")
        return WalletMaterial(
            address=address,
            private_key=private_key,
            wrote_env=wrote_env,
            action=WalletAction.REPAIR,
        )

    def _generate(self, rotate: bool) -> WalletMaterial:
        pair = self.generator.generate()
        wrote_env = self._persist(pair.private_key, pair.address)
        if rotate:
            logger.warning(f"Rotated wallet key material in {self.credentials_path}: {pair.address}")
        else:
            logger.info(f"Provisioned new wallet in {self.credentials_path}: {pair.address}")
        return WalletMaterial(
            address=pair.address,
            private_key=pair.private_key,
            created=True,
            rotated=rotate,
            wrote_env=wrote_env,
            action=WalletAction.ROTATE if rotate else WalletAction.PROVISION,
        )

    def _persist(self, private_key: str, address: str) -> bool:
        """Merge the secrets into the current ``.env.local`` and write it back."""
        stored = read_credentials(self.credentials_path)
        stored[PRIVATE_KEY_KEY] = private_key
        stored[WALLET_ADDRESS_KEY] = address
        return write_credentials(self.credentials_path, stored)


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def ensure_wallet(
    cwd: Path | str,
    force: bool = False,
    environment: Environment | None = None,
    generator: KeyPairGenerator | None = None,
) -> WalletMaterial:
    """Ensure a wallet exists for *cwd*.  See :class:`WalletManager`."""
    return WalletManager(cwd, generator).ensure(force=force, environment=environment)


def rotate_wallet(
    cwd: Path | str,
    *,
    acknowledged: bool,
    environment: Environment | None = None,
    generator: KeyPairGenerator | None = None,
) -> WalletMaterial:
    """Rotate the keypair, but only after an explicit acknowledgement.

    Raises
    ------
    RotationRefusedError
        If *acknowledged* is false.  Nothing is read or written in that case.
    """
    if not acknowledged:
        raise RotationRefusedError(
            "Refusing to rotate wallet without --force. Backup funds or export the key first."
        )
    return ensure_wallet(cwd, force=True, environment=environment, generator=generator)


def require_secrets(environment: Environment) -> Outcome[WalletMaterial]:
    """Return the configured wallet, or a ``MISSING_SECRETS`` failure."""
    missing = [
        Issue(field=key, message=f"{key} is not configured.")
        for key, value in (
            (PRIVATE_KEY_KEY, environment.private_key),
            (WALLET_ADDRESS_KEY, environment.wallet_address),
        )
        if not value
    ]
    if missing:
        return Outcome.failure(
            MissingSecretsError("Wallet secrets are missing. Run `wallet init` first.", missing)
        )
    return Outcome.success(
        WalletMaterial(
            address=environment.wallet_address,
            private_key=environment.private_key,
        )
    )


def verify_wallet(environment: Environment, generator: KeyPairGenerator | None = None) -> bool | None:
    """Check the stored address against the one derived from the private key.

    Returns ``None`` when either secret is missing or no address can be
    derived from the key.  A mismatch is reported, never corrected: repairing
    it would mean guessing which value is right.
    """
    if not environment.private_key or not environment.wallet_address:
        return None
    gen = generator or default_generator()
    try:
        derived = gen.derive_address(environment.private_key)
    except Exception as e:
        logger.warning(f"Could not derive an address from {PRIVATE_KEY_KEY}: {type(e).__name__}")
        return None
    return derived.lower() == environment.wallet_address.lower()
