"""Keypair generation and address derivation using eth-account."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from eth_account import Account


@dataclass(frozen=True)
class KeyPair:
    """A freshly generated private key and its checksummed address."""

    private_key: str
    address: str

    def __repr__(self) -> str:
        return f"KeyPair(address={self.address!r}, private_key='***')"


class KeyPairGenerator(Protocol):
    """What the wallet lifecycle needs from a key backend."""

    def generate(self) -> KeyPair: ...

    def derive_address(self, private_key: str) -> str: ...


def _to_hex(raw: bytes) -> str:
    return "0x" + bytes(raw).hex()


class EthAccountKeyPairGenerator:
    """Secp256k1 keys from :mod:`eth_account`.

    Private keys are rendered as ``0x`` + 64 lowercase hex characters and
    addresses are EIP-55 checksummed.
    """

    def generate(self) -> KeyPair:
        acct = Account.create()
        return KeyPair(private_key=_to_hex(acct.key), address=acct.address)

    def derive_address(self, private_key: str) -> str:
        return Account.from_key(private_key).address


def default_generator() -> KeyPairGenerator:
    return EthAccountKeyPairGenerator()
