"""Sepolia balance lookup over JSON-RPC.

The lookup never raises: any RPC or network failure is logged and reported as
``None`` so that wallet commands keep working while the node is unreachable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from web3 import Web3

from sepolia_wallet.chains import SEPOLIA

logger = logging.getLogger("sepolia_wallet.balance")

DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class WalletBalance:
    """Balance in wei plus its human-readable ether form."""

    wei: int
    ether: Decimal
    symbol: str = SEPOLIA.native_symbol

    def __str__(self) -> str:
        return f"{self.ether} {self.symbol}"


def get_web3(rpc_url: str, timeout: float = DEFAULT_TIMEOUT) -> Web3:
    """Return a Web3 client bound to *rpc_url*."""
    return Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))


def check_balance(
    rpc_url: str | None,
    address: str,
    timeout: float = DEFAULT_TIMEOUT,
) -> WalletBalance | None:
    """Fetch the native balance of *address*, or ``None`` when unavailable."""
    if not rpc_url:
        return None

    try:
        w3 = get_web3(rpc_url, timeout)
        balance_wei = w3.eth.get_balance(Web3.to_checksum_address(address))
    except Exception as e:
        logger.warning(f"Failed to get {SEPOLIA.name} balance for {address}: {e}")
        return None

    ether = Decimal(str(Web3.from_wei(balance_wei, "ether")))
    return WalletBalance(wei=int(balance_wei), ether=ether)
