"""Chain definition for the Sepolia test network."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Chain:
    """An EVM-compatible blockchain network."""

    name: str
    chain_id: int
    native_symbol: str
    explorer_url: str

    def address_url(self, address: str) -> str:
        return f"{self.explorer_url}/address/{address}"


SEPOLIA = Chain(
    name="sepolia",
    chain_id=11155111,
    native_symbol="ETH",
    explorer_url="https://sepolia.etherscan.io",
)
