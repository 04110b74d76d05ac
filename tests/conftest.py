import os

import pytest

from sepolia_wallet.keys import KeyPair

CANONICAL_KEYS = ("SEPOLIA_RPC_URL", "PRIVATE_KEY", "WALLET_ADDRESS", "ETHERSCAN_API_KEY")

KNOWN_PRIVATE_KEY = "0x" + "11" * 32
OTHER_PRIVATE_KEY = "0x" + "22" * 32


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's shell environment out of every test."""
    for key in CANONICAL_KEYS + ("EXTRA_SETTING",):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def workdir(tmp_path):
    return tmp_path


@pytest.fixture
def write_env(workdir):
    """Write a raw env file (``.env.local`` by default) into the work dir."""

    def _write(content: str, name: str = ".env.local", mode: int = 0o644):
        path = workdir / name
        path.write_text(content, encoding="utf-8")
        os.chmod(path, mode)
        return path

    return _write


class SequenceGenerator:
    """Deterministic key generator handing out a fixed list of keypairs."""

    def __init__(self, *pairs: KeyPair) -> None:
        self.pairs = list(pairs)
        self.generated = 0
        self.derived: list[str] = []

    def generate(self) -> KeyPair:
        pair = self.pairs[self.generated]
        self.generated += 1
        return pair

    def derive_address(self, private_key: str) -> str:
        self.derived.append(private_key)
        for pair in self.pairs:
            if pair.private_key == private_key:
                return pair.address
        raise AssertionError(f"unexpected key {private_key}")


@pytest.fixture
def fake_pairs():
    return (
        KeyPair(private_key="0x" + "aa" * 32, address="0x" + "A1" * 20),
        KeyPair(private_key="0x" + "bb" * 32, address="0x" + "B2" * 20),
    )


@pytest.fixture
def generator(fake_pairs):
    return SequenceGenerator(*fake_pairs)
