import json

import pytest

from sepolia_wallet.credentials import file_mode
from sepolia_wallet.keystore import DEMO_NOTE, load_demo_keystore, write_demo_keystore
from sepolia_wallet.lifecycle import WalletMaterial

MATERIAL = WalletMaterial(address="0x" + "A1" * 20, private_key="0x" + "aa" * 32)


def test_demo_keystore_is_marked_and_private(workdir):
    path = write_demo_keystore(workdir / "out" / "keystore.json", MATERIAL)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["note"] == DEMO_NOTE
    assert data["address"] == MATERIAL.address
    assert data["privateKey"] == MATERIAL.private_key
    assert "generatedAt" in data
    assert file_mode(path) == 0o600


def test_overwriting_existing_keystore_tightens_mode(workdir):
    path = workdir / "keystore.json"
    path.write_text("{}", encoding="utf-8")
    path.chmod(0o644)

    write_demo_keystore(path, MATERIAL)

    assert file_mode(path) == 0o600
    assert load_demo_keystore(path)["address"] == MATERIAL.address


def test_load_rejects_foreign_files(workdir):
    with pytest.raises(FileNotFoundError):
        load_demo_keystore(workdir / "missing.json")

    other = workdir / "other.json"
    other.write_text(json.dumps({"address": "0x"}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_demo_keystore(other)


def test_load_rejects_json_that_is_not_an_object(workdir):
    path = workdir / "list.json"
    path.write_text("[1, 2]\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_demo_keystore(path)
