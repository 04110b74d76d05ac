import json

import pytest
from rich.console import Console
from typer.testing import CliRunner

from sepolia_wallet.cli import app as cli
from sepolia_wallet.credentials import credentials_path, read_credentials

runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    monkeypatch.setattr(cli, "console", Console(width=400))


@pytest.fixture(autouse=True)
def no_network(monkeypatch):
    calls = []

    def fake_balance(rpc_url, address):
        calls.append((rpc_url, address))
        return None

    monkeypatch.setattr(cli, "check_balance", fake_balance)
    return calls


def invoke(*args):
    return runner.invoke(cli.app, list(args))


def test_init_provisions_wallet(workdir):
    result = invoke("wallet", "init", "--cwd", str(workdir))

    assert result.exit_code == 0, result.output
    stored = read_credentials(credentials_path(workdir))
    assert stored["WALLET_ADDRESS"] in result.output
    assert "Generated this run: True" in result.output


def test_init_twice_keeps_the_key(workdir):
    invoke("wallet", "init", "--cwd", str(workdir))
    first = read_credentials(credentials_path(workdir))

    result = invoke("wallet", "init", "--cwd", str(workdir))

    assert result.exit_code == 0
    assert "Generated this run: False" in result.output
    assert read_credentials(credentials_path(workdir)) == first


def test_rotate_without_force_is_refused(workdir):
    invoke("wallet", "init", "--cwd", str(workdir))
    before = credentials_path(workdir).read_text(encoding="utf-8")

    result = invoke("wallet", "rotate", "--cwd", str(workdir))

    assert result.exit_code == 1
    assert "Refusing to rotate" in result.output
    assert credentials_path(workdir).read_text(encoding="utf-8") == before


def test_rotate_with_force(workdir):
    invoke("wallet", "init", "--cwd", str(workdir))
    before = read_credentials(credentials_path(workdir))

    result = invoke("wallet", "rotate", "--cwd", str(workdir), "--force")

    assert result.exit_code == 0, result.output
    assert "Rotated: True" in result.output
    assert read_credentials(credentials_path(workdir))["PRIVATE_KEY"] != before["PRIVATE_KEY"]


def test_status_without_key(workdir):
    result = invoke("wallet", "status", "--cwd", str(workdir))

    assert result.exit_code == 0
    assert "No PRIVATE_KEY configured" in result.output
    assert not credentials_path(workdir).exists()


def test_status_checks_balance_when_rpc_is_configured(workdir, no_network):
    invoke("wallet", "init", "--cwd", str(workdir))
    (workdir / ".env").write_text("SEPOLIA_RPC_URL=https://rpc.example\n", encoding="utf-8")

    result = invoke("wallet", "status", "--cwd", str(workdir))

    assert result.exit_code == 0, result.output
    assert "unavailable (RPC error)" in result.output
    assert no_network[0][0] == "https://rpc.example"


def test_status_warns_about_loose_permissions(workdir):
    invoke("wallet", "init", "--cwd", str(workdir))
    credentials_path(workdir).chmod(0o644)

    result = invoke("wallet", "status", "--cwd", str(workdir))

    assert result.exit_code == 0
    assert "other users can read it" in result.output


def test_export_requires_secrets(workdir):
    result = invoke("wallet", "export", "--cwd", str(workdir), "--keystore")

    assert result.exit_code == 1
    assert "Wallet secrets are missing" in result.output
    assert not (workdir / "keystore.json").exists()


def test_export_keystore(workdir):
    invoke("wallet", "init", "--cwd", str(workdir))
    stored = read_credentials(credentials_path(workdir))

    result = invoke("wallet", "export", "--cwd", str(workdir), "--keystore", "--out", "demo.json")

    assert result.exit_code == 0, result.output
    data = json.loads((workdir / "demo.json").read_text(encoding="utf-8"))
    assert data["privateKey"] == stored["PRIVATE_KEY"]


def test_invalid_environment_is_reported(workdir):
    (workdir / ".env.local").write_text("PRIVATE_KEY=0x1234\n", encoding="utf-8")

    result = invoke("wallet", "init", "--cwd", str(workdir))

    assert result.exit_code == 1
    assert "PRIVATE_KEY" in result.output
    assert (workdir / ".env.local").read_text(encoding="utf-8") == "PRIVATE_KEY=0x1234\n"


def test_env_check_strict_lists_missing_fields(workdir):
    result = invoke("env", "check", "--cwd", str(workdir), "--strict")

    assert result.exit_code == 1
    for key in ("SEPOLIA_RPC_URL", "PRIVATE_KEY", "WALLET_ADDRESS", "ETHERSCAN_API_KEY"):
        assert key in result.output


def test_env_check_masks_secrets(workdir):
    invoke("wallet", "init", "--cwd", str(workdir))
    stored = read_credentials(credentials_path(workdir))

    result = invoke("env", "check", "--cwd", str(workdir))

    assert result.exit_code == 0, result.output
    assert stored["PRIVATE_KEY"] not in result.output
    assert "OK" in result.output


def test_init_with_unusable_private_key_fails_cleanly(workdir):
    (workdir / ".env.local").write_text("PRIVATE_KEY=0x" + "00" * 32 + "\n", encoding="utf-8")

    result = invoke("wallet", "init", "--cwd", str(workdir))

    assert result.exit_code == 1
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert "PRIVATE_KEY" in result.output
    assert "curve order" in result.output


def test_export_refuses_to_overwrite_other_files(workdir):
    invoke("wallet", "init", "--cwd", str(workdir))
    other = workdir / "notes.json"
    other.write_text('{"mine": true}\n', encoding="utf-8")

    result = invoke("wallet", "export", "--cwd", str(workdir), "--keystore", "--out", "notes.json")

    assert result.exit_code == 1
    assert "refusing to overwrite" in result.output
    assert other.read_text(encoding="utf-8") == '{"mine": true}\n'


def test_export_replaces_previous_demo_keystore(workdir):
    invoke("wallet", "init", "--cwd", str(workdir))
    invoke("wallet", "export", "--cwd", str(workdir), "--keystore")

    result = invoke("wallet", "export", "--cwd", str(workdir), "--keystore")

    assert result.exit_code == 0, result.output
    data = json.loads((workdir / "keystore.json").read_text(encoding="utf-8"))
    assert data["address"] == read_credentials(credentials_path(workdir))["WALLET_ADDRESS"]
