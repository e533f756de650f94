import base64
import json
from pathlib import Path

import base58
import pytest

from registry_client.config import load_settings
from registry_client.constants import DEFAULT_PROGRAM_ID
from registry_client.errors import ConfigError
from registry_client.signer import load_keypair

from conftest import make_keypair

ENV_VARS = (
    "SOLANA_RPC_URL",
    "PROGRAM_ID",
    "WALLET_PRIVATE_KEY",
    "WALLET_KEYPAIR_PATH",
    "REGISTRY_AIRDROP_TIMEOUT",
    "REGISTRY_POLL_INTERVAL",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        # setenv first so undo also removes what load_dotenv writes
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_settings_from_environ():
    kp = make_keypair(50)
    settings = load_settings(environ={
        "SOLANA_RPC_URL": "http://localhost:8899",
        "WALLET_PRIVATE_KEY": str(kp),
        "REGISTRY_AIRDROP_TIMEOUT": "12",
        "LOG_LEVEL": "debug",
    })
    assert settings.rpc_url == "http://localhost:8899"
    assert str(settings.program_id) == DEFAULT_PROGRAM_ID
    assert settings.airdrop_timeout == 12.0
    assert settings.poll_interval == 0.5
    assert settings.log_level == "DEBUG"
    assert str(kp) not in repr(settings)


def test_settings_from_dotenv(clean_env, monkeypatch):
    env_file = clean_env / "custom.env"
    env_file.write_text("SOLANA_RPC_URL=http://from-dotenv\nWALLET_KEYPAIR_PATH=id.json\n")
    monkeypatch.setenv("SOLANA_RPC_URL", "http://from-env")
    settings = load_settings(env_file)
    # variables already set are not overridden
    assert settings.rpc_url == "http://from-env"
    assert settings.keypair_path == "id.json"


@pytest.mark.parametrize(
    "environ",
    [
        {"WALLET_PRIVATE_KEY": "x"},
        {"SOLANA_RPC_URL": "http://x"},
        {"SOLANA_RPC_URL": "http://x", "WALLET_PRIVATE_KEY": "x", "PROGRAM_ID": "bad!"},
        {"SOLANA_RPC_URL": "http://x", "WALLET_PRIVATE_KEY": "x", "REGISTRY_POLL_INTERVAL": "soon"},
        {"SOLANA_RPC_URL": "http://x", "WALLET_PRIVATE_KEY": "x", "REGISTRY_AIRDROP_TIMEOUT": "0"},
        {"SOLANA_RPC_URL": "changeme", "WALLET_PRIVATE_KEY": "x"},
    ],
)
def test_settings_errors(environ):
    with pytest.raises(ConfigError):
        load_settings(environ=environ)


def test_keypair_base58_secret_and_seed():
    kp = make_keypair(51)
    assert load_keypair(str(kp)).pubkey() == kp.pubkey()
    seed = base58.b58encode(bytes(range(51, 83))).decode()
    assert load_keypair(seed).pubkey() == kp.pubkey()


def test_keypair_base64():
    kp = make_keypair(52)
    assert load_keypair(base64.b64encode(bytes(kp)).decode()).pubkey() == kp.pubkey()
    assert load_keypair(base64.b64encode(bytes(range(52, 84))).decode()).pubkey() == kp.pubkey()


def test_keypair_json_array_text_and_file(tmp_path: Path):
    kp = make_keypair(53)
    text = json.dumps(list(bytes(kp)))
    assert load_keypair(text).pubkey() == kp.pubkey()
    path = tmp_path / "id.json"
    path.write_text(text)
    assert load_keypair(path=str(path)).pubkey() == kp.pubkey()


def test_keypair_secret_wins_over_path(tmp_path: Path):
    a, b = make_keypair(54), make_keypair(55)
    path = tmp_path / "id.json"
    path.write_text(json.dumps(list(bytes(b))))
    assert load_keypair(str(a), str(path)).pubkey() == a.pubkey()


def test_keypair_errors(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_keypair()
    with pytest.raises(ConfigError):
        load_keypair("definitely not a key")
    with pytest.raises(ConfigError):
        load_keypair(path=str(tmp_path / "missing.json"))
