import argparse

import pytest

from registry_client import cli
from registry_client.commands import AddClient, AddNode, Airdrop, Transfer, UpdateNodeActive, from_namespace, sol_amount_arg
from registry_client.constants import LAMPORTS_PER_SOL

from conftest import make_keypair

ACCOUNT = str(make_keypair(60).pubkey())


@pytest.fixture
def wired(monkeypatch, registry):
    monkeypatch.setattr(cli, "open_registry", lambda args: registry)
    return registry


def _parse(*argv):
    return from_namespace(cli.build_parser().parse_args(list(argv)))


def test_parse_add_client():
    cmd = _parse("add-client", "alpha", ACCOUNT, "30", "100")
    assert cmd == AddClient(name="alpha", account=make_keypair(60).pubkey(), valid_days=30, limit=100)


def test_parse_sol_amounts():
    assert _parse("transfer", ACCOUNT, "0.5") == Transfer(to=make_keypair(60).pubkey(), lamports=LAMPORTS_PER_SOL // 2)
    assert _parse("airdrop") == Airdrop(lamports=LAMPORTS_PER_SOL)
    assert _parse("airdrop", "2").lamports == 2 * LAMPORTS_PER_SOL


def test_parse_active_flag():
    cmd = _parse("update-node-active", "alpha", ACCOUNT, ACCOUNT, "TRUE")
    assert isinstance(cmd, UpdateNodeActive) and cmd.active is True


@pytest.mark.parametrize(
    "argv",
    [
        ["add-node", "alpha", ACCOUNT, "d" * 65],
        ["add-client", "alpha", "nope", "30", "100"],
        ["add-client", "alpha", ACCOUNT, "30", "-1"],
        ["update-node-active", "alpha", ACCOUNT, ACCOUNT, "yes"],
        ["update-node-online", "alpha", ACCOUNT, ACCOUNT, "2147483648"],
        ["create", "n" * 33],
        ["transfer", ACCOUNT, "abc"],
        ["transfer", ACCOUNT, "1e999999999"],
        ["transfer", ACCOUNT, "18446744074"],
        ["frobnicate"],
    ],
)
def test_usage_errors_exit_2(argv):
    with pytest.raises(SystemExit) as exc:
        cli.main(argv)
    assert exc.value.code == 2


def test_create_and_list(wired, capsys):
    assert cli.main(["create", "alpha"]) == 0
    assert "Registry created" in capsys.readouterr().out

    assert cli.main(["list-clients", "alpha"]) == 0
    assert "No clients found in registry" in capsys.readouterr().out

    assert cli.main(["add-client", "alpha", ACCOUNT, "30", "100"]) == 0
    assert cli.main(["list-clients", "alpha"]) == 0
    out = capsys.readouterr().out
    assert "Found 1 clients in registry" in out
    assert "100" in out


def test_get_node_output(wired, capsys):
    assert cli.main(["get-node", "alpha", ACCOUNT]) == 0
    assert "Node account not found" in capsys.readouterr().out
    assert cli.main(["add-node", "alpha", ACCOUNT, "n1.example.org"]) == 0
    assert cli.main(["get-node", "alpha", ACCOUNT]) == 0
    assert "n1.example.org" in capsys.readouterr().out


def test_domain_between_cli_and_program_limits_is_rejected_at_parse(wired):
    with pytest.raises(SystemExit):
        cli.main(["add-node", "alpha", ACCOUNT, "d" * 100])
    assert wired.transport.sent == []


def test_registry_error_exits_1(wired, capsys):
    assert cli.main(["transfer", ACCOUNT, "1"]) == 1
    assert "Insufficient balance" in capsys.readouterr().out


def test_negative_online_value_exits_1(wired, capsys):
    code = cli.main(["update-node-online", "alpha", ACCOUNT, ACCOUNT, "-1"])
    assert code == 1
    assert "non-negative" in capsys.readouterr().out
    assert wired.transport.calls == []


def test_balance_and_airdrop(wired, capsys):
    assert cli.main(["airdrop", "1.5"]) == 0
    out = capsys.readouterr().out
    assert "Airdrop confirmed" in out
    assert "1.500000000 SOL" in out
    assert cli.main(["balance"]) == 0
    assert "1500000000 lamports" in capsys.readouterr().out


def test_missing_config_exits_1(monkeypatch, tmp_path, capsys):
    for name in ("SOLANA_RPC_URL", "WALLET_PRIVATE_KEY", "WALLET_KEYPAIR_PATH"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    assert cli.main(["balance"]) == 1
    assert "SOLANA_RPC_URL" in capsys.readouterr().out


def test_sol_amount_bounds():
    assert sol_amount_arg("18446744073.709551615") == 2**64 - 1
    assert sol_amount_arg("1e-999999999") == 0
    for text in ("1e999999999", "18446744073.709551616", "-1", "inf", "NaN"):
        with pytest.raises(argparse.ArgumentTypeError):
            sol_amount_arg(text)


def test_domain_at_cli_limit_is_accepted(wired, capsys):
    assert _parse("add-node", "alpha", ACCOUNT, "d" * 64) == AddNode(
        name="alpha", account=make_keypair(60).pubkey(), domain="d" * 64
    )
    assert cli.main(["add-node", "alpha", ACCOUNT, "d" * 64]) == 0
    assert "Node account added to registry" in capsys.readouterr().out
    assert wired.get_node("alpha", make_keypair(60).pubkey()).domain == "d" * 64
