from __future__ import annotations

import argparse
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Type

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from registry_client.codec import ClientEntry, NodeEntry
from registry_client.commands import (
    AddClient,
    AddNode,
    Airdrop,
    Balance,
    Command,
    Create,
    DelegateNode,
    DeleteClient,
    DeleteNode,
    GetClient,
    GetNode,
    ListClients,
    ListNodes,
    Transfer,
    UndelegateNode,
    UpdateNodeActive,
    UpdateNodeOnline,
    bool_arg,
    domain_arg,
    from_namespace,
    limit_arg,
    online_value_arg,
    pubkey_arg,
    registry_name_arg,
    sol_amount_arg,
    valid_days_arg,
)
from registry_client.config import load_settings
from registry_client.constants import LAMPORTS_PER_SOL
from registry_client.errors import RegistryError
from registry_client.logging import configure_console_log, log
from registry_client.registry import RegistryFacade

console = Console(soft_wrap=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="registry-client", description="Solana registry program client")
    parser.add_argument("--env-file", type=Path, default=None, help="dotenv file to load (default: ./.env)")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ...)")
    sub = parser.add_subparsers(dest="command", metavar="command", required=True)

    p = sub.add_parser("create", help="Create a registry owned by the wallet")
    p.add_argument("name", type=registry_name_arg)

    p = sub.add_parser("add-client", help="Add a client account to a registry")
    p.add_argument("name", type=registry_name_arg)
    p.add_argument("account", type=pubkey_arg)
    p.add_argument("valid_days", type=valid_days_arg, help="Validity in days from now")
    p.add_argument("limit", type=limit_arg)

    p = sub.add_parser("add-node", help="Add a node account to a registry")
    p.add_argument("name", type=registry_name_arg)
    p.add_argument("account", type=pubkey_arg)
    p.add_argument("domain", type=domain_arg)

    for cmd, text in (
        ("delegate-node", "Delegate a node entry to the delegation program"),
        ("undelegate-node", "Commit and undelegate a node entry"),
        ("get-client", "Show a client entry"),
        ("get-node", "Show a node entry"),
        ("delete-client", "Remove a client entry"),
        ("delete-node", "Remove a node entry"),
    ):
        p = sub.add_parser(cmd, help=text)
        p.add_argument("name", type=registry_name_arg)
        p.add_argument("account", type=pubkey_arg)

    for cmd, text in (("list-clients", "List client entries"), ("list-nodes", "List node entries")):
        p = sub.add_parser(cmd, help=text)
        p.add_argument("name", type=registry_name_arg)

    p = sub.add_parser("update-node-online", help="Set a node's online value (signed by the node)")
    p.add_argument("name", type=registry_name_arg)
    p.add_argument("authority", type=pubkey_arg, help="Registry authority")
    p.add_argument("account", type=pubkey_arg)
    p.add_argument("value", type=online_value_arg)

    p = sub.add_parser("update-node-active", help="Set a node's active flag")
    p.add_argument("name", type=registry_name_arg)
    p.add_argument("authority", type=pubkey_arg, help="Registry authority")
    p.add_argument("account", type=pubkey_arg)
    p.add_argument("active", type=bool_arg, help="true/false")

    p = sub.add_parser("transfer", help="Transfer SOL from the wallet")
    p.add_argument("to", type=pubkey_arg)
    p.add_argument("lamports", type=sol_amount_arg, metavar="amount_in_sol")

    sub.add_parser("balance", help="Show the wallet balance")

    p = sub.add_parser("airdrop", help="Request a devnet/testnet airdrop (default 1 SOL)")
    p.add_argument("lamports", type=sol_amount_arg, nargs="?", default=LAMPORTS_PER_SOL, metavar="amount_in_sol")

    return parser


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def _sol(lamports: int) -> str:
    return f"{lamports / LAMPORTS_PER_SOL:.9f} SOL ({lamports} lamports)"


def _done(what: str, sig) -> None:
    console.print(f"[bold green]✓[/] {what}. Transaction signature: [cyan]{sig}[/]")


def _client_table(entries: Sequence[ClientEntry], title: str) -> Table:
    table = Table(title=title)
    table.add_column("Registered", overflow="fold")
    table.add_column("Valid until")
    table.add_column("Limit", justify="right")
    for e in entries:
        table.add_row(str(e.registered), e.valid_until.isoformat(), str(e.limit))
    return table


def _node_table(entries: Sequence[NodeEntry], title: str) -> Table:
    table = Table(title=title)
    table.add_column("Registered", overflow="fold")
    table.add_column("Domain")
    table.add_column("Online", justify="right")
    table.add_column("Active")
    for e in entries:
        table.add_row(str(e.registered), escape(e.domain), str(e.online), str(e.active).lower())
    return table


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _create(reg: RegistryFacade, cmd: Create) -> None:
    _done("Registry created", reg.create_registry(cmd.name))


def _add_client(reg: RegistryFacade, cmd: AddClient) -> None:
    until = datetime.now(timezone.utc) + timedelta(days=cmd.valid_days)
    _done("Client account added to registry", reg.add_client(cmd.name, cmd.account, until, cmd.limit))


def _add_node(reg: RegistryFacade, cmd: AddNode) -> None:
    _done("Node account added to registry", reg.add_node(cmd.name, cmd.account, cmd.domain))


def _delegate_node(reg: RegistryFacade, cmd: DelegateNode) -> None:
    _done("Node account delegated", reg.delegate_node(cmd.name, cmd.account))


def _undelegate_node(reg: RegistryFacade, cmd: UndelegateNode) -> None:
    _done("Node account undelegated", reg.undelegate_node(cmd.name, cmd.account))


def _get_client(reg: RegistryFacade, cmd: GetClient) -> None:
    entry = reg.get_client(cmd.name, cmd.account)
    if entry is None:
        console.print("[yellow]Client account not found in registry[/]")
        return
    console.print(f"Parent: [cyan]{entry.parent}[/]")
    console.print(_client_table([entry], "Client registry entry"))


def _get_node(reg: RegistryFacade, cmd: GetNode) -> None:
    entry = reg.get_node(cmd.name, cmd.account)
    if entry is None:
        console.print("[yellow]Node account not found in registry[/]")
        return
    console.print(f"Parent: [cyan]{entry.parent}[/]")
    console.print(_node_table([entry], "Node registry entry"))


def _delete_client(reg: RegistryFacade, cmd: DeleteClient) -> None:
    _done("Client account deleted from registry", reg.delete_client(cmd.name, cmd.account))


def _delete_node(reg: RegistryFacade, cmd: DeleteNode) -> None:
    _done("Node account deleted from registry", reg.delete_node(cmd.name, cmd.account))


def _list_clients(reg: RegistryFacade, cmd: ListClients) -> None:
    entries = reg.list_clients(cmd.name)
    if not entries:
        console.print("[yellow]No clients found in registry[/]")
        return
    console.print(_client_table(entries, f"Found {len(entries)} clients in registry"))


def _list_nodes(reg: RegistryFacade, cmd: ListNodes) -> None:
    entries = reg.list_nodes(cmd.name)
    if not entries:
        console.print("[yellow]No nodes found in registry[/]")
        return
    console.print(_node_table(entries, f"Found {len(entries)} nodes in registry"))


def _update_node_online(reg: RegistryFacade, cmd: UpdateNodeOnline) -> None:
    _done("Node online status updated", reg.update_node_online(cmd.name, cmd.authority, cmd.account, cmd.value))


def _update_node_active(reg: RegistryFacade, cmd: UpdateNodeActive) -> None:
    _done("Node active status updated", reg.update_node_active(cmd.name, cmd.authority, cmd.account, cmd.active))


def _transfer(reg: RegistryFacade, cmd: Transfer) -> None:
    sig = reg.transfer(cmd.to, cmd.lamports)
    console.print(f"[bold green]✓[/] Transferred {_sol(cmd.lamports)} to [cyan]{cmd.to}[/]")
    console.print(f"Transaction signature: [cyan]{sig}[/]")
    console.print(f"New wallet balance: {_sol(reg.balance())}")


def _balance(reg: RegistryFacade, cmd: Balance) -> None:
    console.print(f"Wallet balance: {_sol(reg.balance())}")


def _airdrop(reg: RegistryFacade, cmd: Airdrop) -> None:
    _done("Airdrop confirmed", reg.airdrop(cmd.lamports))
    console.print(f"New wallet balance: {_sol(reg.balance())}")


HANDLERS: Dict[Type, Callable[[RegistryFacade, Command], None]] = {
    Create: _create,
    AddClient: _add_client,
    AddNode: _add_node,
    DelegateNode: _delegate_node,
    UndelegateNode: _undelegate_node,
    GetClient: _get_client,
    GetNode: _get_node,
    DeleteClient: _delete_client,
    DeleteNode: _delete_node,
    ListClients: _list_clients,
    ListNodes: _list_nodes,
    UpdateNodeOnline: _update_node_online,
    UpdateNodeActive: _update_node_active,
    Transfer: _transfer,
    Balance: _balance,
    Airdrop: _airdrop,
}


def run(command: Command, registry: RegistryFacade) -> None:
    HANDLERS[type(command)](registry, command)


def open_registry(args: argparse.Namespace) -> RegistryFacade:
    settings = load_settings(args.env_file)
    configure_console_log(args.log_level or settings.log_level)
    log.debug(f"loaded {settings!r}", source="cli")
    return RegistryFacade.from_settings(settings)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    command = from_namespace(args)
    try:
        with open_registry(args) as registry:
            run(command, registry)
    except RegistryError as exc:
        log.error(f"{args.command} failed: {exc}", source="cli")
        console.print(f"[bold red]✗ {escape(str(exc))}[/]")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
