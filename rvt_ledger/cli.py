"""
Command-line front end for the Renewables Vault Token ledger.

Each subcommand opens the ledger database, runs one operation on behalf of
the caller and prints the result. The caller is taken from an identity file
(--identity, an Ed25519 hex seed or an ECDSA PEM key) or a textual principal
(--caller); without either the anonymous principal is used.
"""
import argparse
import json
import logging
import sys
import threading
from typing import Optional

from rvt_ledger.config import Config
from rvt_ledger.core import Account, Principal, TransferArgs
from rvt_ledger.crypto import (
    ed25519_der,
    generate_identity,
    generate_key_pair,
    identity_der,
    public_key_der,
    save_ecdsa_identity,
    save_identity,
    serialize_public_key,
)
from rvt_ledger.errors import LedgerError
from rvt_ledger.ledger import TokenLedger
from rvt_ledger.utils.encoding import subaccount_project_id

logger = logging.getLogger(__name__)


def _subaccount(value: Optional[str]) -> Optional[bytes]:
    return bytes.fromhex(value) if value else None


def _account(owner: str, subaccount: Optional[str]) -> Account:
    return Account(owner=Principal.from_text(owner), subaccount=_subaccount(subaccount))


def resolve_caller(args) -> Principal:
    if args.identity:
        return Principal.self_authenticating(identity_der(args.identity))
    if args.caller:
        return Principal.from_text(args.caller)
    return Principal.anonymous()


def generate_identity_file(path: str, ecdsa: bool = False) -> Principal:
    """Writes a new identity to `path` and returns its principal."""
    if ecdsa:
        private_key, public_key = generate_key_pair()
        save_ecdsa_identity(private_key, path)
        return Principal.self_authenticating(public_key_der(serialize_public_key(public_key)))
    signing_key = generate_identity()
    save_identity(signing_key, path)
    return Principal.self_authenticating(ed25519_der(signing_key.verify_key))


def load_config(args) -> Config:
    config = Config.from_file(args.config) if args.config else Config.default()
    if args.db:
        config.database.path = args.db
    return config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rvt-ledger", description="Renewables Vault Token ledger")
    parser.add_argument("--config", type=str, help="Path to a JSON configuration file")
    parser.add_argument("--db", type=str, help="Ledger database directory (overrides the config)")
    parser.add_argument("--identity", type=str, help="Identity file of the caller (Ed25519 hex seed or ECDSA PEM)")
    parser.add_argument("--caller", type=str, help="Textual principal of the caller")
    # stdout carries command results, so routine INFO records stay off by default
    parser.add_argument("--log-level", type=str, default="WARNING", help="Logging level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    parser_keygen = subparsers.add_parser("keygen", help="Generate an identity file")
    parser_keygen.add_argument("--output", type=str, required=True, help="Output file path")
    parser_keygen.add_argument("--ecdsa", action="store_true", help="Write a SECP256k1 PEM key instead of Ed25519")

    subparsers.add_parser("principal", help="Print the caller's principal")
    subparsers.add_parser("init", help="Create the token and mint the initial supply to the caller")

    parser_mint = subparsers.add_parser("mint", help="Mint tokens (minting account only)")
    parser_mint.add_argument("--to", type=str, required=True, help="Recipient principal")
    parser_mint.add_argument("--to-subaccount", type=str, help="Recipient subaccount (hex)")
    parser_mint.add_argument("--amount", type=int, required=True)

    parser_transfer = subparsers.add_parser("transfer", help="ICRC-1 transfer from the caller")
    parser_transfer.add_argument("--to", type=str, required=True, help="Recipient principal")
    parser_transfer.add_argument("--to-subaccount", type=str, help="Recipient subaccount (hex)")
    parser_transfer.add_argument("--from-subaccount", type=str, help="Sender subaccount (hex)")
    parser_transfer.add_argument("--amount", type=int, required=True)
    parser_transfer.add_argument("--fee", type=int)
    parser_transfer.add_argument("--memo", type=str)
    parser_transfer.add_argument("--created-at-time", type=int, help="Nanoseconds since the epoch")

    parser_stake = subparsers.add_parser("stake", help="Stake tokens on an energy project")
    parser_stake.add_argument("--amount", type=int, required=True)
    parser_stake.add_argument("--project", type=int, required=True)

    parser_claim = subparsers.add_parser("claim", help="Claim rewards for an energy project")
    parser_claim.add_argument("--project", type=int, required=True)

    parser_associate = subparsers.add_parser("associate", help="Associate the caller with an energy project")
    parser_associate.add_argument("--project", type=int, required=True)
    parser_associate.add_argument("--amount", type=int, required=True)

    parser_balance = subparsers.add_parser("balance", help="Balance of an account (default: the caller)")
    parser_balance.add_argument("--owner", type=str)
    parser_balance.add_argument("--subaccount", type=str)
    parser_balance.add_argument("--project", type=int, help="Staking balance of a project instead")

    subparsers.add_parser("supply", help="Total supply")
    subparsers.add_parser("info", help="Token metadata and supply statistics")

    parser_log = subparsers.add_parser("log", help="List transactions")
    parser_log.add_argument("--start", type=int, default=0)
    parser_log.add_argument("--length", type=int, default=20)

    parser_serve = subparsers.add_parser("serve-metrics", help="Serve Prometheus metrics over HTTP until interrupted")
    parser_serve.add_argument("--interval", type=float, default=15.0, help="Seconds between gauge refreshes")

    return parser


def serve_metrics(ledger: TokenLedger, interval: float, stop: threading.Event = None) -> str:
    """Runs the metrics exporter, refreshing the gauges every `interval` seconds until `stop` is set."""
    if not ledger.monitor:
        raise ValueError("Monitoring is disabled in the configuration")
    stop = stop or threading.Event()
    ledger.monitor.start_server()
    try:
        while not stop.is_set():
            ledger.refresh_metrics()
            stop.wait(interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        ledger.monitor.stop_server()
    return "Metrics server stopped"


def describe(index: int, tx) -> str:
    """One tab-separated log line; stakes also name their project."""
    line = f"{index}\t{tx.kind}\t{tx.timestamp}\t{tx.id.hex()}"
    if tx.kind == "stake":
        line += f"\tproject={subaccount_project_id(tx.transfer.to.subaccount)}"
    return line


def run_command(ledger: TokenLedger, caller: Principal, args) -> object:
    if args.command == "principal":
        return ledger.get_principal(caller)
    if args.command == "init":
        return ledger.initialize_token(caller)
    if args.command == "mint":
        return ledger.mint_tokens(caller, args.amount, _account(args.to, args.to_subaccount))
    if args.command == "transfer":
        transfer_args = TransferArgs(
            to=_account(args.to, args.to_subaccount),
            amount=args.amount,
            from_subaccount=_subaccount(args.from_subaccount),
            fee=args.fee,
            memo=args.memo.encode() if args.memo is not None else None,
            created_at_time=args.created_at_time,
        )
        return ledger.icrc1_transfer(caller, transfer_args)
    if args.command == "stake":
        return ledger.stake_tokens(caller, args.amount, args.project)
    if args.command == "claim":
        return ledger.claim_rewards(caller, args.project)
    if args.command == "associate":
        ledger.associate_energy_project(caller, args.project, args.amount)
        return "ok"
    if args.command == "balance":
        if args.project is not None:
            return ledger.staking_balance(args.project)
        if args.owner:
            return ledger.icrc1_balance_of(_account(args.owner, args.subaccount))
        return ledger.icrc1_balance_of(Account(owner=caller, subaccount=_subaccount(args.subaccount)))
    if args.command == "supply":
        return ledger.icrc1_total_supply()
    if args.command == "info":
        minting_account = ledger.icrc1_minting_account()
        return json.dumps({
            "metadata": dict(ledger.icrc1_metadata()),
            "minting_account": str(minting_account) if minting_account else None,
            "ledger_principal": ledger.ledger_principal.to_text(),
            "tokenomics": ledger.get_tokenomics_stats(),
        }, indent=2)
    if args.command == "log":
        return "\n".join(describe(index, tx) for index, tx in ledger.get_transactions(args.start, args.length))
    if args.command == "serve-metrics":
        return serve_metrics(ledger, args.interval)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.command == "keygen":
        print(generate_identity_file(args.output, ecdsa=args.ecdsa).to_text())
        return 0

    try:
        caller = resolve_caller(args)
        config = load_config(args)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    ledger = TokenLedger(db_path=config.database.path, config=config)
    try:
        try:
            result = run_command(ledger, caller, args)
        except LedgerError as e:
            print(f"Error: {e}", file=sys.stderr)
            code = 1
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            code = 2
        else:
            print(result)
            code = 0

        # Storage errors propagate above and skip the export.
        if config.monitoring.textfile and ledger.monitor:
            ledger.refresh_metrics()
            ledger.monitor.write_textfile(config.monitoring.textfile)
        return code
    finally:
        ledger.close()


if __name__ == '__main__':
    sys.exit(main())
