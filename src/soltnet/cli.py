"""
Command-line interface for soltnet.
"""

import argparse
import asyncio
import sys

from solana.exceptions import SolanaRpcException
from solana.rpc.core import RPCException

from soltnet.config_loader import get_log_level, load_config
from soltnet.core.client import SolanaClient
from soltnet.tools.data_format import set_data_format
from soltnet.tools.dump import (
    dump_account,
    dump_accounts_for_tx,
    dump_accounts_from_tx,
    dump_raw_block,
    dump_raw_transaction,
)
from soltnet.tools.parse import create_json_from_tx, parse_block
from soltnet.tools.tx import (
    airdrop_sol,
    close_ata,
    create_ata,
    execute_json_transaction,
    get_balance,
    get_token_balance,
    send_sol,
)
from soltnet.tx_format.json_tx import load_parsed_tx_from_json
from soltnet.utils.amounts import parse_sol_to_lamports
from soltnet.utils.logger import get_logger, set_log_level, setup_file_logging

logger = get_logger(__name__)

MAINNET_COMMANDS = (
    "dump",
    "dump-from-tx",
    "dump-for-tx",
    "dump-tx",
    "dump-block",
    "parse-tx",
    "parse-block",
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(prog="soltnet", description="Solana testnet tool.")
    parser.add_argument("--config", type=str, help="Path to a YAML configuration file")
    commands = parser.add_subparsers(dest="command", required=True)

    exec_tx = commands.add_parser("exec-tx", help="Execute a transaction described in JSON")
    exec_tx.add_argument("tx_json")
    exec_tx.add_argument("params", nargs="*")

    balance = commands.add_parser("balance", help="Retrieve SOL balance for an account")
    balance.add_argument("pubkey")

    airdrop = commands.add_parser("airdrop", help="Request an airdrop of SOL")
    airdrop.add_argument("pubkey")
    airdrop.add_argument("amount_sol", nargs="?", default="1")

    send = commands.add_parser("send-sol", help="Transfer SOL between two accounts")
    send.add_argument("from_pubkey")
    send.add_argument("to_pubkey")
    send.add_argument("amount_lamports")
    send.add_argument("signer_keypair")

    for name, help_text in (
        ("create-ata", "Create an associated token account"),
        ("close-ata", "Close an associated token account"),
    ):
        ata = commands.add_parser(name, help=help_text)
        ata.add_argument("owner")
        ata.add_argument("mint")
        ata.add_argument("signer_keypair")

    token_balance = commands.add_parser(
        "token-balance", help="Retrieve SPL token balance for an account"
    )
    token_balance.add_argument("owner")
    token_balance.add_argument("mint")

    dump = commands.add_parser("dump", help="Dump account or program data from mainnet")
    dump.add_argument("pubkey")
    dump.add_argument("output_path", nargs="?")

    dump_from_tx = commands.add_parser(
        "dump-from-tx", help="Dump every account a mainnet transaction touched"
    )
    dump_from_tx.add_argument("signature")
    dump_from_tx.add_argument("output_path", nargs="?")

    dump_for_tx = commands.add_parser(
        "dump-for-tx", help="Dump all accounts required by a transaction template"
    )
    dump_for_tx.add_argument("tx_json")
    dump_for_tx.add_argument("output_path")
    dump_for_tx.add_argument("params", nargs="*")

    dump_tx = commands.add_parser("dump-tx", help="Store a raw mainnet transaction as JSON")
    dump_tx.add_argument("signature")
    dump_tx.add_argument("output_path", nargs="?")

    dump_block = commands.add_parser("dump-block", help="Store a raw mainnet block as JSON")
    dump_block.add_argument("slot")
    dump_block.add_argument("output_path", nargs="?")

    parse_tx = commands.add_parser(
        "parse-tx", help="Fetch a mainnet transaction and store it as a template"
    )
    parse_tx.add_argument("signature")
    parse_tx.add_argument("output_path", nargs="?")

    parse_block_cmd = commands.add_parser(
        "parse-block", help="Summarize the transactions of a mainnet block"
    )
    parse_block_cmd.add_argument("slot")
    parse_block_cmd.add_argument("output_path", nargs="?")

    data_format = commands.add_parser(
        "set-data-format", help="Apply a data format to an instruction inside a template"
    )
    data_format.add_argument("tx_json")
    data_format.add_argument("format_json")
    data_format.add_argument("program_id")

    return parser.parse_args(argv)


async def run_command(args: argparse.Namespace, config: dict) -> None:
    """Dispatch a parsed command."""
    if args.command == "set-data-format":
        set_data_format(args.tx_json, args.format_json, args.program_id)
        return

    output_path = getattr(args, "output_path", None) or config["output_path"]
    reads_mainnet = args.command in MAINNET_COMMANDS
    endpoint = config["mainnet_rpc_endpoint"] if reads_mainnet else config["rpc_endpoint"]

    async with SolanaClient(endpoint, config["commitment"], config["max_retries"]) as client:
        if args.command == "exec-tx":
            parsed = load_parsed_tx_from_json(args.tx_json, args.params)
            await execute_json_transaction(client, parsed)
        elif args.command == "balance":
            await get_balance(client, args.pubkey)
        elif args.command == "airdrop":
            await airdrop_sol(client, args.pubkey, parse_sol_to_lamports(args.amount_sol))
        elif args.command == "send-sol":
            lamports = int(args.amount_lamports.replace("_", ""))
            await send_sol(client, args.from_pubkey, args.to_pubkey, lamports, args.signer_keypair)
        elif args.command == "create-ata":
            await create_ata(client, args.owner, args.mint, args.signer_keypair)
        elif args.command == "close-ata":
            await close_ata(client, args.owner, args.mint, args.signer_keypair)
        elif args.command == "token-balance":
            await get_token_balance(client, args.owner, args.mint)
        elif args.command == "dump":
            await dump_account(client, args.pubkey, output_path)
        elif args.command == "dump-from-tx":
            await dump_accounts_from_tx(client, args.signature, output_path)
        elif args.command == "dump-for-tx":
            await dump_accounts_for_tx(client, args.tx_json, output_path, args.params)
        elif args.command == "dump-tx":
            await dump_raw_transaction(client, args.signature, output_path)
        elif args.command == "dump-block":
            await dump_raw_block(client, args.slot, output_path)
        elif args.command == "parse-tx":
            await create_json_from_tx(client, args.signature, output_path)
        elif args.command == "parse-block":
            await parse_block(client, args.slot, output_path)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the CLI."""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        logger.error(f"Invalid configuration: {e!s}")
        sys.exit(1)

    set_log_level(get_log_level(config))
    if config["log_file"]:
        setup_file_logging(config["log_file"], get_log_level(config))

    try:
        asyncio.run(run_command(args, config))
    except (ValueError, OSError, RPCException, SolanaRpcException) as e:
        logger.error(f"{args.command} failed: {e!s}")
        sys.exit(1)


if __name__ == "__main__":
    main()
