"""
Dump accounts, programs and raw transactions to disk.
"""

import base64
import json
import os
from typing import Any

from construct import Bytes, Int32ul, Struct
from solders.pubkey import Pubkey

from soltnet.core.client import SolanaClient
from soltnet.core.pubkeys import UPGRADEABLE_LOADER_PROGRAM
from soltnet.tx_format.json_tx import load_parsed_tx_from_json
from soltnet.tx_format.pubkey import parse_address
from soltnet.utils.logger import get_logger

logger = get_logger(__name__)

ELF_MAGIC = b"\x7fELF"

# UpgradeableLoaderState::Program
PROGRAM_STATE_TAG = 2
UPGRADEABLE_PROGRAM_LAYOUT = Struct(
    "tag" / Int32ul,
    "programdata_address" / Bytes(32),
)


def extract_elf_bytes(data: bytes) -> bytes | None:
    offset = data.find(ELF_MAGIC)
    if offset < 0:
        return None
    return data[offset:]


def get_program_data_address(data: bytes) -> Pubkey | None:
    """Return the program-data account of an upgradeable program account."""
    if len(data) < UPGRADEABLE_PROGRAM_LAYOUT.sizeof():
        return None
    parsed = UPGRADEABLE_PROGRAM_LAYOUT.parse(data)
    if parsed.tag != PROGRAM_STATE_TAG:
        return None
    return Pubkey.from_bytes(parsed.programdata_address)


def serialize_account_info(pubkey: Pubkey, account) -> dict[str, Any]:
    data = bytes(account.data)
    return {
        "pubkey": str(pubkey),
        "account": {
            "lamports": account.lamports,
            "data": [base64.b64encode(data).decode("ascii"), "base64"],
            "owner": str(account.owner),
            "executable": account.executable,
            "rentEpoch": account.rent_epoch,
            "space": len(data),
        },
    }


async def dump_account(client: SolanaClient, address: str, to_path: str) -> str:
    """Write an account as JSON, or a program as its ELF binary.

    Returns:
        Path of the written file
    """
    os.makedirs(to_path, exist_ok=True)
    pubkey = parse_address(address)
    account = await client.get_account_info(pubkey)

    if not account.executable:
        logger.info(f"Dumping account {address}...")
        out_path = os.path.join(to_path, f"{address}.json")
        with open(out_path, "w") as f:
            json.dump(serialize_account_info(pubkey, account), f, indent=2)
        logger.info(f"Account dumped to {out_path}")
        return out_path

    logger.info(f"Dumping program {address}...")
    program_data = bytes(account.data)
    if account.owner == UPGRADEABLE_LOADER_PROGRAM:
        program_data_address = get_program_data_address(program_data)
        if program_data_address is not None:
            try:
                program_data_info = await client.get_account_info(program_data_address)
                program_data = bytes(program_data_info.data)
            except ValueError as e:
                logger.warning(f"Program data account unavailable: {e!s}")

    elf_bytes = extract_elf_bytes(program_data)
    if elf_bytes is None:
        raise ValueError(f"Program data not found or not ELF for: {address}")

    out_path = os.path.join(to_path, f"{address}.so")
    with open(out_path, "wb") as f:
        f.write(elf_bytes)
    logger.info(f"Program dumped to {out_path}")
    return out_path


async def dump_accounts(client: SolanaClient, addresses: set[str], to_path: str) -> None:
    for address in sorted(addresses):
        try:
            await dump_account(client, address, to_path)
        except ValueError as e:
            logger.error(f"Failed to dump account {address}: {e!s}")


def parse_slot(slot: str | int) -> int:
    try:
        value = int(slot)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid slot: {slot}") from e
    if value < 0:
        raise ValueError(f"Invalid slot: {slot}")
    return value


def _add_account(accounts: set[str], account: Any) -> None:
    if isinstance(account, str) and account:
        accounts.add(account)


def collect_tx_accounts(tx: dict[str, Any]) -> set[str]:
    """Collect every address a confirmed transaction touched.

    Static account keys, addresses loaded from lookup tables and the mints and
    owners of pre/post token balances are included.

    Raises:
        ValueError: If the transaction is not JSON encoded
    """
    transaction = tx.get("transaction")
    if not isinstance(transaction, dict) or not isinstance(transaction.get("message"), dict):
        raise ValueError("Transaction encoding is not JSON")

    accounts: set[str] = set()
    for key in transaction["message"].get("accountKeys", []):
        _add_account(accounts, key.get("pubkey") if isinstance(key, dict) else key)

    meta = tx.get("meta") or {}
    loaded = meta.get("loadedAddresses") or {}
    for key in [*loaded.get("writable", []), *loaded.get("readonly", [])]:
        _add_account(accounts, key)

    token_balances = (meta.get("preTokenBalances") or []) + (meta.get("postTokenBalances") or [])
    for balance in token_balances:
        _add_account(accounts, balance.get("mint"))
        _add_account(accounts, balance.get("owner"))
    return accounts


async def dump_accounts_from_tx(client: SolanaClient, signature: str, to_path: str) -> set[str]:
    """Dump every account of a mainnet transaction.

    Returns:
        The addresses that were attempted
    """
    tx = await client.get_transaction(signature)
    accounts = collect_tx_accounts(tx)
    logger.info(f"Dumping {len(accounts)} accounts of transaction {signature}...")
    await dump_accounts(client, accounts, to_path)
    return accounts


async def dump_accounts_for_tx(
    client: SolanaClient, path: str, to_path: str, params: list[str]
) -> None:
    """Dump every account a resolved transaction template references."""
    tx = load_parsed_tx_from_json(path, params)
    addresses = {
        str(account.pubkey) for instruction in tx.instructions for account in instruction.accounts
    }
    await dump_accounts(client, addresses, to_path)


async def dump_raw_transaction(client: SolanaClient, signature: str, to_path: str) -> str:
    tx = await client.get_transaction(signature)
    os.makedirs(to_path, exist_ok=True)
    out_path = os.path.join(to_path, f"{signature}.json")
    with open(out_path, "w") as f:
        json.dump(tx, f, indent=2)
    logger.info(f"Raw transaction dumped to {out_path}")
    return out_path


async def dump_raw_block(client: SolanaClient, slot: str | int, to_path: str) -> str:
    slot_num = parse_slot(slot)
    block = await client.get_block(slot_num)
    os.makedirs(to_path, exist_ok=True)
    out_path = os.path.join(to_path, f"{slot_num}.json")
    with open(out_path, "w") as f:
        json.dump(block, f, indent=2)
    logger.info(f"Raw block dumped to {out_path}")
    return out_path
