"""
Fetch confirmed transactions and blocks, store them as templates or reports.
"""

import json
import os
from typing import Any

from soltnet.core.client import SolanaClient
from soltnet.tools.dump import parse_slot
from soltnet.tx_format.parse_tx import (
    AccountInfo,
    accounts_from_parsed,
    accounts_from_raw,
    decode_instruction_data,
    parse_native_program,
    parse_tx_to_json,
)
from soltnet.utils.logger import get_logger

logger = get_logger(__name__)


def _write_json(payload: Any, to_path: str, name: str) -> str:
    os.makedirs(to_path, exist_ok=True)
    out_path = os.path.join(to_path, f"{name}.json")
    with open(out_path, "w") as f:
        json.dump(payload, f, indent=2)
    return out_path


async def create_json_from_tx(client: SolanaClient, signature: str, to_path: str) -> str:
    """Decompile a transaction into ``<to_path>/<signature>.json``.

    Returns:
        Path of the written template
    """
    tx = await client.get_transaction(signature)

    logger.info(f"Parsing transaction {signature}...")
    template = parse_tx_to_json(tx)

    out_path = _write_json(template, to_path, signature)
    logger.info(f"Transaction dumped to {out_path}")
    return out_path


def find_account_name(pubkey: str, info: Any) -> str | None:
    """Return the key under which a parsed instruction names ``pubkey``."""
    if not isinstance(info, dict):
        return None
    for key, value in info.items():
        if value == pubkey:
            return key
        if isinstance(value, list) and pubkey in value:
            return key
        if isinstance(value, dict) and pubkey in (
            value.get("pubkey"),
            value.get("wallet"),
            value.get("owner"),
        ):
            return key
    return None


def summarize_instruction(
    ix: dict[str, Any], account_infos: list[AccountInfo]
) -> dict[str, Any]:
    """Describe one instruction of a block transaction.

    Parsed instructions go through the native program rules; everything else
    keeps its accounts and gets its data re-encoded as hex.
    """
    flags = {acc.pubkey: acc for acc in account_infos}

    if "programIdIndex" in ix:
        index = ix["programIdIndex"]
        program_id = account_infos[index].pubkey if 0 <= index < len(account_infos) else ""
        accounts = [
            account_infos[i].pubkey for i in ix.get("accounts", []) if 0 <= i < len(account_infos)
        ]
    else:
        program_id = str(ix.get("programId", ""))
        accounts = [str(acc) for acc in ix.get("accounts", [])]

    data = ix.get("data")
    info = None
    if "parsed" in ix:
        parsed = ix["parsed"]
        accounts, data = parse_native_program(program_id, parsed)
        if isinstance(parsed, dict):
            info = parsed.get("info")
            if data is None:
                data = parsed.get("info", parsed)
        elif data is None:
            data = parsed

    if isinstance(data, str):
        data = decode_instruction_data(data)

    entries = []
    for pubkey in accounts:
        acc = flags.get(pubkey)
        entry: dict[str, Any] = {
            "pubkey": pubkey,
            "isSigner": acc.signer if acc else False,
            "isWritable": acc.writable if acc else False,
        }
        name = find_account_name(pubkey, info)
        if name:
            entry["name"] = name
        entries.append(entry)

    return {"program": program_id, "data": data, "accounts": entries}


def summarize_transaction(tx: dict[str, Any]) -> dict[str, Any] | None:
    """Summarize instructions, logs and lamport changes of one transaction.

    Returns:
        The summary, or None if the transaction is not JSON encoded
    """
    transaction = tx.get("transaction")
    if not isinstance(transaction, dict) or not isinstance(transaction.get("message"), dict):
        return None

    message = transaction["message"]
    meta = tx.get("meta") or {}
    account_keys = message.get("accountKeys", [])
    if account_keys and isinstance(account_keys[0], dict):
        account_infos = accounts_from_parsed(message)
    else:
        account_infos = accounts_from_raw(message, meta.get("loadedAddresses"))

    pre_balances = meta.get("preBalances") or []
    post_balances = meta.get("postBalances") or []
    accounts_meta = []
    for idx, acc in enumerate(account_infos):
        pre = pre_balances[idx] if idx < len(pre_balances) else None
        post = post_balances[idx] if idx < len(post_balances) else None
        accounts_meta.append(
            {
                "pubkey": acc.pubkey,
                "isSigner": acc.signer,
                "isWritable": acc.writable,
                "preBalance": pre,
                "postBalance": post,
                "balanceChange": post - pre if pre is not None and post is not None else 0,
            }
        )

    signatures = transaction.get("signatures") or [""]
    return {
        "signature": signatures[0],
        "ixs": [summarize_instruction(ix, account_infos) for ix in message.get("instructions", [])],
        "meta": {
            "logs": meta.get("logMessages") or [],
            "accounts": accounts_meta,
        },
    }


def build_block_report(block: dict[str, Any], slot: int) -> dict[str, Any]:
    """Summarize every JSON encoded transaction of a block."""
    txs = []
    for tx in block.get("transactions") or []:
        summary = summarize_transaction(tx)
        if summary is None:
            logger.debug("Skipping transaction that is not JSON encoded")
            continue
        txs.append(summary)
    return {"slot": str(slot), "txs": txs}


async def parse_block(client: SolanaClient, slot: str | int, to_path: str) -> str:
    """Write a block report to ``<to_path>/<slot>.json``.

    Returns:
        Path of the written report
    """
    slot_num = parse_slot(slot)
    block = await client.get_block(slot_num)

    logger.info(f"Parsing block {slot_num}...")
    report = build_block_report(block, slot_num)

    out_path = _write_json(report, to_path, str(slot_num))
    logger.info(f"Parsed block saved to {out_path}")
    return out_path
