"""
Decompile confirmed transactions back into JSON templates.

The input is a transaction as returned by ``getTransaction`` with the
``jsonParsed`` or ``json`` encoding. The output is a template that
``json_tx.parse_tx_from_json`` accepts: signer addresses become "$N"
placeholders, associated token accounts become ``{"type": "ata", ...}``
descriptors and opaque instruction data becomes a "0x" hex string.
"""

import base64
import binascii
from dataclasses import dataclass
from typing import Any

import base58

from soltnet.core.errors import InvalidAddress
from soltnet.core.pubkeys import ASSOCIATED_TOKEN_PROGRAM, SYSTEM_PROGRAM
from soltnet.tx_format.data_format import encode_u64
from soltnet.tx_format.params import placeholder
from soltnet.tx_format.pubkey import derive_ata, parse_address
from soltnet.tx_format.templates import SYSTEM_TRANSFER, ata_descriptor
from soltnet.utils.logger import get_logger

logger = get_logger(__name__)

ATA_ACCOUNT_KEYS = ("wallet", "account", "source", "mint", "systemProgram", "tokenProgram")

# Associated token program instruction data by parsed instruction type
ATA_INSTRUCTION_DATA = {
    "create": 0,
    "createIdempotent": {"type": "u8", "data": 1},
}


@dataclass
class AccountInfo:
    """Transaction account with its signer and writable flags."""

    pubkey: str
    signer: bool
    writable: bool


def accounts_from_parsed(message: dict[str, Any]) -> list[AccountInfo]:
    return [
        AccountInfo(
            pubkey=str(key["pubkey"]),
            signer=bool(key.get("signer", False)),
            writable=bool(key.get("writable", False)),
        )
        for key in message.get("accountKeys", [])
    ]


def accounts_from_raw(
    message: dict[str, Any], loaded_addresses: dict[str, Any] | None = None
) -> list[AccountInfo]:
    """Derive account flags from a raw message header.

    The first ``numRequiredSignatures`` keys sign; the last
    ``numReadonlySignedAccounts`` signers and the last
    ``numReadonlyUnsignedAccounts`` non-signers are read-only. Addresses loaded
    from lookup tables follow the static keys, writable ones first.
    """
    header = message.get("header", {})
    num_signers = header.get("numRequiredSignatures", 0)
    num_readonly_signed = header.get("numReadonlySignedAccounts", 0)
    num_readonly_unsigned = header.get("numReadonlyUnsignedAccounts", 0)
    keys = message.get("accountKeys", [])

    out = []
    for idx, key in enumerate(keys):
        is_signer = idx < num_signers
        if is_signer:
            is_writable = idx < num_signers - num_readonly_signed
        else:
            is_writable = idx < len(keys) - num_readonly_unsigned
        out.append(AccountInfo(pubkey=str(key), signer=is_signer, writable=is_writable))

    if loaded_addresses:
        for key in loaded_addresses.get("writable", []):
            out.append(AccountInfo(pubkey=str(key), signer=False, writable=True))
        for key in loaded_addresses.get("readonly", []):
            out.append(AccountInfo(pubkey=str(key), signer=False, writable=False))
    return out


def find_ata_accounts(accounts: list[str]) -> dict[str, dict[str, Any]]:
    """Find accounts that are the associated token account of two other accounts.

    Every ordered (owner, mint) pair drawn from ``accounts`` is tried.

    Returns:
        Mapping of associated token account address to its ata descriptor
    """
    logger.info("Finding ATA accounts...")
    keys = {}
    for account in accounts:
        try:
            keys[account] = parse_address(account)
        except InvalidAddress:
            continue

    account_set = set(accounts)
    ata_accounts: dict[str, dict[str, Any]] = {}
    for owner, owner_key in keys.items():
        for mint, mint_key in keys.items():
            ata = str(derive_ata(owner_key, mint_key))
            if ata in account_set and ata not in ata_accounts:
                logger.info(f"Found ATA: {ata} for owner: {owner} and mint: {mint}")
                ata_accounts[ata] = ata_descriptor(owner, mint)
    return ata_accounts


def _is_address(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        parse_address(value)
    except InvalidAddress:
        return False
    return True


def _address_values(info: Any) -> list[str]:
    """Return the values of a parsed info object that are addresses."""
    if not isinstance(info, dict):
        return []
    return [value for value in info.values() if _is_address(value)]


def parse_native_program(program_id: str, parsed: Any) -> tuple[list[str], Any]:
    """Extract accounts and, where known, typed data from a parsed instruction.

    Args:
        program_id: Base58 program id of the instruction
        parsed: The ``parsed`` field the RPC node produced

    Returns:
        (accounts, data) where data is None if the instruction was not recognized
    """
    if not isinstance(parsed, dict):
        return [], None

    parsed_type = parsed.get("type")
    info = parsed.get("info")

    if program_id == str(SYSTEM_PROGRAM):
        if parsed_type == "transfer" and isinstance(info, dict):
            lamports = info.get("lamports")
            if isinstance(lamports, int):
                lamports = encode_u64(lamports)
            return (
                [str(info.get("source", "")), str(info.get("destination", ""))],
                {
                    "type": "object",
                    "data": [
                        {"type": "u32", "data": SYSTEM_TRANSFER},
                        {"type": "u64", "data": lamports},
                    ],
                },
            )
        return _address_values(info), None

    if program_id == str(ASSOCIATED_TOKEN_PROGRAM):
        accounts = []
        if isinstance(info, dict):
            accounts = [
                info[key] for key in ATA_ACCOUNT_KEYS if isinstance(info.get(key), str)
            ]
        return accounts, ATA_INSTRUCTION_DATA.get(parsed_type)

    data = info if isinstance(info, (str, int, float)) and not isinstance(info, bool) else None
    return _address_values(info), data


def decode_instruction_data(data: str) -> str:
    """Re-encode base58 (or base64) instruction data as a "0x" hex string.

    Empty data and strings that decode as neither are returned unchanged.
    """
    if not data:
        return data
    try:
        raw = base58.b58decode(data)
    except ValueError:
        try:
            raw = base64.b64decode(data, validate=True)
        except binascii.Error:
            return data
    if not raw:
        return data
    return "0x" + raw.hex()


class TransactionDecompiler:
    """Turns one decoded transaction into a template."""

    def __init__(self, account_infos: list[AccountInfo]):
        self.account_infos = account_infos

        self.signers: list[str] = []
        for acc in account_infos:
            if acc.signer and acc.pubkey not in self.signers:
                self.signers.append(acc.pubkey)
        self.writable = {acc.pubkey for acc in account_infos if acc.writable}

        logger.info(f"Signers accounts: {', '.join(self.signers)}")
        self.ata_accounts = find_ata_accounts([acc.pubkey for acc in account_infos])

    def _account_at(self, index: Any) -> str | None:
        if isinstance(index, int) and 0 <= index < len(self.account_infos):
            return self.account_infos[index].pubkey
        return None

    def _signer_placeholder(self, pubkey: Any) -> Any:
        if isinstance(pubkey, str) and pubkey in self.signers:
            return placeholder(self.signers.index(pubkey))
        return pubkey

    def _account_entry(self, account: str) -> dict[str, Any]:
        ata = self.ata_accounts.get(account)
        if ata is not None:
            pubkey: Any = {**ata, "owner": self._signer_placeholder(ata["owner"])}
        else:
            pubkey = self._signer_placeholder(account)

        return {
            "pubkey": pubkey,
            "is_signer": account in self.signers,
            "is_writable": account in self.writable,
        }

    def _split_instruction(self, ix: dict[str, Any]) -> tuple[str, list[str], Any]:
        if "programIdIndex" in ix:
            program_id = self._account_at(ix["programIdIndex"]) or ""
            accounts = [
                pubkey
                for pubkey in (self._account_at(index) for index in ix.get("accounts", []))
                if pubkey is not None
            ]
            return program_id, accounts, ix.get("data", "")

        program_id = str(ix.get("programId", ""))
        if "parsed" in ix:
            parsed = ix["parsed"]
            accounts, data = parse_native_program(program_id, parsed)
            if data is None:
                data = parsed.get("info", parsed) if isinstance(parsed, dict) else parsed
            return program_id, accounts, data

        return program_id, [str(acc) for acc in ix.get("accounts", [])], ix.get("data", "")

    def decompile_instruction(self, ix: dict[str, Any]) -> dict[str, Any]:
        program_id, accounts, data = self._split_instruction(ix)
        logger.debug(f"Parsing instruction for program {program_id}...")

        if isinstance(data, str):
            data = decode_instruction_data(data)

        return {
            "program_id": program_id,
            "data": data,
            "accounts": [self._account_entry(account) for account in accounts],
        }

    def signer_params(self) -> list[str]:
        """Placeholders for the signer keypairs, numbered after the addresses."""
        count = len(self.signers)
        return [placeholder(count + index) for index in range(count)]


def _get_message(raw_tx: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    transaction = raw_tx.get("transaction")
    if not isinstance(transaction, dict) or not isinstance(transaction.get("message"), dict):
        raise ValueError("Transaction encoding is not JSON")
    return transaction["message"], raw_tx.get("meta") or {}


def parse_tx_to_json(raw_tx: dict[str, Any]) -> dict[str, Any]:
    """Build a transaction template from a confirmed transaction.

    Args:
        raw_tx: ``getTransaction`` result in ``jsonParsed`` or ``json`` encoding

    Returns:
        Template with ``instructions`` and ``signers`` keys

    Raises:
        ValueError: If the transaction is not JSON encoded
    """
    message, meta = _get_message(raw_tx)
    account_keys = message.get("accountKeys", [])

    if account_keys and isinstance(account_keys[0], dict):
        account_infos = accounts_from_parsed(message)
    else:
        account_infos = accounts_from_raw(message, meta.get("loadedAddresses"))

    decompiler = TransactionDecompiler(account_infos)
    instructions = [decompiler.decompile_instruction(ix) for ix in message.get("instructions", [])]

    return {
        "instructions": instructions,
        "signers": decompiler.signer_params(),
    }
