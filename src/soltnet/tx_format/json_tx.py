"""
Compile transaction templates into solders instructions and signers.
"""

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from soltnet.core.wallet import load_keypair
from soltnet.tx_format.data_format import pack_data
from soltnet.tx_format.params import resolve_value
from soltnet.tx_format.pubkey import resolve_address
from soltnet.tx_format.templates import RawInstruction, RawTransaction, expand_shorthand


@dataclass
class ParsedTransaction:
    """Network-ready content of a transaction template."""

    instructions: list[Instruction]
    signers: list[Keypair] = field(default_factory=list)
    lookup_tables: list[Pubkey] = field(default_factory=list)


def parse_keypair(value: Any, params: Sequence[str] = ()) -> Keypair:
    """Resolve a signer descriptor and load its keypair."""
    return load_keypair(resolve_value(value, params))


def parse_ix_from_json(ix: RawInstruction, params: Sequence[str] = ()) -> Instruction:
    """Build an Instruction from a template, expanding shorthands first.

    Raises:
        TxFormatError: If an address or data value cannot be resolved
    """
    expanded = expand_shorthand(ix)
    if expanded is not None:
        return parse_ix_from_json(expanded, params)

    program_id = resolve_address(ix.program_id, params)
    accounts = [
        AccountMeta(
            pubkey=resolve_address(acc.pubkey, params),
            is_signer=acc.is_signer,
            is_writable=acc.is_writable,
        )
        for acc in ix.accounts
    ]
    return Instruction(program_id, pack_data(ix.data, params), accounts)


def parse_tx_from_json(tx: RawTransaction, params: Sequence[str] = ()) -> ParsedTransaction:
    """Resolve every instruction, signer and lookup table of a template."""
    instructions = [parse_ix_from_json(ix, params) for ix in tx.instructions]
    signers = [parse_keypair(signer, params) for signer in tx.signers]
    lookup_tables = [resolve_address(table, params) for table in tx.lookup_tables or []]
    return ParsedTransaction(
        instructions=instructions,
        signers=signers,
        lookup_tables=lookup_tables,
    )


def load_raw_tx_from_json(path: str) -> RawTransaction:
    """Read a transaction template file."""
    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e!s}") from e
    return RawTransaction.from_dict(data)


def save_raw_tx_to_json(tx: RawTransaction, path: str) -> None:
    with open(path, "w") as f:
        json.dump(tx.to_dict(), f, indent=2)


def load_parsed_tx_from_json(path: str, params: Sequence[str] = ()) -> ParsedTransaction:
    return parse_tx_from_json(load_raw_tx_from_json(path), params)
