import json
import struct

import base58
import pytest
from solders.compute_budget import set_compute_unit_limit
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from spl.token.instructions import get_associated_token_address

from soltnet.core.errors import InvalidAddress, MissingField
from soltnet.core.pubkeys import (
    ASSOCIATED_TOKEN_PROGRAM,
    COMPUTE_BUDGET_PROGRAM,
    SYSTEM_PROGRAM,
    TOKEN_PROGRAM,
)
from soltnet.tx_format.json_tx import (
    load_parsed_tx_from_json,
    load_raw_tx_from_json,
    parse_ix_from_json,
    parse_keypair,
    parse_tx_from_json,
    save_raw_tx_to_json,
)
from soltnet.tx_format.templates import RawInstruction, RawTransaction


def test_transfer_shorthand_matches_system_transfer(wallet, destination):
    ix = RawInstruction.from_dict(
        {"program_id": "transfer", "from": "$1", "to": str(destination), "amount": 1000}
    )

    instruction = parse_ix_from_json(ix, [str(wallet.pubkey())])
    expected = transfer(
        TransferParams(from_pubkey=wallet.pubkey(), to_pubkey=destination, lamports=1000)
    )

    assert instruction.program_id == SYSTEM_PROGRAM
    assert bytes(instruction.data) == bytes(expected.data)
    assert [acc.pubkey for acc in instruction.accounts] == [wallet.pubkey(), destination]
    assert instruction.accounts[0].is_signer
    assert not instruction.accounts[1].is_signer
    assert instruction.accounts[1].is_writable


def test_set_cu_limit_shorthand():
    ix = RawInstruction.from_dict({"program_id": "set_cu_limit", "limit": 200_000})

    instruction = parse_ix_from_json(ix)

    assert instruction.program_id == COMPUTE_BUDGET_PROGRAM
    assert bytes(instruction.data) == bytes(set_compute_unit_limit(200_000).data)
    assert instruction.accounts == []


def test_create_ata_shorthand(wallet, mint):
    ix = RawInstruction.from_dict({"program_id": "create_ata", "owner": "$1", "mint": str(mint)})

    instruction = parse_ix_from_json(ix, [str(wallet.pubkey())])
    ata = get_associated_token_address(wallet.pubkey(), mint)

    assert instruction.program_id == ASSOCIATED_TOKEN_PROGRAM
    assert bytes(instruction.data) == b""
    assert [acc.pubkey for acc in instruction.accounts] == [
        wallet.pubkey(),
        ata,
        wallet.pubkey(),
        mint,
        SYSTEM_PROGRAM,
        TOKEN_PROGRAM,
    ]


def test_close_ata_shorthand(wallet, mint):
    ix = RawInstruction.from_dict(
        {"program_id": "close_ata", "owner": str(wallet.pubkey()), "mint": str(mint)}
    )

    instruction = parse_ix_from_json(ix)

    assert instruction.program_id == TOKEN_PROGRAM
    assert bytes(instruction.data) == b"\x09"
    assert instruction.accounts[0].pubkey == get_associated_token_address(wallet.pubkey(), mint)
    assert instruction.accounts[0].is_writable
    assert instruction.accounts[1].is_signer


def test_shorthand_missing_field():
    with pytest.raises(MissingField):
        parse_ix_from_json(RawInstruction.from_dict({"program_id": "set_cu_limit"}))


def test_generic_instruction(wallet):
    program = Pubkey.new_unique()
    ix = RawInstruction.from_dict(
        {
            "program_id": str(program),
            "data": {"type": "object", "data": [{"type": "u8", "data": 3}, {"type": "u64", "data": "$2"}]},
            "accounts": [
                {"pubkey": "$1", "is_signer": True, "is_writable": True},
                {"pubkey": "token_program"},
            ],
        }
    )

    instruction = parse_ix_from_json(ix, [str(wallet.pubkey()), "77"])

    assert instruction.program_id == program
    assert bytes(instruction.data) == struct.pack("<BQ", 3, 77)
    assert instruction.accounts[1].pubkey == TOKEN_PROGRAM
    assert not instruction.accounts[1].is_signer
    assert not instruction.accounts[1].is_writable


def test_invalid_program_id():
    with pytest.raises(InvalidAddress):
        parse_ix_from_json(RawInstruction.from_dict({"program_id": "nope"}))


def test_parse_keypair_sources(tmp_path, wallet):
    secret = list(bytes(wallet))
    key_file = tmp_path / "id.json"
    key_file.write_text(json.dumps(secret))

    assert parse_keypair(secret).pubkey() == wallet.pubkey()
    assert parse_keypair("$1", [str(key_file)]).pubkey() == wallet.pubkey()
    assert parse_keypair(base58.b58encode(bytes(wallet)).decode()).pubkey() == wallet.pubkey()


def test_parse_keypair_rejects_garbage():
    with pytest.raises(ValueError):
        parse_keypair([1, 2, 3])
    with pytest.raises(ValueError):
        parse_keypair(12)


def test_parse_tx_from_json(tmp_path, wallet, destination):
    table = Pubkey.new_unique()
    key_file = tmp_path / "signer.json"
    key_file.write_text(json.dumps(list(bytes(wallet))))
    raw = RawTransaction.from_dict(
        {
            "instructions": [
                {"program_id": "set_cu_limit", "limit": 1000},
                {"program_id": "transfer", "from": "$1", "to": str(destination), "amount": 5},
            ],
            "signers": ["$2"],
            "lookup_tables": [str(table)],
        }
    )

    parsed = parse_tx_from_json(raw, [str(wallet.pubkey()), str(key_file)])

    assert len(parsed.instructions) == 2
    assert [kp.pubkey() for kp in parsed.signers] == [wallet.pubkey()]
    assert parsed.lookup_tables == [table]


def test_template_file_roundtrip_keeps_extra_fields(tmp_path, wallet, destination):
    template = {
        "instructions": [
            {
                "program_id": "transfer",
                "from": "$1",
                "to": str(destination),
                "amount": 10,
                "data": None,
                "accounts": [],
            }
        ],
        "signers": [list(bytes(wallet))],
        "lookup_tables": None,
    }
    path = tmp_path / "tx.json"
    path.write_text(json.dumps(template))

    raw = load_raw_tx_from_json(str(path))
    save_raw_tx_to_json(raw, str(path))

    assert json.loads(path.read_text()) == template
    parsed = load_parsed_tx_from_json(str(path), [str(wallet.pubkey())])
    assert parsed.instructions[0].accounts[0].pubkey == wallet.pubkey()


def test_invalid_template_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{")
    with pytest.raises(ValueError):
        load_raw_tx_from_json(str(path))


def test_template_without_instructions():
    with pytest.raises(MissingField):
        RawTransaction.from_dict({"signers": []})
