import json

import pytest
from solders.pubkey import Pubkey

from soltnet.tools.data_format import set_data_format


@pytest.fixture
def program_id():
    return str(Pubkey.new_unique())


@pytest.fixture
def template_path(tmp_path, program_id):
    path = tmp_path / "tx.json"
    path.write_text(
        json.dumps(
            {
                "instructions": [
                    {"program_id": str(Pubkey.new_unique()), "data": "0x00", "accounts": []},
                    {"program_id": program_id, "data": "0x01f401", "accounts": []},
                ],
                "signers": ["$1"],
            }
        )
    )
    return path


def test_set_data_format(tmp_path, template_path, program_id):
    format_path = tmp_path / "format.json"
    format_path.write_text(
        json.dumps(
            {
                "type": "object",
                "name": "deposit",
                "data": [{"type": "u8", "name": "tag"}, {"type": "u16", "name": "amount"}],
            }
        )
    )

    set_data_format(str(template_path), str(format_path), program_id)

    tx = json.loads(template_path.read_text())
    assert tx["instructions"][0]["data"] == "0x00"
    assert tx["instructions"][1]["data"] == {
        "type": "object",
        "name": "deposit",
        "data": [
            {"type": "u8", "name": "tag", "data": 1},
            {"type": "u16", "name": "amount", "data": 500},
        ],
    }
    assert tx["signers"] == ["$1"]


def test_set_data_format_unknown_program(tmp_path, template_path):
    format_path = tmp_path / "format.json"
    format_path.write_text(json.dumps({"type": "u8"}))

    with pytest.raises(ValueError):
        set_data_format(str(template_path), str(format_path), str(Pubkey.new_unique()))
