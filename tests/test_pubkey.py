import pytest
from solders.pubkey import Pubkey

from soltnet.core.errors import InvalidAddress, MissingField, UnsupportedDescriptor
from soltnet.core.pubkeys import (
    ASSOCIATED_TOKEN_PROGRAM,
    COMPUTE_BUDGET_PROGRAM,
    SYSTEM_PROGRAM,
    TOKEN_PROGRAM,
)
from soltnet.tx_format.pubkey import derive_ata, resolve_address


def expected_ata(owner: Pubkey, mint: Pubkey) -> Pubkey:
    address, _ = Pubkey.find_program_address(
        [bytes(owner), bytes(TOKEN_PROGRAM), bytes(mint)], ASSOCIATED_TOKEN_PROGRAM
    )
    return address


def test_literal_address():
    key = Pubkey.new_unique()
    assert resolve_address(str(key)) == key


def test_param_reference():
    assert resolve_address("$1", [str(SYSTEM_PROGRAM)]) == SYSTEM_PROGRAM


@pytest.mark.parametrize(
    "tag,expected",
    [
        ("system_program", SYSTEM_PROGRAM),
        ("token_program", TOKEN_PROGRAM),
        ("associated_token_program", ASSOCIATED_TOKEN_PROGRAM),
        ("compute_budget_program", COMPUTE_BUDGET_PROGRAM),
    ],
)
def test_well_known_tags(tag, expected):
    assert resolve_address(tag) == expected
    assert resolve_address({"type": tag}) == expected


def test_ata_matches_program_derived_address(mint):
    owner = Pubkey.new_unique()
    descriptor = {"type": "ata", "owner": str(owner), "mint": str(mint)}

    derived = resolve_address(descriptor)

    assert derived == expected_ata(owner, mint)
    assert derived == resolve_address(descriptor)
    assert derived == derive_ata(owner, mint)


def test_ata_resolves_nested_params(mint):
    owner = Pubkey.new_unique()
    descriptor = {"type": "ata", "owner": "$1", "mint": "$2"}
    assert resolve_address(descriptor, [str(owner), str(mint)]) == expected_ata(owner, mint)


def test_invalid_literal():
    with pytest.raises(InvalidAddress):
        resolve_address("not-a-pubkey")


def test_unresolved_param_is_invalid():
    with pytest.raises(InvalidAddress):
        resolve_address("$3", ["abc"])


def test_ata_with_invalid_owner(mint):
    with pytest.raises(InvalidAddress):
        resolve_address({"type": "ata", "owner": "bogus", "mint": str(mint)})


def test_ata_missing_mint():
    with pytest.raises(MissingField):
        resolve_address({"type": "ata", "owner": str(Pubkey.new_unique())})


def test_unknown_descriptor_type():
    with pytest.raises(UnsupportedDescriptor):
        resolve_address({"type": "pda", "seeds": []})


def test_non_string_value():
    with pytest.raises(InvalidAddress):
        resolve_address(42)
