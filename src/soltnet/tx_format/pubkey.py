"""
Address descriptor resolution.

A descriptor is one of:
    - a base58 address string,
    - a "$N" parameter placeholder,
    - a well-known program tag ("system_program", "token_program",
      "associated_token_program", "compute_budget_program"), either as a
      plain string or as ``{"type": <tag>}``,
    - ``{"type": "ata", "owner": <descriptor>, "mint": <descriptor>}``.
"""

from collections.abc import Sequence
from typing import Any

from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from soltnet.core.errors import InvalidAddress, MissingField, UnsupportedDescriptor
from soltnet.core.pubkeys import SystemAddresses
from soltnet.tx_format.params import resolve_value

_WELL_KNOWN = SystemAddresses.get_all_system_addresses()


def derive_ata(owner: Pubkey, mint: Pubkey) -> Pubkey:
    """Derive the associated token account for ``owner`` and ``mint``.

    Seeds are ``[owner, token_program, mint]`` under the associated token program.
    """
    return get_associated_token_address(owner, mint)


def parse_address(value: str) -> Pubkey:
    """Parse a base58 address string."""
    try:
        return Pubkey.from_string(value)
    except ValueError as e:
        raise InvalidAddress(f"Invalid pubkey {value!r}: {e!s}") from e


def resolve_address(descriptor: Any, params: Sequence[str] = ()) -> Pubkey:
    """Resolve an address descriptor to a concrete Pubkey.

    Args:
        descriptor: Address descriptor taken from a template
        params: Parameters for "$N" placeholders

    Returns:
        Resolved Pubkey

    Raises:
        InvalidAddress: If the descriptor does not name a valid address
        UnsupportedDescriptor: If an object descriptor has an unknown type
        MissingField: If an ata descriptor lacks owner or mint
    """
    if isinstance(descriptor, Pubkey):
        return descriptor

    if isinstance(descriptor, dict):
        kind = descriptor.get("type")
        if kind == "ata":
            for key in ("owner", "mint"):
                if key not in descriptor:
                    raise MissingField(f"Missing {key} for ata")
            owner = resolve_address(descriptor["owner"], params)
            mint = resolve_address(descriptor["mint"], params)
            return derive_ata(owner, mint)
        if kind in _WELL_KNOWN:
            return _WELL_KNOWN[kind]
        raise UnsupportedDescriptor(f"Unsupported pubkey type: {kind}")

    if isinstance(descriptor, str):
        resolved = resolve_value(descriptor, params)
        if resolved in _WELL_KNOWN:
            return _WELL_KNOWN[resolved]
        return parse_address(resolved)

    raise InvalidAddress(f"Unsupported pubkey value: {descriptor!r}")
