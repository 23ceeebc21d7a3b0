"""
Keypair loading for transaction signers.
"""

import json
import os
from typing import Any

import base58
from solders.keypair import Keypair

KEYPAIR_LENGTH = 64


def load_keypair(source: Any) -> Keypair:
    """Load a keypair from a file path, a JSON byte array or a base58 secret.

    Args:
        source: Path to a JSON keypair file (as written by solana-keygen),
            a list of 64 byte values, or a base58 encoded secret key

    Returns:
        Solana keypair

    Raises:
        ValueError: If the source cannot be turned into a keypair
    """
    if isinstance(source, list):
        return _keypair_from_bytes(source)

    if not isinstance(source, str):
        raise ValueError(f"Unsupported keypair value: {source!r}")

    if os.path.exists(source):
        with open(source) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid keypair JSON in {source}") from e
        if not isinstance(data, list):
            raise ValueError(f"Invalid keypair JSON in {source}")
        return _keypair_from_bytes(data)

    try:
        secret = base58.b58decode(source)
    except ValueError as e:
        raise ValueError(f"Keypair file not found and not a base58 secret: {source}") from e
    return _keypair_from_bytes(list(secret))


def _keypair_from_bytes(values: list[Any]) -> Keypair:
    if not all(isinstance(v, int) and not isinstance(v, bool) and 0 <= v <= 255 for v in values):
        raise ValueError("Invalid keypair array")
    if len(values) != KEYPAIR_LENGTH:
        raise ValueError(f"Invalid keypair: expected {KEYPAIR_LENGTH} bytes, got {len(values)}")
    try:
        return Keypair.from_bytes(bytes(values))
    except ValueError as e:
        raise ValueError(f"Invalid keypair: {e!s}") from e
