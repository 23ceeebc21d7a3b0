"""
Human readable amounts: digit grouping and SOL to lamport conversion.
"""

from soltnet.core.pubkeys import LAMPORTS_PER_SOL

SOL_DECIMALS = 9


def _group_digits(digits: str) -> str:
    parts = []
    end = len(digits)
    while end > 0:
        start = max(end - 3, 0)
        parts.append(digits[start:end])
        end = start
    return "_".join(reversed(parts))


def format_amount(value) -> str:
    """Group digits by three with underscores, e.g. 1234567 -> "1_234_567".

    Integer and fractional parts are grouped separately.
    """
    text = str(value).strip()
    if not text:
        return ""

    sign = ""
    if text.startswith("-"):
        sign, text = "-", text[1:]

    text = text.replace("_", "")
    if "." in text:
        integer_part, fractional_part = text.split(".", 1)
        return f"{sign}{_group_digits(integer_part)}.{_group_digits(fractional_part)}"
    return f"{sign}{_group_digits(text)}"


def parse_sol_to_lamports(amount: str) -> int:
    """Convert a decimal SOL amount such as "1.5" or "2_000" to lamports.

    Raises:
        ValueError: If the amount is empty, negative, malformed or has more
            than 9 decimal places
    """
    cleaned = amount.strip().replace("_", "")
    if not cleaned:
        raise ValueError("Invalid amount: empty string")
    if cleaned.startswith("-"):
        raise ValueError("Amount must be non-negative")

    parts = cleaned.split(".")
    if len(parts) > 2:
        raise ValueError("Invalid amount: too many decimal points")

    whole_str = parts[0]
    frac_str = parts[1] if len(parts) == 2 else ""
    for part in (whole_str, frac_str):
        if part and not part.isdigit():
            raise ValueError(f"Invalid amount: {amount}")
    if len(frac_str) > SOL_DECIMALS:
        raise ValueError(f"Invalid amount: max {SOL_DECIMALS} decimal places")

    whole = int(whole_str) if whole_str else 0
    frac = int(frac_str.ljust(SOL_DECIMALS, "0")) if frac_str else 0
    return whole * LAMPORTS_PER_SOL + frac
