"""
JSON transaction templates and the shorthand instruction builders.
"""

from dataclasses import dataclass, field
from typing import Any

from soltnet.core.errors import MissingField
from soltnet.core.pubkeys import (
    ASSOCIATED_TOKEN_PROGRAM,
    COMPUTE_BUDGET_PROGRAM,
    SYSTEM_PROGRAM,
    TOKEN_PROGRAM,
)

# Discriminants of the native instructions the builders emit
COMPUTE_BUDGET_SET_CU_LIMIT = 2
SYSTEM_TRANSFER = 2
TOKEN_CLOSE_ACCOUNT = 9


@dataclass
class RawAccountMeta:
    """Account entry of an instruction template."""

    pubkey: Any
    is_signer: bool = False
    is_writable: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RawAccountMeta":
        if "pubkey" not in data:
            raise MissingField("Missing pubkey in account")
        return cls(
            pubkey=data["pubkey"],
            is_signer=bool(data.get("is_signer", False)),
            is_writable=bool(data.get("is_writable", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "pubkey": self.pubkey,
            "is_signer": self.is_signer,
            "is_writable": self.is_writable,
        }


@dataclass
class RawInstruction:
    """Instruction template before address resolution and packing.

    ``extra`` keeps every key besides program_id/data/accounts; the shorthand
    program ids read their arguments from it.
    """

    program_id: str
    data: Any = None
    accounts: list[RawAccountMeta] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RawInstruction":
        if "program_id" not in data:
            raise MissingField("Missing program_id in instruction")
        extra = {
            key: value
            for key, value in data.items()
            if key not in ("program_id", "data", "accounts")
        }
        return cls(
            program_id=data["program_id"],
            data=data.get("data"),
            accounts=[RawAccountMeta.from_dict(acc) for acc in data.get("accounts") or []],
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "program_id": self.program_id,
            "data": self.data,
            "accounts": [acc.to_dict() for acc in self.accounts],
            **self.extra,
        }

    def get_field(self, name: str) -> Any:
        """Return a shorthand argument, raising MissingField when absent."""
        if name not in self.extra:
            raise MissingField(f"Missing {name} for {self.program_id}")
        return self.extra[name]


@dataclass
class RawTransaction:
    """Transaction template: instructions, signer keypairs, lookup tables."""

    instructions: list[RawInstruction]
    signers: list[Any] = field(default_factory=list)
    lookup_tables: list[Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RawTransaction":
        if "instructions" not in data:
            raise MissingField("Missing instructions in transaction")
        return cls(
            instructions=[RawInstruction.from_dict(ix) for ix in data["instructions"]],
            signers=list(data.get("signers") or []),
            lookup_tables=data.get("lookup_tables"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "instructions": [ix.to_dict() for ix in self.instructions],
            "signers": self.signers,
            "lookup_tables": self.lookup_tables,
        }


def ata_descriptor(owner: Any, mint: Any) -> dict[str, Any]:
    return {"type": "ata", "owner": owner, "mint": mint}


def set_cu_limit_tx(limit: Any) -> RawInstruction:
    """Compute budget SetComputeUnitLimit."""
    return RawInstruction(
        program_id=str(COMPUTE_BUDGET_PROGRAM),
        data={
            "type": "object",
            "data": [
                {"type": "u8", "data": COMPUTE_BUDGET_SET_CU_LIMIT},
                {"type": "u32", "data": limit},
            ],
        },
    )


def transfer_tx(from_: Any, to: Any, amount: Any) -> RawInstruction:
    """System program lamport transfer."""
    return RawInstruction(
        program_id=str(SYSTEM_PROGRAM),
        data={
            "type": "object",
            "data": [
                {"type": "u32", "data": SYSTEM_TRANSFER},
                {"type": "u64", "data": amount},
            ],
        },
        accounts=[
            RawAccountMeta(pubkey=from_, is_signer=True, is_writable=True),
            RawAccountMeta(pubkey=to, is_signer=False, is_writable=True),
        ],
    )


def create_ata_tx(owner: Any, mint: Any) -> RawInstruction:
    """Associated token account creation, paid for by the owner."""
    return RawInstruction(
        program_id=str(ASSOCIATED_TOKEN_PROGRAM),
        data=0,
        accounts=[
            RawAccountMeta(pubkey=owner, is_signer=True, is_writable=True),
            RawAccountMeta(pubkey=ata_descriptor(owner, mint), is_writable=True),
            RawAccountMeta(pubkey=owner, is_signer=True, is_writable=True),
            RawAccountMeta(pubkey=mint),
            RawAccountMeta(pubkey=str(SYSTEM_PROGRAM)),
            RawAccountMeta(pubkey=str(TOKEN_PROGRAM)),
        ],
    )


def close_ata_tx(owner: Any, mint: Any) -> RawInstruction:
    """Token program CloseAccount on the owner's associated token account."""
    return RawInstruction(
        program_id=str(TOKEN_PROGRAM),
        data={"type": "u8", "data": TOKEN_CLOSE_ACCOUNT},
        accounts=[
            RawAccountMeta(pubkey=ata_descriptor(owner, mint), is_writable=True),
            RawAccountMeta(pubkey=owner, is_signer=True, is_writable=True),
            RawAccountMeta(pubkey=owner, is_signer=True, is_writable=True),
        ],
    )


def expand_shorthand(ix: RawInstruction) -> RawInstruction | None:
    """Expand a shorthand program id into a full instruction template.

    Returns:
        The expanded template, or None if ``ix`` is not a shorthand
    """
    if ix.program_id == "set_cu_limit":
        return set_cu_limit_tx(ix.get_field("limit"))
    if ix.program_id == "transfer":
        return transfer_tx(ix.get_field("from"), ix.get_field("to"), ix.get_field("amount"))
    if ix.program_id == "create_ata":
        return create_ata_tx(ix.get_field("owner"), ix.get_field("mint"))
    if ix.program_id == "close_ata":
        return close_ata_tx(ix.get_field("owner"), ix.get_field("mint"))
    return None
