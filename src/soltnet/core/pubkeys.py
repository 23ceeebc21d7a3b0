"""
Well-known program addresses and constants shared by the codec and the tools.
"""

from typing import Final

from solders.pubkey import Pubkey

# Constants
LAMPORTS_PER_SOL: Final[int] = 1_000_000_000
MAX_SAFE_INTEGER: Final[int] = 9_007_199_254_740_991  # 2**53 - 1

# Core programs
SYSTEM_PROGRAM: Final[Pubkey] = Pubkey.from_string("11111111111111111111111111111111")
TOKEN_PROGRAM: Final[Pubkey] = Pubkey.from_string(
    "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
)
ASSOCIATED_TOKEN_PROGRAM: Final[Pubkey] = Pubkey.from_string(
    "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
)
COMPUTE_BUDGET_PROGRAM: Final[Pubkey] = Pubkey.from_string(
    "ComputeBudget111111111111111111111111111111"
)
UPGRADEABLE_LOADER_PROGRAM: Final[Pubkey] = Pubkey.from_string(
    "BPFLoaderUpgradeab1e11111111111111111111111"
)


class SystemAddresses:
    """Program addresses that templates may reference by name."""

    SYSTEM_PROGRAM = SYSTEM_PROGRAM
    TOKEN_PROGRAM = TOKEN_PROGRAM
    ASSOCIATED_TOKEN_PROGRAM = ASSOCIATED_TOKEN_PROGRAM
    COMPUTE_BUDGET_PROGRAM = COMPUTE_BUDGET_PROGRAM

    @classmethod
    def get_all_system_addresses(cls) -> dict[str, Pubkey]:
        """Get the named program addresses as a dictionary.

        Returns:
            Dictionary mapping template tags to Pubkey objects
        """
        return {
            "system_program": cls.SYSTEM_PROGRAM,
            "token_program": cls.TOKEN_PROGRAM,
            "associated_token_program": cls.ASSOCIATED_TOKEN_PROGRAM,
            "compute_budget_program": cls.COMPUTE_BUDGET_PROGRAM,
        }
