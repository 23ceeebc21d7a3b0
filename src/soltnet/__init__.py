"""
soltnet: JSON transaction templates for Solana programs.
"""

__version__ = "0.1.0"
