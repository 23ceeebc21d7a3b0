"""
Solana client abstraction for the RPC calls the tools need.
"""

import asyncio
import json
from typing import Any

import aiohttp
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.types import TxOpts
from solders.address_lookup_table_account import (
    AddressLookupTable,
    AddressLookupTableAccount,
)
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature

from soltnet.utils.logger import get_logger

logger = get_logger(__name__)

# Lookup tables that were never deactivated carry u64::MAX here
ACTIVE_TABLE_DEACTIVATION_SLOT = 2**64 - 1


class SolanaClient:
    """Abstraction for Solana RPC client operations."""

    def __init__(
        self,
        rpc_endpoint: str,
        commitment: str = "confirmed",
        max_retries: int = 3,
    ):
        """Initialize Solana client with RPC endpoint.

        Args:
            rpc_endpoint: URL of the Solana RPC endpoint
            commitment: Commitment level used for reads and confirmations
            max_retries: Send attempts before giving up on a transaction

        Raises:
            ValueError: If max_retries is below 1
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.rpc_endpoint = rpc_endpoint
        self.commitment = commitment
        self.max_retries = max_retries
        self._client: AsyncClient | None = None

    async def get_client(self) -> AsyncClient:
        """Get or create the AsyncClient instance.

        Returns:
            AsyncClient instance
        """
        if self._client is None:
            self._client = AsyncClient(self.rpc_endpoint, commitment=Commitment(self.commitment))
        return self._client

    async def close(self):
        """Close the client connection."""
        if self._client:
            await self._client.close()
            self._client = None

    async def __aenter__(self) -> "SolanaClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def get_account_info(self, pubkey: Pubkey):
        """Get account info from the blockchain.

        Args:
            pubkey: Public key of the account

        Returns:
            Account with lamports, data, owner and executable flag

        Raises:
            ValueError: If account doesn't exist
        """
        client = await self.get_client()
        response = await client.get_account_info(pubkey, encoding="base64")
        if not response.value:
            raise ValueError(f"Account {pubkey} not found")
        return response.value

    async def get_balance(self, pubkey: Pubkey) -> int:
        client = await self.get_client()
        response = await client.get_balance(pubkey)
        return response.value

    async def get_token_account_balance(self, token_account: Pubkey):
        """Get token balance for an account.

        Returns:
            UiTokenAmount of the account, or None if the node returned nothing
        """
        client = await self.get_client()
        response = await client.get_token_account_balance(token_account)
        return response.value

    async def request_airdrop(self, pubkey: Pubkey, lamports: int) -> Signature:
        client = await self.get_client()
        response = await client.request_airdrop(pubkey, lamports)
        return response.value

    async def get_latest_blockhash(self) -> Hash:
        """Get the latest blockhash.

        Returns:
            Recent blockhash
        """
        client = await self.get_client()
        response = await client.get_latest_blockhash(commitment=Commitment(self.commitment))
        return response.value.blockhash

    async def get_lookup_table(self, address: Pubkey) -> AddressLookupTableAccount:
        """Fetch an address lookup table for compiling v0 messages.

        Raises:
            ValueError: If the table does not exist or has been deactivated
        """
        account = await self.get_account_info(address)
        table = AddressLookupTable.deserialize(bytes(account.data))
        if table.meta.deactivation_slot != ACTIVE_TABLE_DEACTIVATION_SLOT:
            raise ValueError(f"ALT {address} not found / not active")
        return AddressLookupTableAccount(key=address, addresses=list(table.addresses))

    async def send_transaction(self, transaction, skip_preflight: bool = False) -> Signature:
        """Send a signed transaction, retrying with exponential backoff.

        Args:
            transaction: Signed legacy or versioned transaction
            skip_preflight: Whether to skip preflight checks

        Returns:
            Transaction signature
        """
        client = await self.get_client()
        tx_opts = TxOpts(
            skip_preflight=skip_preflight,
            preflight_commitment=Commitment(self.commitment),
        )

        for attempt in range(self.max_retries):
            try:
                response = await client.send_transaction(transaction, opts=tx_opts)
                return response.value

            except Exception as e:
                if attempt == self.max_retries - 1:
                    logger.error(
                        f"Failed to send transaction after {self.max_retries} attempts"
                    )
                    raise

                wait_time = 2**attempt
                logger.warning(
                    f"Transaction attempt {attempt + 1} failed: {e!s}, retrying in {wait_time}s"
                )
                await asyncio.sleep(wait_time)

        raise ValueError("Transaction was not sent")

    async def confirm_transaction(self, signature: Signature) -> None:
        """Wait for transaction confirmation at the client's commitment level."""
        client = await self.get_client()
        await client.confirm_transaction(
            signature, commitment=Commitment(self.commitment), sleep_seconds=1
        )

    async def get_transaction(self, signature: str) -> dict[str, Any]:
        """Fetch a confirmed transaction in jsonParsed encoding.

        Raises:
            ValueError: If the node does not know the transaction
        """
        result = await self._call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": self.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if result is None:
            raise ValueError(f"Transaction not found: {signature}")
        return result

    async def get_block(self, slot: int) -> dict[str, Any]:
        """Fetch a block with full jsonParsed transactions."""
        result = await self._call(
            "getBlock",
            [
                slot,
                {
                    "encoding": "jsonParsed",
                    "transactionDetails": "full",
                    "rewards": True,
                    "commitment": self.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if result is None:
            raise ValueError(f"Block not found: {slot}")
        return result

    async def _call(self, method: str, params: list[Any]) -> Any:
        body = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        response = await self.post_rpc(body)
        if response is None:
            raise ConnectionError(f"RPC request {method} failed")
        if "error" in response:
            raise ValueError(f"RPC error in {method}: {response['error']}")
        return response.get("result")

    async def post_rpc(self, body: dict[str, Any]) -> dict[str, Any] | None:
        """
        Send a raw RPC request to the Solana node.

        Args:
            body: JSON-RPC request body.

        Returns:
            Optional[Dict[str, Any]]: Parsed JSON response, or None if the request fails.
        """
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.rpc_endpoint,
                    json=body,
                    timeout=aiohttp.ClientTimeout(30),
                ) as response:
                    response.raise_for_status()
                    return await response.json()
        except aiohttp.ClientError as e:
            logger.error(f"RPC request failed: {e!s}", exc_info=True)
            return None
        except json.JSONDecodeError as e:
            logger.error(f"Failed to decode RPC response: {e!s}", exc_info=True)
            return None
