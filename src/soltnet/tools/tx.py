"""
Submit templates and simple transfers to a Solana cluster.
"""

from solders.keypair import Keypair
from solders.message import Message, MessageV0
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction, VersionedTransaction

from soltnet.core.client import SolanaClient
from soltnet.tx_format.json_tx import ParsedTransaction, parse_keypair, parse_tx_from_json
from soltnet.tx_format.pubkey import parse_address, resolve_address
from soltnet.tx_format.templates import RawTransaction, close_ata_tx, create_ata_tx
from soltnet.utils.amounts import format_amount
from soltnet.utils.logger import get_logger

logger = get_logger(__name__)


async def log_transaction_result(client: SolanaClient, signature: str) -> None:
    """Log program output and compute units of a confirmed transaction."""
    tx = await client.get_transaction(signature)
    meta = tx.get("meta") or {}
    for line in meta.get("logMessages") or []:
        logger.info(line)

    units = meta.get("computeUnitsConsumed")
    logger.info(f"Total CUs used: {units if units is not None else 'n/a'}")


async def execute_json_transaction(
    client: SolanaClient,
    json_tx: ParsedTransaction,
    payer: Pubkey | None = None,
) -> str:
    """Sign, send and confirm a resolved template.

    A legacy message is built unless the template names lookup tables.

    Args:
        client: RPC client
        json_tx: Resolved transaction template
        payer: Fee payer, defaults to the first signer

    Returns:
        Transaction signature
    """
    if payer is None:
        if not json_tx.signers:
            raise ValueError("Missing transaction signer")
        payer = json_tx.signers[0].pubkey()

    lookup_accounts = [await client.get_lookup_table(table) for table in json_tx.lookup_tables]
    blockhash = await client.get_latest_blockhash()

    if lookup_accounts:
        message = MessageV0.try_compile(payer, json_tx.instructions, lookup_accounts, blockhash)
        transaction = VersionedTransaction(message, json_tx.signers)
    else:
        message = Message.new_with_blockhash(json_tx.instructions, payer, blockhash)
        transaction = Transaction(json_tx.signers, message, blockhash)

    balance_before = await client.get_balance(payer)
    signature = await client.send_transaction(transaction)
    await client.confirm_transaction(signature)
    logger.info(f"Transaction sent: {signature}")

    await log_transaction_result(client, str(signature))

    balance_after = await client.get_balance(payer)
    logger.info(f"Balance changed: {format_amount(balance_after - balance_before)} lamports")
    return str(signature)


async def get_balance(client: SolanaClient, address: str) -> int:
    balance = await client.get_balance(parse_address(address))
    logger.info(f"Balance of {address}: {format_amount(balance)} lamports")
    return balance


async def airdrop_sol(client: SolanaClient, address: str, lamports: int) -> str:
    signature = await client.request_airdrop(parse_address(address), lamports)
    await client.confirm_transaction(signature)
    logger.info(f"Airdrop successful: {format_amount(lamports)} lamports to {address}")
    return str(signature)


async def send_sol(client: SolanaClient, from_: str, to: str, lamports: int, signer: str) -> str:
    """Transfer lamports between two accounts.

    Raises:
        ValueError: If the signer keypair does not belong to ``from_``
    """
    from_pubkey = parse_address(from_)
    to_pubkey = parse_address(to)
    keypair: Keypair = parse_keypair(signer)
    if keypair.pubkey() != from_pubkey:
        raise ValueError("Signer does not match from pubkey")

    instruction = transfer(
        TransferParams(from_pubkey=from_pubkey, to_pubkey=to_pubkey, lamports=lamports)
    )
    signature = await execute_json_transaction(
        client, ParsedTransaction(instructions=[instruction], signers=[keypair])
    )
    logger.info(f"Sent {format_amount(lamports)} lamports from {from_} to {to}")
    return signature


async def create_ata(client: SolanaClient, owner: str, mint: str, signer: str) -> str:
    raw = RawTransaction(instructions=[create_ata_tx(owner, mint)], signers=[signer])
    return await execute_json_transaction(client, parse_tx_from_json(raw))


async def close_ata(client: SolanaClient, owner: str, mint: str, signer: str) -> str:
    raw = RawTransaction(instructions=[close_ata_tx(owner, mint)], signers=[signer])
    return await execute_json_transaction(client, parse_tx_from_json(raw))


async def get_token_balance(client: SolanaClient, owner: str, mint: str) -> str:
    ata = resolve_address({"type": "ata", "owner": owner, "mint": mint})
    balance = await client.get_token_account_balance(ata)
    amount = balance.ui_amount_string if balance is not None else "0"
    logger.info(f"Balance of {owner} for token {mint}: {format_amount(amount)} tokens")
    return amount
