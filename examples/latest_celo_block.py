"""Fetch the latest Celo block and list its fee-currency transactions.

This script demonstrates using chainfmt as a library.
"""

import asyncio

from chainfmt import RpcClient, get_chain


async def main():
    """Print each transaction in the latest Celo block with the currency it paid gas in."""
    async with RpcClient(get_chain("celo")) as client:
        block = await client.get_block(include_transactions=True)

    print(f"Block {block.number} ({len(block.transactions)} transactions)")
    print(f"Randomness revealed: {block.get('randomness', {}).get('revealed')}")

    for tx in block.transactions:
        currency = tx.get("feeCurrency") or "CELO"
        print(f"  • {tx.hash} [{tx.type}] gas paid in {currency}")


if __name__ == "__main__":
    asyncio.run(main())
