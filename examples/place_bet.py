#!/usr/bin/env python3
"""
Example of placing a confidential bet and reading it back.
"""
import asyncio
import logging
import os
import sys

from foresight_sdk import (
    ForesightClient,
    NetworkConfig,
    LocalSigner,
    NotDisclosed
)


async def run(network: str, prediction_id: int, option_index: int, amount: str):
    """
    Demonstrate the confidential betting flow.

    This example shows how to:
    1. Initialize the client from a network configuration
    2. List predictions and their encrypted state
    3. Optionally buy cCoin with ETH (set BUY_ETH)
    4. Place an encrypted bet
    5. Decrypt the user's own bet and balance
    6. Read the totals once they are public
    """
    PRIVATE_KEY = os.environ.get("PRIVATE_KEY")
    if not PRIVATE_KEY:
        print("ERROR: PRIVATE_KEY environment variable is required")
        return

    print("Available networks:")
    for network_name in NetworkConfig.load_networks().keys():
        print(f"  - {network_name}")
    print()

    signer = LocalSigner(PRIVATE_KEY)
    print(f"Signer address: {signer.address}")

    client = ForesightClient.from_network(network=network, signer=signer)
    try:
        for prediction in client.market_view.list_predictions(user=signer.address):
            status = "open" if prediction.is_active else "closed"
            print(f"#{prediction.id} {prediction.name} [{status}] options={prediction.options}")

        buy_eth = os.environ.get("BUY_ETH")
        if buy_eth:
            print(f"\nBuying cCoin at {client.market_view.rate()} base units per ETH")
            receipt = await client.purchase(buy_eth)
            print(f"Purchase confirmed in block {receipt.block_number}")

        print(f"\nBalance: {await client.decrypt_balance()} cCoin")

        receipt = await client.place_bet(prediction_id, option_index, amount)
        print(f"Bet placed in block {receipt.block_number}: {receipt.tx_hash}")

        bet = await client.decrypt_bet(prediction_id)
        if bet:
            print(f"Your bet: {bet.amount} cCoin on '{bet.option_label}'")
        print(f"Balance: {await client.decrypt_balance()} cCoin")

        try:
            totals = await client.decrypt_totals(prediction_id)
            for label, total in totals.items():
                print(f"  {label}: {total} cCoin")
        except NotDisclosed:
            print("Totals stay encrypted until the prediction is finalized")
    finally:
        client.close()


def main():
    logging.basicConfig(level=logging.INFO)
    if len(sys.argv) != 4:
        print(f"Usage: {sys.argv[0]} <prediction_id> <option_index> <amount>")
        return
    network = os.environ.get("FORESIGHT_NETWORK", "localhost")
    asyncio.run(run(network, int(sys.argv[1]), int(sys.argv[2]), sys.argv[3]))


if __name__ == "__main__":
    main()
