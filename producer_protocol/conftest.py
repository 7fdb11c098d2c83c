"""Shared test fixtures: a mocked Web3 instance that behaves like a local development node"""

from unittest.mock import MagicMock

import pytest
from eth_account import Account
from hexbytes import HexBytes
from web3 import Web3

TX_HASH = HexBytes(b"\xab" * 32)
CONTRACT_ADDRESS = Web3.to_checksum_address("0x5fbdb2315678afecb367f032d93f642f64180aa3")
NODE_ACCOUNTS = [
    Web3.to_checksum_address("0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266"),
    Web3.to_checksum_address("0x70997970c51812dc3a010c7d01b50e0d17dc79c8"),
    Web3.to_checksum_address("0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc"),
]


def make_receipt(status=1, contract_address=CONTRACT_ADDRESS, block_number=5):
    return {
        'status': status,
        'blockNumber': block_number,
        'transactionHash': TX_HASH,
        'contractAddress': contract_address,
    }


def make_w3(chain_id=31337, receipt=None):
    w3 = MagicMock()
    w3.to_checksum_address.side_effect = Web3.to_checksum_address
    w3.to_hex.side_effect = Web3.to_hex
    w3.eth.chain_id = chain_id
    w3.eth.accounts = list(NODE_ACCOUNTS)
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.get_balance.return_value = 10 ** 18
    w3.eth.account.from_key.side_effect = Account.from_key
    w3.eth.account.sign_transaction.return_value = MagicMock(raw_transaction=b"signed")
    w3.eth.send_raw_transaction.return_value = TX_HASH
    w3.eth.send_transaction.return_value = TX_HASH
    w3.eth.wait_for_transaction_receipt.return_value = receipt or make_receipt()
    return w3


@pytest.fixture
def w3():
    return make_w3()
