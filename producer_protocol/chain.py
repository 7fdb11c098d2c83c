"""
Blockchain connection and transaction signing.
"""

import logging
from typing import Any, Dict, List, Optional

from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from .config import NetworkConfig
from .errors import ConfigError, TransactionFailed

logger = logging.getLogger(__name__)

DEFAULT_RECEIPT_TIMEOUT = 300


def format_ether(wei: int) -> str:
    """Render a wei amount as a decimal ether string"""
    return str(Web3.from_wei(wei, "ether"))


def connect(network: NetworkConfig, timeout: int = 30) -> Web3:
    """
    Connect to a network's RPC endpoint.

    Raises:
        ConfigError: the endpoint is not reachable
    """
    w3 = Web3(Web3.HTTPProvider(network.url, request_kwargs={"timeout": timeout}))
    if network.poa:
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

    if not w3.is_connected():
        raise ConfigError(f"Could not connect to RPC URL: {network.url}")

    node_chain_id = w3.eth.chain_id
    if node_chain_id != network.chain_id:
        logger.warning(f"Network '{network.name}' is configured for chain {network.chain_id} "
                       f"but the node reports chain {node_chain_id}")
    logger.info(f"Connected to {network.name} at {network.url}")
    return w3


class Signer:
    """An account that sends transactions, either with a local key or through the node"""

    def __init__(self, w3: Web3, address: str, private_key: Optional[str] = None,
                 receipt_timeout: int = DEFAULT_RECEIPT_TIMEOUT):
        self.w3 = w3
        self.address = w3.to_checksum_address(address)
        self._private_key = private_key
        self.receipt_timeout = receipt_timeout

    @classmethod
    def from_key(cls, w3: Web3, private_key: str, receipt_timeout: int = DEFAULT_RECEIPT_TIMEOUT) -> "Signer":
        account = w3.eth.account.from_key(private_key)
        return cls(w3, account.address, private_key, receipt_timeout)

    @property
    def is_local(self) -> bool:
        return self._private_key is not None

    def balance(self) -> int:
        return self.w3.eth.get_balance(self.address)

    def transact(self, fn: Any, value: int = 0) -> Any:
        """
        Send a contract call or constructor as a transaction and wait for it.

        Args:
            fn: a bound contract function or constructor (anything with build_transaction)
            value: wei to send along

        Returns:
            The transaction receipt

        Raises:
            TransactionFailed: the transaction was mined with a failure status
        """
        tx_params: Dict[str, Any] = {
            'from': self.address,
            'nonce': self.w3.eth.get_transaction_count(self.address),
            'chainId': self.w3.eth.chain_id,
        }
        if value:
            tx_params['value'] = value
        tx = fn.build_transaction(tx_params)

        if self._private_key is not None:
            signed_tx = self.w3.eth.account.sign_transaction(tx, self._private_key)
            tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        else:
            tx_hash = self.w3.eth.send_transaction(tx)

        tx_hex = self.w3.to_hex(tx_hash)
        logger.debug(f"Transaction sent: {tx_hex}")
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        if receipt['status'] != 1:
            raise TransactionFailed(f"Transaction {tx_hex} failed", tx_hash=tx_hex, receipt=receipt)
        logger.debug(f"Transaction {tx_hex} confirmed in block {receipt['blockNumber']}")
        return receipt

    def __repr__(self) -> str:
        kind = "local" if self.is_local else "node"
        return f"Signer({self.address}, {kind})"


def get_signers(w3: Web3, network: NetworkConfig,
                receipt_timeout: int = DEFAULT_RECEIPT_TIMEOUT) -> List[Signer]:
    """
    Resolve the signers for a network. The first signer is the deployer.

    Configured private keys are used in order; a network without keys uses
    the node's unlocked accounts (the local development chain).

    Raises:
        ConfigError: no signer is available
    """
    if network.accounts:
        signers = [Signer.from_key(w3, key, receipt_timeout) for key in network.accounts]
    else:
        signers = [Signer(w3, address, None, receipt_timeout) for address in w3.eth.accounts]

    if not signers:
        raise ConfigError(f"No accounts available on network '{network.name}'. Set PRIVATE_KEY.")
    return signers
