"""
Contract factory: deploys an artifact and binds deployed addresses.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List

from web3 import Web3

from .artifacts import ContractArtifact
from .chain import Signer
from .errors import TransactionFailed

logger = logging.getLogger(__name__)


@dataclass
class DeployedContract:
    """Result of a deployment"""
    name: str
    address: str
    contract: Any
    tx_hash: str
    block_number: int
    deployer: str
    args: List[Any] = field(default_factory=list)


class ContractFactory:
    """Deploys a contract artifact with given constructor arguments"""

    def __init__(self, w3: Web3, artifact: ContractArtifact):
        self.w3 = w3
        self.artifact = artifact

    @property
    def name(self) -> str:
        return self.artifact.name

    def at(self, address: str) -> Any:
        """Bind the artifact's ABI to an already deployed address"""
        return self.w3.eth.contract(
            address=self.w3.to_checksum_address(address),
            abi=self.artifact.abi,
            decode_tuples=True,
        )

    def deploy(self, signer: Signer, *args: Any) -> DeployedContract:
        """
        Submit the constructor transaction and wait for it to be mined.

        Raises:
            TransactionFailed: failed receipt, or no contract address in it
        """
        factory = self.w3.eth.contract(abi=self.artifact.abi, bytecode=self.artifact.bytecode)
        receipt = signer.transact(factory.constructor(*args))

        tx_hash = self.w3.to_hex(receipt['transactionHash'])
        address = receipt.get('contractAddress')
        if not address:
            raise TransactionFailed(f"Deployment of {self.name} produced no contract address",
                                    tx_hash=tx_hash, receipt=receipt)

        logger.debug(f"{self.name} deployed in block {receipt['blockNumber']} (tx {tx_hash})")
        return DeployedContract(
            name=self.name,
            address=address,
            contract=self.at(address),
            tx_hash=tx_hash,
            block_number=receipt['blockNumber'],
            deployer=signer.address,
            args=list(args),
        )
