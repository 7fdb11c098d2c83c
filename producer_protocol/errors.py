"""
Error types raised by the deployment tooling.

The command line treats every failure the same way (log it, exit 1); these
classes only exist so the logged message says what went wrong.
"""

from typing import Any, Optional


class ProducerProtocolError(Exception):
    """Base class for all tooling errors"""


class ConfigError(ProducerProtocolError):
    """Missing or invalid configuration (environment, network, target)"""


class ArtifactError(ProducerProtocolError):
    """A compiled contract artifact could not be loaded"""


class PublishedContractError(ProducerProtocolError):
    """A published contract description could not be resolved"""


class TransactionFailed(ProducerProtocolError):
    """A transaction was mined with a failure status or produced no result"""

    def __init__(self, message: str, tx_hash: Optional[str] = None, receipt: Optional[Any] = None):
        super().__init__(message)
        self.tx_hash = tx_hash
        self.receipt = receipt


class SmokeTestFailure(ProducerProtocolError):
    """A post-deployment check did not hold"""
