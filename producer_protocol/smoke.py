"""
Post-deployment smoke tests.

Each suite deploys (or binds) a contract and runs a few checks against it
on a live chain. Checks run independently: one failing check does not stop
the next.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from web3.exceptions import ContractLogicError

from .chain import Signer
from .errors import ConfigError, SmokeTestFailure, TransactionFailed
from .factory import ContractFactory

logger = logging.getLogger(__name__)

MINT_AMOUNT = 1000
PROJECT_NAME = "Project1"
ARTIST_SHARE = 50


def format_bytes32_string(text: str) -> bytes:
    """Encode text as a zero padded bytes32, leaving room for a terminating zero byte"""
    data = text.encode("utf-8")
    if len(data) > 31:
        raise ValueError("bytes32 string must be less than 32 bytes")
    return data.ljust(32, b"\0")


def parse_bytes32_string(value: bytes) -> str:
    if len(value) != 32:
        raise ValueError("invalid bytes32 - not 32 bytes long")
    if value[31] != 0:
        raise ValueError("invalid bytes32 string - no null terminator")
    return value.rstrip(b"\0").decode("utf-8")


@dataclass
class SmokeResult:
    name: str
    passed: bool
    detail: str = ""


@dataclass
class SmokeCheck:
    name: str
    run: Callable[[], None]


def expect_revert(send: Callable[[], Any], message: str):
    """Run a transaction that must revert, raising SmokeTestFailure when it goes through"""
    try:
        send()
    except ContractLogicError as e:
        logger.debug(f"Reverted as expected: {e}")
        return
    except TransactionFailed as e:
        logger.debug(f"Failed on chain as expected: {e}")
        return
    raise SmokeTestFailure(message)


def _contribution_contributor(entry: Any) -> str:
    if hasattr(entry, "contributor"):
        return entry.contributor
    return entry[0]


def wpjk_checks(wpjk: Any, owner: Signer, bridge_account: Signer, test_account: Signer) -> List[SmokeCheck]:
    """
    Bridge-role checks for WPJK.

    Grants BRIDGE_ROLE to the bridge account before returning the checks.
    """
    bridge_role = wpjk.functions.BRIDGE_ROLE().call()
    owner.transact(wpjk.functions.grantRole(bridge_role, bridge_account.address))
    logger.info(f"Granted BRIDGE_ROLE to {bridge_account.address}")

    def bridge_mint_increases_balance():
        before = wpjk.functions.balanceOf(test_account.address).call()
        bridge_account.transact(wpjk.functions.mint(test_account.address, MINT_AMOUNT))
        after = wpjk.functions.balanceOf(test_account.address).call()
        if after - before != MINT_AMOUNT:
            raise SmokeTestFailure(f"Expected balance to grow by {MINT_AMOUNT}, grew by {after - before}")

    def non_bridge_mint_reverts():
        expect_revert(
            lambda: test_account.transact(wpjk.functions.mint(test_account.address, MINT_AMOUNT)),
            "Mint by an account without BRIDGE_ROLE did not revert",
        )

    return [
        SmokeCheck("bridge_mint_increases_balance", bridge_mint_increases_balance),
        SmokeCheck("non_bridge_mint_reverts", non_bridge_mint_reverts),
    ]


def producer_protocol_token_checks(token: Any, owner: Signer, artist: Signer) -> List[SmokeCheck]:
    """Artist minting checks for ProducerProtocolToken"""

    def artist_mint_records_contribution():
        project_id = format_bytes32_string(PROJECT_NAME)
        owner.transact(token.functions.mintArtistTokens(artist.address, MINT_AMOUNT, project_id, ARTIST_SHARE))
        contributions = token.functions.getProjectContributions(project_id).call()
        if not contributions:
            raise SmokeTestFailure(f"No contributions recorded for {PROJECT_NAME}")
        contributor = _contribution_contributor(contributions[0])
        if contributor.lower() != artist.address.lower():
            raise SmokeTestFailure(f"First contributor is {contributor}, expected {artist.address}")

    return [SmokeCheck("artist_mint_records_contribution", artist_mint_records_contribution)]


@dataclass
class SmokeSuite:
    name: str
    contract: str
    signers_needed: int
    constructor_args: Callable[[List[Signer]], List[Any]]
    checks: Callable[[Any, List[Signer]], List[SmokeCheck]]


SUITES: Dict[str, SmokeSuite] = {
    "wpjk": SmokeSuite(
        name="wpjk",
        contract="WPJK",
        signers_needed=3,
        constructor_args=lambda signers: [],
        checks=lambda contract, signers: wpjk_checks(contract, signers[0], signers[1], signers[2]),
    ),
    "producer-protocol-token": SmokeSuite(
        name="producer-protocol-token",
        contract="ProducerProtocolToken",
        signers_needed=2,
        constructor_args=lambda signers: ["Producer Protocol Token", "PPT", signers[0].address],
        checks=lambda contract, signers: producer_protocol_token_checks(contract, signers[0], signers[1]),
    ),
}


def get_suite(name: str) -> SmokeSuite:
    try:
        return SUITES[name]
    except KeyError:
        raise ConfigError(f"Unknown smoke suite '{name}'. Known suites: {', '.join(sorted(SUITES))}")


def run_checks(checks: List[SmokeCheck]) -> List[SmokeResult]:
    results = []
    for check in checks:
        try:
            check.run()
        except Exception as e:
            logger.error(f"FAIL {check.name}: {e}")
            results.append(SmokeResult(check.name, False, str(e)))
        else:
            logger.info(f"PASS {check.name}")
            results.append(SmokeResult(check.name, True))
    return results


def run_suite(suite: SmokeSuite, factory: ContractFactory, signers: List[Signer],
              address: Optional[str] = None) -> List[SmokeResult]:
    """
    Run a smoke suite against a fresh deployment, or against an existing address.

    Raises:
        ConfigError: not enough signers for the suite
    """
    if len(signers) < suite.signers_needed:
        raise ConfigError(f"Suite '{suite.name}' needs {suite.signers_needed} accounts, "
                          f"{len(signers)} available. Set ADDITIONAL_PRIVATE_KEYS.")

    if address:
        contract = factory.at(address)
        logger.info(f"Running {suite.name} checks against {address}")
    else:
        deployed = factory.deploy(signers[0], *suite.constructor_args(signers))
        contract = deployed.contract
        logger.info(f"Deployed {deployed.name} for checks at {deployed.address}")

    results = run_checks(suite.checks(contract, signers))
    passed = sum(1 for result in results if result.passed)
    logger.info(f"Smoke suite {suite.name}: {passed}/{len(results)} checks passed")
    return results
