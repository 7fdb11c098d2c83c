"""
Deployment definitions, one per contract.

Each target names the contract, where it is deployed by default, where its
description comes from (the local build or a published contract URI), how
its constructor arguments are computed, and what runs around the deploy.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from web3 import Web3

from .artifacts import ArtifactStore, ContractArtifact
from .chain import Signer, format_ether
from .config import ProjectConfig
from .errors import ArtifactError, ConfigError
from .factory import ContractFactory, DeployedContract
from .published import PublishedContractResolver

logger = logging.getLogger(__name__)

SOURCE_ARTIFACTS = "artifacts"
SOURCE_PUBLISHED = "published"
SOURCES = (SOURCE_ARTIFACTS, SOURCE_PUBLISHED)

MOJO_CONTRACT_URI = "ipfs://QmbKnUmjdTrdBgRqofVKzgtwHaQBno93AQfg7mtQijtZbw/0"


class DeploymentContext:
    """Everything a target needs while it is being deployed"""

    def __init__(self, config: ProjectConfig, w3: Web3, signers: List[Signer], source: str,
                 artifacts: Optional[ArtifactStore] = None,
                 resolver: Optional[PublishedContractResolver] = None,
                 contract_uri: Optional[str] = None):
        if source not in SOURCES:
            raise ConfigError(f"Unknown contract source '{source}'. Use one of: {', '.join(SOURCES)}")
        self.config = config
        self.w3 = w3
        self.signers = signers
        self.source = source
        self.artifacts = artifacts or ArtifactStore(config.artifacts_dir)
        self.resolver = resolver or PublishedContractResolver(
            config.ipfs_gateway, config.thirdweb_secret_key, secret_key_hosts=config.secret_key_hosts)
        self.contract_uri = contract_uri

    @property
    def deployer(self) -> Signer:
        return self.signers[0]

    def load_artifact(self, contract: str, contract_uri: Optional[str] = None) -> ContractArtifact:
        """Load a contract description from this context's source"""
        if self.source == SOURCE_ARTIFACTS:
            return self.artifacts.load(contract)
        if not contract_uri:
            raise ConfigError(f"No contract URI configured for {contract}")
        return self.resolver.resolve(contract_uri, name=contract)

    def address_from_env(self, name: str) -> str:
        value = self.config.require_env(name)
        if not Web3.is_address(value):
            raise ConfigError(f"{name} is not a valid address: {value}")
        return Web3.to_checksum_address(value)


@dataclass
class DeploymentTarget:
    name: str
    contract: str
    default_network: str
    default_source: str = SOURCE_ARTIFACTS
    contract_uri_env: Optional[str] = None
    default_contract_uri: Optional[str] = None
    constructor_args: Optional[Callable[[DeploymentContext], List[Any]]] = None
    before_deploy: Optional[Callable[[DeploymentContext], None]] = None
    after_deploy: Optional[Callable[[DeploymentContext, DeployedContract], None]] = None
    # functions the hooks call on the deployed contract
    required_functions: Tuple[str, ...] = ()
    description: str = ""

    def contract_uri(self, config: ProjectConfig) -> Optional[str]:
        if self.contract_uri_env:
            return config.env(self.contract_uri_env, self.default_contract_uri)
        return self.default_contract_uri

    def check_artifact(self, artifact: ContractArtifact):
        """Raise ArtifactError when the artifact lacks a function the hooks need"""
        require_functions(artifact, self.required_functions)

    def args(self, ctx: DeploymentContext) -> List[Any]:
        if self.constructor_args is None:
            return []
        return self.constructor_args(ctx)


def require_functions(artifact: ContractArtifact, names: Tuple[str, ...]):
    missing = [name for name in names if not artifact.has_function(name)]
    if missing:
        raise ArtifactError(
            f"{artifact.name} from {artifact.source} has no {', '.join(missing)} function. "
            "Check that the artifact or contract URI points at the right contract."
        )


def _producer_protocol_token_args(ctx: DeploymentContext) -> List[Any]:
    return ["Producer Protocol Token", "PPT", ctx.deployer.address]


def _optimism_bridge_args(ctx: DeploymentContext) -> List[Any]:
    return [ctx.address_from_env("CROSS_DOMAIN_MESSENGER"), ctx.address_from_env("L1_CONTRACT")]


def _mojo_args(ctx: DeploymentContext) -> List[Any]:
    if ctx.config.env("MOJO_INITIAL_OWNER"):
        return [ctx.address_from_env("MOJO_INITIAL_OWNER")]
    return [ctx.deployer.address]


def _mojo_swap_args(ctx: DeploymentContext) -> List[Any]:
    return [ctx.address_from_env("MOJO_ADDRESS")]


def _log_deployer_balance(ctx: DeploymentContext):
    balance = ctx.deployer.balance()
    logger.info(f"Account balance: {format_ether(balance)} ETH")


def _log_mojo_total_supply(ctx: DeploymentContext, deployed: DeployedContract):
    total_supply = deployed.contract.functions.TOTAL_SUPPLY().call()
    logger.info(f"Total Supply: {format_ether(total_supply)} MOJO")


def _mojo_artifact(ctx: DeploymentContext) -> ContractArtifact:
    mojo_uri = ctx.config.env("MOJO_CONTRACT_URI", MOJO_CONTRACT_URI)
    artifact = ctx.load_artifact("Mojo", mojo_uri)
    require_functions(artifact, ("setSwapContract",))
    return artifact


def _check_mojo_accepts_swap(ctx: DeploymentContext):
    # fail before MojoSwap is deployed rather than after
    _mojo_artifact(ctx)


def _register_swap_with_mojo(ctx: DeploymentContext, deployed: DeployedContract):
    mojo_address = ctx.address_from_env("MOJO_ADDRESS")
    mojo = ContractFactory(ctx.w3, _mojo_artifact(ctx)).at(mojo_address)
    ctx.deployer.transact(mojo.functions.setSwapContract(deployed.address))
    logger.info(f"MojoSwap set as swap contract in Mojo ({mojo_address})")


TARGETS: Dict[str, DeploymentTarget] = {
    target.name: target for target in [
        DeploymentTarget(
            name="wpjk",
            contract="WPJK",
            default_network="hardhat",
            description="Bridged PJK token with a bridge-gated mint",
        ),
        DeploymentTarget(
            name="producer-protocol-token",
            contract="ProducerProtocolToken",
            default_network="hardhat",
            constructor_args=_producer_protocol_token_args,
            description="Producer Protocol Token (PPT), owned by the deployer",
        ),
        DeploymentTarget(
            name="producer-protocol-optimism",
            contract="ProducerProtocolOptimism",
            default_network="optimismGoerli",
            constructor_args=_optimism_bridge_args,
            description="Optimism bridging contract (CROSS_DOMAIN_MESSENGER, L1_CONTRACT)",
        ),
        DeploymentTarget(
            name="mojo",
            contract="Mojo",
            default_network="optimism",
            contract_uri_env="MOJO_CONTRACT_URI",
            default_contract_uri=MOJO_CONTRACT_URI,
            constructor_args=_mojo_args,
            before_deploy=_log_deployer_balance,
            after_deploy=_log_mojo_total_supply,
            required_functions=("TOTAL_SUPPLY",),
            description="Mojo token, owned by MOJO_INITIAL_OWNER or the deployer",
        ),
        DeploymentTarget(
            name="mojo-swap",
            contract="MojoSwap",
            default_network="optimism",
            default_source=SOURCE_PUBLISHED,
            contract_uri_env="MOJO_SWAP_CONTRACT_URI",
            constructor_args=_mojo_swap_args,
            before_deploy=_check_mojo_accepts_swap,
            after_deploy=_register_swap_with_mojo,
            description="MojoSwap for the Mojo token at MOJO_ADDRESS",
        ),
        DeploymentTarget(
            name="pjk-burner",
            contract="PJKBurner",
            default_network="polygon",
            default_source=SOURCE_PUBLISHED,
            contract_uri_env="PJK_BURNER_CONTRACT_URI",
            description="PJK burner on Polygon",
        ),
    ]
}


def get_target(name: str) -> DeploymentTarget:
    try:
        return TARGETS[name]
    except KeyError:
        raise ConfigError(f"Unknown deployment target '{name}'. Known targets: {', '.join(sorted(TARGETS))}")
