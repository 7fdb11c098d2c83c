"""
Deployment runner.

Runs a deployment target against a network and records the result in
deployments/<network>.json so later commands can find the address.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .artifacts import ArtifactStore
from .chain import connect, get_signers
from .config import ProjectConfig
from .factory import ContractFactory, DeployedContract
from .published import PublishedContractResolver
from .targets import DeploymentContext, DeploymentTarget

logger = logging.getLogger(__name__)


class DeploymentRecordStore:
    """Per-network JSON files mapping contract names to deployment records"""

    def __init__(self, root: str = "deployments"):
        self.root = root

    def path_for(self, network: str) -> str:
        return os.path.join(self.root, f"{network}.json")

    def all(self, network: str) -> Dict[str, Dict[str, Any]]:
        path = self.path_for(network)
        if not os.path.exists(path):
            return {}
        with open(path, 'r') as f:
            return json.load(f)

    def get(self, network: str, contract: str) -> Optional[Dict[str, Any]]:
        return self.all(network).get(contract)

    def save(self, network: str, chain_id: int, deployed: DeployedContract, source: str) -> Dict[str, Any]:
        """Add or replace the record for a deployed contract"""
        records = self.all(network)
        record = {
            'address': deployed.address,
            'transactionHash': deployed.tx_hash,
            'blockNumber': deployed.block_number,
            'deployer': deployed.deployer,
            'args': [str(arg) for arg in deployed.args],
            'source': source,
            'chainId': chain_id,
            'deployedAt': datetime.now(timezone.utc).isoformat(),
        }
        records[deployed.name] = record

        os.makedirs(self.root, exist_ok=True)
        path = self.path_for(network)
        with open(path, 'w') as f:
            json.dump(records, f, indent=2, sort_keys=True)
        logger.info(f"Recorded {deployed.name} in {path}")
        return record


def run_deployment(target: DeploymentTarget, config: ProjectConfig, network_name: Optional[str] = None,
                   source: Optional[str] = None, contract_uri: Optional[str] = None,
                   dry_run: bool = False, artifacts: Optional[ArtifactStore] = None,
                   resolver: Optional[PublishedContractResolver] = None,
                   records: Optional[DeploymentRecordStore] = None) -> Optional[DeployedContract]:
    """
    Deploy a target and record the resulting address.

    Args:
        target: the deployment definition
        config: project configuration
        network_name: network to deploy to (default: the target's network)
        source: "artifacts" or "published" (default: the target's source)
        contract_uri: published contract URI, overriding the configured one
        dry_run: resolve everything but do not submit the transaction

    Returns:
        The deployed contract, or None on a dry run
    """
    network = config.network(network_name or target.default_network)
    source = source or target.default_source

    w3 = connect(network)
    signers = get_signers(w3, network, config.receipt_timeout)
    ctx = DeploymentContext(config, w3, signers, source, artifacts=artifacts, resolver=resolver,
                            contract_uri=contract_uri or target.contract_uri(config))

    logger.info(f"Deploying {target.contract} to {network.name} with account: {ctx.deployer.address}")

    artifact = ctx.load_artifact(target.contract, ctx.contract_uri)
    target.check_artifact(artifact)
    args = target.args(ctx)
    if target.before_deploy:
        target.before_deploy(ctx)

    if dry_run:
        logger.info(f"Dry run: would deploy {artifact.name} from {artifact.source} with args {args}")
        return None

    deployed = ContractFactory(w3, artifact).deploy(ctx.deployer, *args)
    logger.info(f"{deployed.name} deployed to: {deployed.address}")

    # record before hooks so a failing hook does not lose the address
    (records or DeploymentRecordStore(config.deployments_dir)).save(network.name, network.chain_id, deployed, source)

    if target.after_deploy:
        target.after_deploy(ctx, deployed)
    return deployed
