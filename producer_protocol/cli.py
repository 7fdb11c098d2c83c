#!/usr/bin/env python3
"""
producer-protocol command line.

    producer-protocol deploy <target> [--network N] [--source artifacts|published]
    producer-protocol smoke <suite> [--network N] [--address A]
    producer-protocol networks
    producer-protocol targets
"""

import argparse
import logging
import sys
from typing import List, Optional

from .artifacts import ArtifactStore
from .chain import connect, get_signers
from .config import ProjectConfig, load_config
from .deploy import run_deployment
from .factory import ContractFactory
from .logs import configure_logging
from .smoke import SUITES, get_suite, run_suite
from .targets import SOURCES, TARGETS, get_target

logger = logging.getLogger("producer_protocol")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="producer-protocol",
                                     description="Deploy and smoke-test Producer Protocol contracts")
    subparsers = parser.add_subparsers(dest="command", required=True)

    deploy = subparsers.add_parser("deploy", help="deploy a contract")
    deploy.add_argument("target", choices=sorted(TARGETS))
    deploy.add_argument("--network", help="network name (default: the target's network)")
    deploy.add_argument("--source", choices=SOURCES, help="local build artifacts or a published contract URI")
    deploy.add_argument("--contract-uri", help="published contract URI (ipfs:// or https://)")
    deploy.add_argument("--dry-run", action="store_true", help="resolve everything but do not send")

    smoke = subparsers.add_parser("smoke", help="run post-deployment checks")
    smoke.add_argument("suite", choices=sorted(SUITES))
    smoke.add_argument("--network", help="network name (default: DEFAULT_NETWORK)")
    smoke.add_argument("--address", help="check an existing deployment instead of deploying a fresh one")

    subparsers.add_parser("networks", help="list configured networks")
    subparsers.add_parser("targets", help="list deployment targets")
    return parser


def cmd_deploy(args: argparse.Namespace, config: ProjectConfig) -> int:
    target = get_target(args.target)
    run_deployment(target, config, network_name=args.network, source=args.source,
                   contract_uri=args.contract_uri, dry_run=args.dry_run)
    return 0


def cmd_smoke(args: argparse.Namespace, config: ProjectConfig) -> int:
    suite = get_suite(args.suite)
    network = config.network(args.network)
    w3 = connect(network)
    signers = get_signers(w3, network, config.receipt_timeout)
    factory = ContractFactory(w3, ArtifactStore(config.artifacts_dir).load(suite.contract))

    results = run_suite(suite, factory, signers, address=args.address)
    return 0 if all(result.passed for result in results) else 1


def cmd_networks(args: argparse.Namespace, config: ProjectConfig) -> int:
    for name, network in config.networks.items():
        marker = "*" if name == config.default_network else " "
        accounts = "node accounts" if network.uses_node_accounts else f"{len(network.accounts)} key(s)"
        print(f"{marker} {name:<16} chain {network.chain_id:<6} {network.url or '(no RPC URL set)'}  [{accounts}]")
    return 0


def cmd_targets(args: argparse.Namespace, config: ProjectConfig) -> int:
    for name, target in TARGETS.items():
        print(f"{name:<28} {target.contract:<26} {target.default_network:<16} {target.default_source:<10} "
              f"{target.description}")
    return 0


COMMANDS = {
    "deploy": cmd_deploy,
    "smoke": cmd_smoke,
    "networks": cmd_networks,
    "targets": cmd_targets,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point: exit code 0 on success, 1 on any failure"""
    try:
        args = build_parser().parse_args(argv)
    except SystemExit as e:
        # argparse exits 2 on usage errors and 0 after --help
        return 1 if e.code else 0

    try:
        config = load_config()
    except Exception as e:
        configure_logging()
        logger.error(f"Invalid configuration: {e}")
        return 1

    configure_logging(config.log_level, config.log_file)
    try:
        return COMMANDS[args.command](args, config)
    except KeyboardInterrupt:
        logger.info("Stopped by user")
        return 1
    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=logger.isEnabledFor(logging.DEBUG))
        return 1


if __name__ == "__main__":
    sys.exit(main())
