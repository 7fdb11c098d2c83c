"""
Producer Protocol Deployment Tooling
====================================

Deployment and smoke-test scripts for the Producer Protocol contracts.

Structure:
- config: network configuration loaded from the environment
- artifacts / published: contract descriptions (local build or hosted)
- chain / factory: connection, signers and contract deployment
- targets / deploy: one deployment definition per contract
- smoke: post-deployment checks against deployed contracts
- cli: the `producer-protocol` command
"""

__version__ = "1.0.0"
__author__ = "Producer Protocol Team"
