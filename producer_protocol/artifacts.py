"""
Compiled contract artifacts produced by the Solidity build.

Artifacts follow the Hardhat layout:
    artifacts/contracts/<Name>.sol/<Name>.json  ->  {"abi": [...], "bytecode": "0x..."}
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import ArtifactError

logger = logging.getLogger(__name__)


def normalize_bytecode(bytecode: Optional[str]) -> str:
    """Return bytecode with a 0x prefix, or an empty string"""
    if not bytecode:
        return ""
    bytecode = bytecode.strip()
    if not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode
    return "" if bytecode == "0x" else bytecode


@dataclass
class ContractArtifact:
    """ABI and creation bytecode for a named contract"""
    name: str
    abi: List[Dict[str, Any]]
    bytecode: str
    source: str = field(default="")

    def has_function(self, function_name: str) -> bool:
        return any(
            entry.get("type") == "function" and entry.get("name") == function_name
            for entry in self.abi
        )


def _is_deployable(path: str) -> bool:
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        return False
    if not isinstance(data, dict):
        return False
    return isinstance(data.get("abi"), list) and bool(normalize_bytecode(data.get("bytecode")))


class ArtifactStore:
    """Looks up compiled contracts under an artifacts directory"""

    def __init__(self, root: str = "artifacts"):
        self.root = root

    def path_for(self, name: str) -> str:
        """
        Return the artifact path for a contract, searching when not in the default place.

        The search walks directories in sorted order and prefers a deployable
        artifact (ABI and bytecode) over an interface or abstract contract of
        the same name.
        """
        default = os.path.join(self.root, "contracts", f"{name}.sol", f"{name}.json")
        if os.path.exists(default):
            return default

        # contracts in subfolders or in a file named differently from the contract
        first_match = None
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames.sort()
            if "build-info" in dirpath:
                continue
            if f"{name}.json" not in filenames:
                continue
            candidate = os.path.join(dirpath, f"{name}.json")
            if _is_deployable(candidate):
                return candidate
            first_match = first_match or candidate

        if first_match:
            # load() reports what is wrong with it
            return first_match

        raise ArtifactError(
            f"Artifact for '{name}' not found under {self.root}. "
            "Compile the contracts first (npx hardhat compile)."
        )

    def load(self, name: str) -> ContractArtifact:
        """
        Load a deployable artifact.

        Raises:
            ArtifactError: missing file, invalid JSON, or no creation bytecode
        """
        path = self.path_for(name)
        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ArtifactError(f"Could not read artifact {path}: {e}")

        abi = data.get("abi")
        if not isinstance(abi, list):
            raise ArtifactError(f"Artifact {path} has no ABI")

        bytecode = normalize_bytecode(data.get("bytecode"))
        if not bytecode:
            raise ArtifactError(f"Artifact {path} has no bytecode (interface or abstract contract?)")

        logger.debug(f"Loaded artifact {name} from {path}")
        return ContractArtifact(name=data.get("contractName", name), abi=abi, bytecode=bytecode, source=path)
