"""
Published contract descriptions for hosted deployments.

A published contract is a JSON document, usually pinned on IPFS and
referenced by an ipfs:// contract URI, that carries (or links to) the ABI
and creation bytecode. The resolver fetches it through an HTTP gateway so
the contract can be deployed without a local build.
"""

import hashlib
import json
import logging
import os
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import requests

from .artifacts import ContractArtifact, normalize_bytecode
from .config import DEFAULT_IPFS_GATEWAY
from .errors import PublishedContractError

logger = logging.getLogger(__name__)

CACHE_DIR = os.path.expanduser('~/.producer-protocol/cache')
HTTP_CACHE_SECONDS = 86400
REQUEST_TIMEOUT = 30

PLACEHOLDER_MARKERS = ("QmYourMetadataHere", "INSERT_", "YOUR_")


class PublishedContractResolver:
    """Fetches publish documents and turns them into deployable artifacts"""

    def __init__(self, gateway: str = DEFAULT_IPFS_GATEWAY, secret_key: Optional[str] = None,
                 cache_dir: Optional[str] = CACHE_DIR, session: Optional[requests.Session] = None,
                 secret_key_hosts: Optional[List[str]] = None):
        self.gateway = gateway if gateway.endswith("/") else gateway + "/"
        self.secret_key = secret_key
        # the key goes to hosts named explicitly and to a gateway chosen by the
        # operator, never to the public default gateway or any other host
        self.secret_key_hosts = {host.strip().lower() for host in secret_key_hosts or [] if host.strip()}
        if self.gateway != DEFAULT_IPFS_GATEWAY:
            self.secret_key_hosts.add(urlparse(self.gateway).hostname)
        self.cache_dir = cache_dir
        self.session = session or requests.Session()

    def headers_for(self, url: str) -> Dict[str, str]:
        if not self.secret_key:
            return {}
        if urlparse(url).hostname not in self.secret_key_hosts:
            return {}
        return {"x-secret-key": self.secret_key}

    def gateway_url(self, uri: str) -> str:
        """Translate a contract URI into a fetchable HTTP URL"""
        if not uri:
            raise PublishedContractError("Empty contract URI")
        if any(marker in uri for marker in PLACEHOLDER_MARKERS):
            raise PublishedContractError(
                f"Contract URI '{uri}' is a placeholder. Publish the contract and set its URI first."
            )
        if uri.startswith("ipfs://"):
            return self.gateway + uri[len("ipfs://"):].lstrip("/")
        if uri.startswith("http://") or uri.startswith("https://"):
            return uri
        raise PublishedContractError(f"Unsupported contract URI scheme: {uri}")

    def _cache_path(self, url: str) -> Optional[str]:
        if not self.cache_dir:
            return None
        h = hashlib.sha256(url.encode()).hexdigest()
        return os.path.join(self.cache_dir, h)

    def fetch_text(self, uri: str) -> str:
        """
        Fetch a document, using the local cache where possible.

        ipfs:// content is addressed by hash and never expires from the cache;
        plain HTTP documents expire after 24 hours.
        """
        url = self.gateway_url(uri)
        cache_path = self._cache_path(url)
        if cache_path and os.path.exists(cache_path):
            immutable = uri.startswith("ipfs://")
            if immutable or time.time() - os.path.getmtime(cache_path) < HTTP_CACHE_SECONDS:
                logger.debug(f"Loading from cache: {url}")
                with open(cache_path, 'r') as f:
                    return f.read()

        logger.info(f"Fetching published contract data: {url}")
        headers = self.headers_for(url)
        try:
            response = self.session.get(url, headers=headers, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise PublishedContractError(f"Error fetching {url}: {e}")

        text = response.text
        if cache_path:
            os.makedirs(self.cache_dir, exist_ok=True)
            with open(cache_path, 'w') as f:
                f.write(text)
        return text

    def fetch_json(self, uri: str) -> Any:
        text = self.fetch_text(uri)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise PublishedContractError(f"{uri} is not valid JSON: {e}")

    def _resolve_abi(self, document: Dict[str, Any]) -> Optional[List[Dict[str, Any]]]:
        if isinstance(document.get("abi"), list):
            return document["abi"]
        metadata_uri = document.get("metadataUri")
        if not metadata_uri:
            return None
        # solc metadata keeps the ABI under output.abi
        metadata = self.fetch_json(metadata_uri)
        abi = metadata.get("output", {}).get("abi") if isinstance(metadata, dict) else None
        return abi if isinstance(abi, list) else None

    def _resolve_bytecode(self, document: Dict[str, Any]) -> str:
        if document.get("bytecode"):
            return normalize_bytecode(document["bytecode"])
        bytecode_uri = document.get("bytecodeUri")
        if not bytecode_uri:
            return ""
        return normalize_bytecode(self.fetch_text(bytecode_uri))

    def resolve(self, uri: str, name: Optional[str] = None) -> ContractArtifact:
        """
        Resolve a contract URI into a deployable artifact.

        Args:
            uri: ipfs:// or http(s):// URI of the publish document
            name: expected contract name, used when the document carries none

        Raises:
            PublishedContractError: unreachable document, or no ABI / bytecode
        """
        document = self.fetch_json(uri)
        if not isinstance(document, dict):
            raise PublishedContractError(f"Publish document at {uri} is not a JSON object")

        contract_name = document.get("name") or name or "Contract"
        if name and document.get("name") and document["name"] != name:
            logger.warning(f"Publish document at {uri} describes '{document['name']}', expected '{name}'")

        abi = self._resolve_abi(document)
        if abi is None:
            raise PublishedContractError(f"Publish document at {uri} carries no ABI")
        bytecode = self._resolve_bytecode(document)
        if not bytecode:
            raise PublishedContractError(f"Publish document at {uri} carries no bytecode")

        return ContractArtifact(name=contract_name, abi=abi, bytecode=bytecode, source=uri)
