"""
Network and project configuration.

Everything is read from the process environment, after loading a local
.env file. Nothing else in the package calls os.getenv.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_IPFS_GATEWAY = "https://ipfs.io/ipfs/"

# name -> (url env vars, default url, chain id, proof-of-authority)
NETWORK_DEFINITIONS: Dict[str, Tuple[Tuple[str, ...], Optional[str], int, bool]] = {
    "hardhat": (("HARDHAT_RPC_URL",), "http://127.0.0.1:8545", 31337, False),
    "mumbai": (("POLYGON_MUMBAI_URL",), None, 80001, True),
    "optimismGoerli": (
        ("OPTIMISM_GOERLI_RPC_URL", "OPTIMISM_GOERLI_URL"),
        "https://rpc.thirdweb.com/optimism-goerli",
        420,
        False,
    ),
    "optimism": (("OPTIMISM_RPC_URL",), "https://mainnet.optimism.io", 10, False),
    "polygon": (("POLYGON_RPC_URL",), "https://polygon-rpc.com", 137, True),
}

LOCAL_NETWORK = "hardhat"


@dataclass
class NetworkConfig:
    """A single RPC endpoint and the accounts used on it"""
    name: str
    url: Optional[str]
    chain_id: int
    accounts: List[str] = field(default_factory=list)
    poa: bool = False

    @property
    def uses_node_accounts(self) -> bool:
        return not self.accounts

    def __repr__(self) -> str:
        # keys stay out of logs and tracebacks
        return (f"NetworkConfig(name={self.name!r}, url={self.url!r}, chain_id={self.chain_id}, "
                f"accounts=<{len(self.accounts)} keys>, poa={self.poa})")


@dataclass
class ProjectConfig:
    networks: Dict[str, NetworkConfig]
    default_network: str = LOCAL_NETWORK
    artifacts_dir: str = "artifacts"
    deployments_dir: str = "deployments"
    ipfs_gateway: str = DEFAULT_IPFS_GATEWAY
    thirdweb_secret_key: Optional[str] = None
    secret_key_hosts: List[str] = field(default_factory=list)
    receipt_timeout: int = 300
    log_level: str = "INFO"
    log_file: Optional[str] = None
    environ: Mapping[str, str] = field(default_factory=dict, repr=False)

    def network(self, name: Optional[str] = None) -> NetworkConfig:
        """
        Look up a network by name, falling back to the default network.

        Raises:
            ConfigError: unknown network, or a network with no RPC URL set
        """
        name = name or self.default_network
        if name not in self.networks:
            known = ", ".join(sorted(self.networks))
            raise ConfigError(f"Unknown network '{name}'. Known networks: {known}")
        network = self.networks[name]
        if not network.url:
            env_names = " or ".join(NETWORK_DEFINITIONS[name][0])
            raise ConfigError(f"Network '{name}' has no RPC URL. Set {env_names}.")
        return network

    def env(self, name: str, default: Optional[str] = None) -> Optional[str]:
        value = self.environ.get(name)
        return value if value else default

    def require_env(self, name: str) -> str:
        return require_env(name, self.environ)


def require_env(name: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """Return a required environment variable, raising ConfigError when unset or empty"""
    environ = os.environ if environ is None else environ
    value = environ.get(name)
    if not value:
        raise ConfigError(f"{name} not found in environment")
    return value


def _split_keys(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [key.strip() for key in value.split(",") if key.strip()]


def _remote_accounts(environ: Mapping[str, str]) -> List[str]:
    private_key = environ.get("PRIVATE_KEY")
    if not private_key:
        return []
    return [private_key] + _split_keys(environ.get("ADDITIONAL_PRIVATE_KEYS"))


def _first_set(environ: Mapping[str, str], names: Tuple[str, ...]) -> Optional[str]:
    for name in names:
        if environ.get(name):
            return environ[name]
    return None


def load_config(environ: Optional[Mapping[str, str]] = None) -> ProjectConfig:
    """
    Build the project configuration.

    Args:
        environ: mapping to read from. Defaults to os.environ after the
            .env file has been loaded.

    Returns:
        ProjectConfig with every known network
    """
    if environ is None:
        load_dotenv()
        environ = dict(os.environ)

    networks: Dict[str, NetworkConfig] = {}
    for name, (url_vars, default_url, chain_id, poa) in NETWORK_DEFINITIONS.items():
        if name == LOCAL_NETWORK:
            accounts = _split_keys(environ.get("HARDHAT_PRIVATE_KEYS"))
        else:
            accounts = _remote_accounts(environ)
        networks[name] = NetworkConfig(
            name=name,
            url=_first_set(environ, url_vars) or default_url,
            chain_id=chain_id,
            accounts=accounts,
            poa=poa,
        )

    timeout_raw = environ.get("RECEIPT_TIMEOUT") or "300"
    try:
        receipt_timeout = int(timeout_raw)
    except ValueError:
        raise ConfigError(f"RECEIPT_TIMEOUT must be an integer number of seconds, got '{timeout_raw}'")

    default_network = environ.get("DEFAULT_NETWORK") or LOCAL_NETWORK
    if default_network not in networks:
        raise ConfigError(f"DEFAULT_NETWORK '{default_network}' is not a known network")

    gateway = environ.get("IPFS_GATEWAY") or DEFAULT_IPFS_GATEWAY
    if not gateway.endswith("/"):
        gateway += "/"

    return ProjectConfig(
        networks=networks,
        default_network=default_network,
        artifacts_dir=environ.get("ARTIFACTS_DIR") or "artifacts",
        deployments_dir=environ.get("DEPLOYMENTS_DIR") or "deployments",
        ipfs_gateway=gateway,
        thirdweb_secret_key=environ.get("THIRDWEB_SECRET_KEY") or None,
        secret_key_hosts=_split_keys(environ.get("THIRDWEB_SECRET_KEY_HOSTS")),
        receipt_timeout=receipt_timeout,
        log_level=(environ.get("LOG_LEVEL") or "INFO").upper(),
        log_file=environ.get("LOG_FILE") or None,
        environ=environ,
    )
