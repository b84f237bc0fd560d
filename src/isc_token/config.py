import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from eth_utils import is_address, to_checksum_address

from isc_token.errors import ConfigurationError

SHIMMER_EVM_TESTNET = "ShimmerEVMTestnet"
ORIGIN_TESTNET = "OriginTestnet"
TARGET_TESTNET = "TargetTestnet"

DEFAULT_SHIMMEREVM_JSONRPC = "https://json-rpc.evm.testnet.shimmer.network"
DEFAULT_SHIMMEREVM_CHAINID = 1073
DEFAULT_CONTROLLER_ARTIFACT = "artifacts/NativeTokenController.json"

DEFAULT_RPC_TIMEOUT = 30.0  # Seconds.
DEFAULT_RECEIPT_TIMEOUT = 180.0
DEFAULT_SETTLE_INTERVAL = 1.0
DEFAULT_SETTLE_TIMEOUT = 60.0

MAX_DECIMALS = 255


@dataclass(frozen=True)
class NetworkVariables:
    url: str
    chain_id: str
    private_key: str
    default_url: Optional[str] = None
    default_chain_id: Optional[int] = None


NETWORK_VARIABLES: Dict[str, NetworkVariables] = {
    SHIMMER_EVM_TESTNET: NetworkVariables(
        url="SHIMMEREVM_JSONRPC",
        chain_id="SHIMMEREVM_CHAINID",
        private_key="PRIVATE_KEY",
        default_url=DEFAULT_SHIMMEREVM_JSONRPC,
        default_chain_id=DEFAULT_SHIMMEREVM_CHAINID,
    ),
    ORIGIN_TESTNET: NetworkVariables(
        url="ORIGIN_NODE_URL",
        chain_id="ORIGIN_NETWORK_ID",
        private_key="DEPLOYER_PRIVATE_KEY",
    ),
    TARGET_TESTNET: NetworkVariables(
        url="TARGET_NODE_URL",
        chain_id="TARGET_NETWORK_ID",
        private_key="DEPLOYER_PRIVATE_KEY",
    ),
}


@dataclass(frozen=True)
class NetworkConfig:
    name: str
    url: str
    chain_id: int
    private_key: str = field(repr=False)


@dataclass(frozen=True)
class DeploymentConfig:
    token_name: str
    token_symbol: str
    token_decimals: int
    token_max_supply: int
    target_address: str
    networks: Mapping[str, NetworkConfig]
    deploy_network: str = ORIGIN_TESTNET
    target_network: str = TARGET_TESTNET
    controller_artifact: str = DEFAULT_CONTROLLER_ARTIFACT
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    settle_interval: float = DEFAULT_SETTLE_INTERVAL
    settle_timeout: float = DEFAULT_SETTLE_TIMEOUT

    @property
    def deploying(self) -> NetworkConfig:
        return self.networks[self.deploy_network]

    @property
    def target(self) -> NetworkConfig:
        return self.networks[self.target_network]


def _get(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _require(environ: Mapping[str, str], name: str) -> str:
    value = _get(environ, name)
    if value is None:
        raise ConfigurationError(f"Missing required environment variable {name}")
    return value


def _to_int(name: str, value: str) -> int:
    try:
        # Accept hex chain ids as well, as printed by eth_chainId.
        return int(value, 0)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


def _optional_float(environ: Mapping[str, str], name: str, default: float) -> float:
    value = _get(environ, name)
    if value is None:
        return default
    try:
        result = float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None
    if result <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value!r}")
    return result


def load_network(
    environ: Mapping[str, str], name: str, required: bool = True
) -> Optional[NetworkConfig]:
    """
    Reads the url, chain id and signing key of one network. With required=False an incomplete
    network, or one with a malformed chain id, is skipped instead of failing the run.
    """
    variables = NETWORK_VARIABLES[name]
    url = _get(environ, variables.url) or variables.default_url
    raw_chain_id = _get(environ, variables.chain_id)
    private_key = _get(environ, variables.private_key)

    if not required and (
        url is None
        or (raw_chain_id is None and variables.default_chain_id is None)
        or private_key is None
    ):
        return None

    if url is None:
        raise ConfigurationError(f"Missing required environment variable {variables.url}")
    if raw_chain_id is None:
        if variables.default_chain_id is None:
            raise ConfigurationError(
                f"Missing required environment variable {variables.chain_id}"
            )
        chain_id = variables.default_chain_id
    else:
        try:
            chain_id = _to_int(variables.chain_id, raw_chain_id)
        except ConfigurationError:
            if not required:
                return None
            raise
    if private_key is None:
        raise ConfigurationError(
            f"Missing required environment variable {variables.private_key}"
        )

    return NetworkConfig(name=name, url=url, chain_id=chain_id, private_key=private_key)


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    deploy_network: str = ORIGIN_TESTNET,
    target_network: str = TARGET_TESTNET,
) -> DeploymentConfig:
    """
    Builds the deployment configuration out of the process environment. Fails with
    ConfigurationError before any network I/O if a mandatory value is missing or malformed.
    """
    if environ is None:
        environ = os.environ
    for network_name in (deploy_network, target_network):
        if network_name not in NETWORK_VARIABLES:
            raise ConfigurationError(
                f"Unknown network {network_name!r}, expected one of "
                f"{', '.join(NETWORK_VARIABLES)}"
            )

    token_decimals = _to_int("TOKEN_DECIMALS", _require(environ, "TOKEN_DECIMALS"))
    if not 0 <= token_decimals <= MAX_DECIMALS:
        raise ConfigurationError(f"TOKEN_DECIMALS must be in [0, {MAX_DECIMALS}]")
    token_max_supply = _to_int("TOKEN_SUPPLY", _require(environ, "TOKEN_SUPPLY"))
    if token_max_supply <= 0:
        raise ConfigurationError("TOKEN_SUPPLY must be positive")

    target_address = _require(environ, "TARGET_ADDRESS")
    if not is_address(target_address):
        raise ConfigurationError(f"TARGET_ADDRESS is not a valid address: {target_address!r}")

    networks = {}
    for network_name in NETWORK_VARIABLES:
        required = network_name in (deploy_network, target_network)
        network = load_network(environ, network_name, required=required)
        if network is not None:
            networks[network_name] = network

    return DeploymentConfig(
        token_name=_require(environ, "TOKEN_NAME"),
        token_symbol=_require(environ, "TOKEN_SYMBOL"),
        token_decimals=token_decimals,
        token_max_supply=token_max_supply,
        target_address=to_checksum_address(target_address),
        networks=networks,
        deploy_network=deploy_network,
        target_network=target_network,
        controller_artifact=_get(environ, "CONTROLLER_ARTIFACT") or DEFAULT_CONTROLLER_ARTIFACT,
        rpc_timeout=_optional_float(environ, "RPC_TIMEOUT", DEFAULT_RPC_TIMEOUT),
        receipt_timeout=_optional_float(environ, "RECEIPT_TIMEOUT", DEFAULT_RECEIPT_TIMEOUT),
        settle_interval=_optional_float(environ, "SETTLE_INTERVAL", DEFAULT_SETTLE_INTERVAL),
        settle_timeout=_optional_float(environ, "SETTLE_TIMEOUT", DEFAULT_SETTLE_TIMEOUT),
    )
