"""Named networks, secrets, address books and compiler settings.

Mirrors the deployment setup of the contracts repository: every network
has an RPC URL template filled from ``secrets.json`` (or environment
variables), deployment scripts read per-network address books named
``networks-<name>.json`` and print a verification command afterwards.
"""

import json
import os
import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional

from wallet.signers import Signer, default_signers, signer_from_private_key

logger = logging.getLogger(__name__)

LOCAL_NETWORKS = ('hardhat', 'localhost')
DEFAULT_SECRETS_FILE = 'secrets.json'
DEFAULT_ADDRESS_BOOK_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))), 'scripts'
)


class ConfigurationError(Exception):
    """Missing or invalid network configuration"""
    pass


@dataclass(frozen=True)
class NetworkConfig:
    """RPC endpoint description of a named network"""
    name: str
    url: str
    chain_id: int
    # 'local' uses the development mnemonic, 'secrets' the configured private key
    accounts: str = 'secrets'

    @property
    def is_local(self) -> bool:
        return self.accounts == 'local'

    def rpc_url(self, secrets: 'Secrets' = None) -> str:
        """Fill the URL template from secrets"""
        if '{' not in self.url:
            return self.url
        secrets = secrets or Secrets()
        values = {
            'alchemyApiKey': secrets.alchemy_api_key,
            'alchemyApiKeyProd': secrets.alchemy_api_key_prod
        }
        try:
            url = self.url.format(**values)
        except KeyError as e:
            raise ConfigurationError(f"Unknown placeholder {e} in RPC URL of {self.name}") from e
        missing = [key for key, value in values.items() if f"{{{key}}}" in self.url and not value]
        if missing:
            raise ConfigurationError(f"Network {self.name} requires {', '.join(missing)} in secrets")
        return url


NETWORKS: Dict[str, NetworkConfig] = {
    'hardhat': NetworkConfig('hardhat', 'in-process', 31337, 'local'),
    'localhost': NetworkConfig('localhost', 'http://127.0.0.1:8545', 31337, 'local'),
    'rinkeby': NetworkConfig('rinkeby', 'https://eth-rinkeby.alchemyapi.io/v2/{alchemyApiKey}', 4),
    'goerli': NetworkConfig('goerli', 'https://eth-goerli.alchemyapi.io/v2/{alchemyApiKey}', 5),
    'mainnet': NetworkConfig('mainnet', 'https://cloudflare-eth.com', 1),
    'bsc': NetworkConfig('bsc', 'https://bsc-dataseed.binance.org/', 56),
    'fantom_testnet': NetworkConfig('fantom_testnet', 'https://rpc.testnet.fantom.network/', 4002),
    'fantom': NetworkConfig('fantom', 'https://rpc.ftm.tools/', 250),
    'moonriver': NetworkConfig('moonriver', 'https://rpc.api.moonriver.moonbeam.network', 1285),
    'moonbase_testnet': NetworkConfig('moonbase_testnet', 'https://rpc.testnet.moonbeam.network', 1287),
    'avalanche': NetworkConfig('avalanche', 'https://api.avax.network/ext/bc/C/rpc', 43114),
    'matic': NetworkConfig('matic', 'https://rpc-mainnet.maticvigil.com', 137)
}


def get_network(name: str) -> NetworkConfig:
    """Get network configuration by name"""
    try:
        return NETWORKS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown network {name!r}; expected one of {', '.join(sorted(NETWORKS))}"
        ) from None


@dataclass(frozen=True)
class CompilerSettings:
    version: str = "0.8.16"
    optimizer_enabled: bool = True
    optimizer_runs: int = 200

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'settings': {
                'optimizer': {'enabled': self.optimizer_enabled, 'runs': self.optimizer_runs}
            }
        }


COMPILER = CompilerSettings()


# secrets.json key -> (attribute, environment variable)
SECRET_FIELDS = {
    'alchemyApiKey': ('alchemy_api_key', 'ALCHEMY_API_KEY'),
    'privateKey': ('private_key', 'PRIVATE_KEY'),
    'daoPrivateKey': ('dao_private_key', 'DAO_PRIVATE_KEY'),
    'etherscanApiKey': ('etherscan_api_key', 'ETHERSCAN_API_KEY'),
    'alchemyApiKeyProd': ('alchemy_api_key_prod', 'ALCHEMY_API_KEY_PROD')
}


@dataclass
class Secrets:
    alchemy_api_key: Optional[str] = None
    private_key: Optional[str] = None
    dao_private_key: Optional[str] = None
    etherscan_api_key: Optional[str] = None
    alchemy_api_key_prod: Optional[str] = None
    source: Optional[str] = field(default=None, compare=False)

    def redacted(self) -> Dict[str, Any]:
        """Secret presence flags, safe to log"""
        return {
            key: value is not None
            for key, value in asdict(self).items()
            if key != 'source'
        }


def load_secrets(path: str = None, environ: Dict[str, str] = None) -> Secrets:
    """Load ``secrets.json`` and apply environment variable overrides

    A missing file yields empty secrets; local networks need none.
    """
    path = path or os.environ.get('SECRETS_FILE', DEFAULT_SECRETS_FILE)
    environ = os.environ if environ is None else environ

    data: Dict[str, Any] = {}
    if os.path.exists(path):
        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid secrets file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Secrets file {path} must contain a JSON object")
    else:
        logger.debug(f"No secrets file at {path}")

    values = {}
    for key, (attribute, env_name) in SECRET_FIELDS.items():
        value = environ.get(env_name) or data.get(key)
        values[attribute] = value or None
    return Secrets(source=path if data else None, **values)


def get_deployer(network: NetworkConfig, secrets: Secrets = None) -> Signer:
    """Signer used by deployment scripts on ``network``"""
    if network.is_local:
        return default_signers(1)[0]
    secrets = secrets or load_secrets()
    if not secrets.private_key:
        raise ConfigurationError(f"Network {network.name} requires privateKey in secrets")
    try:
        return signer_from_private_key(secrets.private_key)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"Invalid privateKey for {network.name}: {e}") from e


def address_book_path(network_name: str, directory: str = None) -> str:
    return os.path.join(directory or DEFAULT_ADDRESS_BOOK_DIR, f"networks-{network_name}.json")


def load_address_book(network_name: str, directory: str = None) -> Dict[str, Any]:
    """Read ``networks-<name>.json``; local networks may have none"""
    path = address_book_path(network_name, directory)
    if not os.path.exists(path):
        if network_name in LOCAL_NETWORKS:
            return {}
        raise ConfigurationError(f"Address book not found: {path}")
    with open(path, 'r') as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid address book {path}: {e}") from e


def require_address(book: Dict[str, Any], key: str, network_name: str) -> str:
    value = book.get(key)
    if not value:
        raise ConfigurationError(f"{key} missing from address book of {network_name}")
    return value


def verify_command(network_name: str, address: str, *args: Any) -> str:
    """Render the hardhat verification command for a deployed contract"""
    parts = ["npx hardhat verify", "--network", network_name, address]
    for arg in args:
        if isinstance(arg, str) and not arg.startswith('0x'):
            parts.append(f'"{arg}"')
        else:
            parts.append(str(arg))
    return ' '.join(parts)
