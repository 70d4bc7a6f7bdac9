"""Blockchain Network Module

Configuration of the networks the contracts are deployed to and a JSON-RPC
client for querying them.

Components:
- NETWORKS: Named network table (RPC URL template, chain id, accounts)
- Secrets: ``secrets.json`` values with environment overrides
- Address books: per-network ``networks-<name>.json`` files
- RpcClient: JSON-RPC 2.0 over HTTP
"""

from .config import (
    NETWORKS,
    LOCAL_NETWORKS,
    COMPILER,
    NetworkConfig,
    CompilerSettings,
    Secrets,
    ConfigurationError,
    get_network,
    load_secrets,
    get_deployer,
    load_address_book,
    require_address,
    verify_command
)
from .rpc_client import RpcClient, RPCError

__all__ = [
    'NETWORKS',
    'LOCAL_NETWORKS',
    'COMPILER',
    'NetworkConfig',
    'CompilerSettings',
    'Secrets',
    'ConfigurationError',
    'get_network',
    'load_secrets',
    'get_deployer',
    'load_address_book',
    'require_address',
    'verify_command',
    'RpcClient',
    'RPCError'
]

__version__ = '1.0.0'
