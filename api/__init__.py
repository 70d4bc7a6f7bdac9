"""API Module

Read-only REST API over the local chain: chain info, blocks, transaction
receipts, development accounts, deployed contracts and binary market rounds.

Components:
- BlockchainAPI: Flask + Flask-RESTful application wrapper
- create_app: Application factory
"""

from .rest_api import (
    BlockchainAPI,
    ChainInfoResource,
    BlockResource,
    TransactionReceiptResource,
    AccountsResource,
    ContractListResource,
    ContractResource,
    MarketRoundResource,
    create_app
)

__all__ = [
    'BlockchainAPI',
    'ChainInfoResource',
    'BlockResource',
    'TransactionReceiptResource',
    'AccountsResource',
    'ContractListResource',
    'ContractResource',
    'MarketRoundResource',
    'create_app',
    'start_api_server'
]

__version__ = '1.0.0'

# API Configuration
DEFAULT_PORT = 5000
DEFAULT_HOST = '127.0.0.1'


def start_api_server(engine=None, host=DEFAULT_HOST, port=DEFAULT_PORT, debug=False):
    """Start the API server

    Args:
        engine: Engine whose chain is served (global engine by default)
        host (str): Host to bind to
        port (int): Port to listen on
        debug (bool): Enable debug mode
    """
    api = BlockchainAPI(engine)
    api.run(host=host, port=port, debug=debug)
    return api.app


CONFIG = {
    'DEFAULT_PORT': DEFAULT_PORT,
    'DEFAULT_HOST': DEFAULT_HOST
}
