from flask import Flask, request
from flask_cors import CORS
from flask_restful import Api, Resource
import logging
from typing import Any, Dict

from blockchain.core.transaction import jsonable
from security.cryptography import CryptoUtils
from smart_contracts.engine import SmartContractEngine, get_engine

logger = logging.getLogger(__name__)


class BlockchainAPI:
    """Read-only API over a local chain and the contracts deployed on it"""

    def __init__(self, engine: SmartContractEngine = None):
        self.engine = engine or get_engine()
        self.app = Flask(__name__)

        # Enable CORS for all routes
        CORS(self.app)

        # Initialize Flask-RESTful
        self.api = Api(self.app)

        # Register API routes
        self._register_routes()

    def _register_routes(self):
        """Register all API routes"""
        kwargs = {'api': self}
        self.api.add_resource(HealthResource, '/api/health', resource_class_kwargs=kwargs)

        # Chain routes
        self.api.add_resource(ChainInfoResource, '/api/chain/info', resource_class_kwargs=kwargs)
        self.api.add_resource(BlockResource, '/api/blocks/<int:number>', resource_class_kwargs=kwargs)
        self.api.add_resource(TransactionReceiptResource, '/api/transactions/<tx_hash>',
                              resource_class_kwargs=kwargs)

        # Account routes
        self.api.add_resource(AccountsResource, '/api/accounts', resource_class_kwargs=kwargs)

        # Contract routes
        self.api.add_resource(ContractListResource, '/api/contracts', resource_class_kwargs=kwargs)
        self.api.add_resource(ContractResource, '/api/contracts/<address>', resource_class_kwargs=kwargs)
        self.api.add_resource(MarketRoundResource,
                              '/api/markets/<address>/rounds/<int:timeframe_id>/<int:epoch>',
                              resource_class_kwargs=kwargs)

    def run(self, host='127.0.0.1', port=5000, debug=False):
        """Run the Flask application"""
        logger.info(f"Starting API server on {host}:{port}")
        self.app.run(host=host, port=port, debug=debug)


def _checksum_or_none(address: str):
    if not CryptoUtils.is_address(address):
        return None
    return CryptoUtils.to_checksum(address)


class HealthResource(Resource):
    def __init__(self, api):
        self.api = api

    def get(self):
        return {'status': 'healthy', 'block_number': self.api.engine.get_block_number()}


class ChainInfoResource(Resource):
    """Chain information endpoint"""

    def __init__(self, api):
        self.api = api

    def get(self):
        """Get chain id, head block and engine statistics"""
        engine = self.api.engine
        info = engine.chain.get_chain_info()
        info['stats'] = engine.get_engine_stats()
        return jsonable(info)


class BlockResource(Resource):
    def __init__(self, api):
        self.api = api

    def get(self, number):
        block = self.api.engine.chain.get_block_by_height(number)
        if block is None:
            return {'error': f'Block {number} not found'}, 404
        return jsonable(block.to_dict())


class TransactionReceiptResource(Resource):
    """Transaction receipt endpoint"""

    def __init__(self, api):
        self.api = api

    def get(self, tx_hash):
        receipt = self.api.engine.get_transaction_receipt(tx_hash)
        if receipt is None:
            return {'error': f'Transaction {tx_hash} not found'}, 404
        return jsonable(receipt.to_dict())


class AccountsResource(Resource):
    """Development accounts with their balances and nonces"""

    def __init__(self, api):
        self.api = api

    def get(self):
        engine = self.api.engine
        return {
            'accounts': [{
                'index': signer.index,
                'address': signer.address,
                'balance': str(engine.get_account_balance(signer.address)),
                'nonce': engine.chain.get_transaction_count(signer.address)
            } for signer in engine.get_signers()]
        }


class ContractListResource(Resource):
    """Deployed contracts, optionally filtered by ``?name=``"""

    def __init__(self, api):
        self.api = api

    def get(self):
        name = request.args.get('name')
        contracts = self.api.engine.registry.list_contracts(name)
        return {'contracts': [jsonable(metadata.to_dict()) for metadata in contracts]}


class ContractResource(Resource):
    """Contract metadata and public state"""

    def __init__(self, api):
        self.api = api

    def get(self, address):
        checksum = _checksum_or_none(address)
        if checksum is None:
            return {'error': f'Invalid address: {address}'}, 400
        engine = self.api.engine
        metadata = engine.registry.get_metadata(checksum)
        if metadata is None:
            return {'error': f'No contract at {checksum}'}, 404

        result: Dict[str, Any] = metadata.to_dict()
        result['balance'] = str(engine.get_account_balance(checksum))
        result['state'] = engine.get_contract_state(checksum)
        return jsonable(result)


class MarketRoundResource(Resource):
    """Round of a binary market timeframe"""

    def __init__(self, api):
        self.api = api

    def get(self, address, timeframe_id, epoch):
        checksum = _checksum_or_none(address)
        if checksum is None:
            return {'error': f'Invalid address: {address}'}, 400
        engine = self.api.engine
        metadata = engine.registry.get_metadata(checksum)
        if metadata is None or metadata.name != 'BinaryMarket':
            return {'error': f'No binary market at {checksum}'}, 404

        market = engine.get_contract_at('BinaryMarket', checksum)
        round_ = market.rounds.get(timeframe_id, {}).get(epoch)
        if round_ is None:
            return {'error': f'Round {epoch} of timeframe {timeframe_id} not found'}, 404
        round_['timeframe_id'] = timeframe_id
        round_['bettable'] = market.bettable(timeframe_id, epoch)
        return jsonable(round_)


# Main application factory
def create_app(engine: SmartContractEngine = None):
    """Create and configure the Flask application"""
    api = BlockchainAPI(engine)
    return api.app
