"""JSON-RPC 2.0 client for remote Ethereum nodes"""

import itertools
import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


class RPCError(Exception):
    """Error object returned by a JSON-RPC endpoint"""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data


class RpcClient:
    """Minimal read-only Ethereum JSON-RPC client"""

    def __init__(self, url: str, timeout: float = 30.0, session: requests.Session = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self._ids = itertools.count(1)

    def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        payload = {
            'jsonrpc': '2.0',
            'id': next(self._ids),
            'method': method,
            'params': params or []
        }
        logger.debug(f"RPC {method} -> {self.url}")
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise RPCError(-32603, f"{method} failed: {e}") from e
        except ValueError as e:
            raise RPCError(-32700, f"Invalid JSON response to {method}") from e

        error = body.get('error')
        if error:
            raise RPCError(error.get('code', -32603), error.get('message', 'unknown error'),
                           error.get('data'))
        return body.get('result')

    # Ethereum methods

    def chain_id(self) -> int:
        return int(self.request('eth_chainId'), 16)

    def block_number(self) -> int:
        return int(self.request('eth_blockNumber'), 16)

    def get_balance(self, address: str, block: str = 'latest') -> int:
        return int(self.request('eth_getBalance', [address, block]), 16)

    def get_transaction_count(self, address: str, block: str = 'latest') -> int:
        return int(self.request('eth_getTransactionCount', [address, block]), 16)

    def call(self, to: str, data: str, block: str = 'latest') -> str:
        return self.request('eth_call', [{'to': to, 'data': data}, block])

    def get_network_info(self) -> Dict[str, Any]:
        """Chain id and head block of the endpoint"""
        return {
            'url': self.url,
            'chain_id': self.chain_id(),
            'block_number': self.block_number()
        }
