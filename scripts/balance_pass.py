"""Deploy the Balance Pass NFT"""

from typing import Dict

from smart_contracts.engine import Contract
from .common import DeploymentContext

MAX_MINT = 350
MAX_WALLET_LIMIT = 1
BASE_TOKEN_URI = "ipfs://Qmc8A19qUxy1VWeSDtJj9cGk1DAfE88E47Xb5BFn5Z6Hg1"
MERKLE_ROOT = "0x61ca13fc57a55588b6feda07538f2a1a514c62fbc0ab534fb5a77214ca1df545"
PHASE_LENGTH = 24 * 60 * 60


def main(ctx: DeploymentContext) -> Dict[str, Contract]:
    book = ctx.address_book
    start = book.get('passMintTimestamp') or ctx.engine.latest_timestamp() + PHASE_LENGTH
    whitelist1_root = book.get('passWhitelist1Root', MERKLE_ROOT)
    whitelist2_root = book.get('passWhitelist2Root', MERKLE_ROOT)

    pass_nft = ctx.deploy(
        'BalancePass',
        MAX_MINT,
        MAX_WALLET_LIMIT,
        BASE_TOKEN_URI,
        start,
        start + PHASE_LENGTH,
        start + 2 * PHASE_LENGTH,
        whitelist1_root,
        whitelist2_root
    )
    return {'BalancePass': pass_nft}
