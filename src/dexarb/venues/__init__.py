"""Venue adapters and the node transport they share."""

from dexarb.venues.abi import SWAP_EVENT_TOPIC
from dexarb.venues.rpc import JsonRpcClient, NodeProvider, RpcError
from dexarb.venues.uniswap_v2 import UniswapV2Pair, get_amount_out


__all__ = [
    "JsonRpcClient",
    "NodeProvider",
    "RpcError",
    "SWAP_EVENT_TOPIC",
    "UniswapV2Pair",
    "get_amount_out",
]
