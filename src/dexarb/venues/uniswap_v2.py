"""
Uniswap V2 constant-product pair adapter.

Watches a pool's Swap events over a websocket subscription and turns the
post-swap reserves into directional rates. Contract calls and trades go
through web3 contract objects on the same node connection; trades are
sent from an account managed by the node.
"""

import logging
from collections.abc import AsyncIterator

from web3 import AsyncWeb3
from web3.contract.async_contract import AsyncContractFunction
from web3.exceptions import BadFunctionCallOutput, TimeExhausted

from dexarb.config.constants import (
    DEFAULT_FEE_PER_THOUSAND,
    DEFAULT_SWAP_GAS,
    DEFAULT_TRANSFER_GAS,
    RECEIPT_POLL_INTERVAL,
    RECEIPT_TIMEOUT,
)
from dexarb.config.settings import PairConfig
from dexarb.core.types import PairIdentity, RateObservation
from dexarb.utils.math import unscale_amount
from dexarb.utils.time import get_timestamp_us
from dexarb.venues.abi import ERC20_ABI, SWAP_EVENT_TOPIC, UNISWAP_V2_PAIR_ABI
from dexarb.venues.rpc import JsonRpcClient, NodeProvider, RpcError


logger = logging.getLogger(__name__)


def get_amount_out(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_per_thousand: int = DEFAULT_FEE_PER_THOUSAND,
) -> int:
    """
    Output of a constant-product swap, as computed by the pair contract.

    Example:
        >>> get_amount_out(1000, 1_000_000, 2_000_000)
        1992
    """
    if amount_in <= 0 or reserve_in <= 0 or reserve_out <= 0:
        return 0
    amount_in_with_fee = amount_in * (1000 - fee_per_thousand)
    numerator = amount_in_with_fee * reserve_out
    denominator = reserve_in * 1000 + amount_in_with_fee
    return numerator // denominator


class UniswapV2Pair:
    """
    One Uniswap-V2-style pool.

    ``asset1`` and ``asset2`` are the pool's token0 and token1. Quotes are
    for one whole input unit with the pool fee applied, so they are net of
    the venue fee.
    """

    def __init__(
        self,
        rpc: JsonRpcClient,
        address: str,
        asset1: str,
        asset2: str,
        venue: str = "UniswapV2",
        decimals1: int = 18,
        decimals2: int = 18,
        fee_per_thousand: int = DEFAULT_FEE_PER_THOUSAND,
        sender: str = "",
    ) -> None:
        self._rpc = rpc
        self._w3 = AsyncWeb3(NodeProvider(rpc), middleware=[])
        self._contract = self._w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(address),
            abi=UNISWAP_V2_PAIR_ABI,
        )
        self._identity = PairIdentity(
            asset1=asset1,
            asset2=asset2,
            venue=venue,
            address=address,
            decimals1=decimals1,
            decimals2=decimals2,
        )
        self._fee_per_thousand = fee_per_thousand
        self._sender = sender
        self._tokens: tuple[str, str] | None = None

    @classmethod
    def from_config(
        cls,
        config: PairConfig,
        rpc: JsonRpcClient,
        sender: str = "",
    ) -> "UniswapV2Pair":
        """Build an adapter from a roster entry."""
        return cls(
            rpc=rpc,
            address=config.address,
            asset1=config.asset1,
            asset2=config.asset2,
            venue=config.venue,
            decimals1=config.decimals1,
            decimals2=config.decimals2,
            fee_per_thousand=config.fee_per_thousand,
            sender=sender,
        )

    def identity(self) -> PairIdentity:
        return self._identity

    # =========================================================================
    # Rates
    # =========================================================================

    async def get_reserves(self) -> tuple[int, int]:
        """Read ``(reserve0, reserve1)`` from the pool."""
        try:
            reserve0, reserve1, _ = await self._contract.functions.getReserves().call()
        except BadFunctionCallOutput as e:
            raise RpcError(
                f"Malformed getReserves result from {self._identity.address}: {e}"
            ) from e
        return reserve0, reserve1

    def quote(self, reserve0: int, reserve1: int) -> tuple[float, float]:
        """
        Directional rates for the given reserves.

        Returns:
            ``(asset2 per asset1, asset1 per asset2)``, decimals normalized.
        """
        one1 = 10**self._identity.decimals1
        one2 = 10**self._identity.decimals2
        forward = unscale_amount(
            get_amount_out(one1, reserve0, reserve1, self._fee_per_thousand),
            self._identity.decimals2,
        )
        backward = unscale_amount(
            get_amount_out(one2, reserve1, reserve0, self._fee_per_thousand),
            self._identity.decimals1,
        )
        return forward, backward

    async def fetch_observation(self) -> RateObservation:
        """Snapshot current rates as an observation."""
        reserve0, reserve1 = await self.get_reserves()
        forward, backward = self.quote(reserve0, reserve1)
        return RateObservation(
            venue=self._identity.venue,
            asset_from=self._identity.asset1,
            asset_to=self._identity.asset2,
            address=self._identity.address,
            rate_forward=forward,
            rate_backward=backward,
            observed_at=get_timestamp_us(),
        )

    async def monitor(self) -> AsyncIterator[RateObservation]:
        """Yield one observation per Swap event on the pool."""
        params = [
            "logs",
            {"address": self._identity.address, "topics": [SWAP_EVENT_TOPIC]},
        ]
        async for _log in self._rpc.subscribe(params):
            yield await self.fetch_observation()

    # =========================================================================
    # Trading
    # =========================================================================

    async def execute_swap(self, amount_in1: int, amount_in2: int) -> bool:
        """
        Trade one side of the pool for the other.

        Exactly one of the amounts must be non-zero; it is the input in
        base units of that asset. The input is transferred to the pool,
        then ``swap`` is called for the output the current reserves give.

        Returns:
            True once both transactions are mined successfully.
        """
        if (amount_in1 > 0) == (amount_in2 > 0):
            logger.warning(
                f"Swap on {self._identity} needs exactly one input amount, "
                f"got ({amount_in1}, {amount_in2})"
            )
            return False
        if not self._sender:
            raise RpcError("No sender address configured for live trading")
        sender = AsyncWeb3.to_checksum_address(self._sender)

        token0, token1 = await self._get_tokens()
        reserve0, reserve1 = await self.get_reserves()

        if amount_in1 > 0:
            token_in, amount_in = token0, amount_in1
            amount0_out = 0
            amount1_out = get_amount_out(amount_in1, reserve0, reserve1, self._fee_per_thousand)
        else:
            token_in, amount_in = token1, amount_in2
            amount0_out = get_amount_out(amount_in2, reserve1, reserve0, self._fee_per_thousand)
            amount1_out = 0

        if amount0_out == 0 and amount1_out == 0:
            logger.warning(f"Swap on {self._identity} would yield nothing")
            return False

        token = self._w3.eth.contract(address=token_in, abi=ERC20_ABI)
        transfer = token.functions.transfer(self._contract.address, amount_in)
        if not await self._transact(transfer, sender, DEFAULT_TRANSFER_GAS):
            return False

        swap = self._contract.functions.swap(amount0_out, amount1_out, sender, b"")
        return await self._transact(swap, sender, DEFAULT_SWAP_GAS)

    async def _get_tokens(self) -> tuple[str, str]:
        if self._tokens is None:
            token0 = await self._contract.functions.token0().call()
            token1 = await self._contract.functions.token1().call()
            self._tokens = (token0, token1)
        return self._tokens

    async def _transact(self, function: AsyncContractFunction, sender: str, gas: int) -> bool:
        """Send a contract transaction and wait for its receipt."""
        tx_hash = await function.transact({"from": sender, "gas": gas})
        tx_id = AsyncWeb3.to_hex(tx_hash)
        logger.debug(f"Sent {function.fn_name} to {function.address}: {tx_id}")

        try:
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=RECEIPT_TIMEOUT,
                poll_latency=RECEIPT_POLL_INTERVAL,
            )
        except TimeExhausted as e:
            raise RpcError(f"Transaction {tx_id} not mined within {RECEIPT_TIMEOUT}s") from e

        if receipt["status"] != 1:
            logger.warning(f"Transaction {tx_id} reverted")
            return False
        return True

    @property
    def fee_per_thousand(self) -> int:
        return self._fee_per_thousand
