# aggregator.py
# Swap aggregators the pool calls to exchange reserve assets.
#
# exchange() moves amount_in of mint_in out of `owner` and delivers some
# amount of mint_out back to `owner`, all through the caller's TokenLedger so
# the exchange commits or rolls back with the rest of the request. The pool
# measures the realized output itself from the balance change.

from errors import ErrorCode, PoolError
from tools import short_hex


class SwapAggregator:
    def exchange(self, ledger, mint_in, mint_out, amount_in, min_amount_out, routing_data, owner):
        raise NotImplementedError


class FixedRateAggregator(SwapAggregator):
    """
    Liquidity provider quoting a fixed rate per (mint_in, mint_out) pair:
      amount_out = amount_in * numerator // denominator
    Paid from the provider's own token accounts.
    """

    def __init__(self, liquidity_owner):
        self.liquidity_owner = bytes(liquidity_owner)
        self.rates = {}

    def set_rate(self, mint_in, mint_out, numerator, denominator):
        if numerator < 0 or denominator <= 0:
            raise ValueError("rate must be non-negative with a positive denominator")
        self.rates[(bytes(mint_in), bytes(mint_out))] = (numerator, denominator)

    def quote(self, mint_in, mint_out, amount_in):
        key = (bytes(mint_in), bytes(mint_out))
        if key not in self.rates:
            raise PoolError(ErrorCode.INVALID_SWAP_ROUTING_DATA,
                            "no rate for pair " + short_hex(bytes(mint_in)) + " -> " + short_hex(bytes(mint_out)))
        numerator, denominator = self.rates[key]
        return amount_in * numerator // denominator

    def exchange(self, ledger, mint_in, mint_out, amount_in, min_amount_out, routing_data, owner):
        amount_out = self.quote(mint_in, mint_out, amount_in)
        print("[AGGREGATOR] exchange", amount_in, "->", amount_out,
              "(min", min_amount_out, ") route bytes =", len(routing_data))
        ledger.transfer(mint_in, owner, self.liquidity_owner, amount_in)
        ledger.transfer(mint_out, self.liquidity_owner, owner, amount_out)
        return amount_out
