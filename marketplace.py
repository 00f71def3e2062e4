"""
Marketplace - price and demand bookkeeping used by the land allocator

Provides:
- Market: per-period price and demand arrays for one (good, region) pair
- Marketplace: lookup by (good, region), incremental demand protocol
- NO_MARKET_PRICE: sentinel returned when a market does not exist

Land leaves are evaluated many times per period while an outer solver searches
for prices. Each caller therefore reports its *current* value together with
the value it reported last time; the market only applies the difference.
"""

import logging
from typing import Dict, Tuple

import numpy as np

logger = logging.getLogger(__name__)

# Never a real price. Compare against it, never do arithmetic with it.
NO_MARKET_PRICE = float(np.finfo(np.float64).max)


class Market:
    """Price and running demand for one good in one region"""

    def __init__(self, good_name: str, region_name: str, num_periods: int):
        self.good_name = good_name
        self.region_name = region_name
        self.prices = np.zeros(num_periods)
        self.demands = np.zeros(num_periods)

    def __repr__(self) -> str:
        return f"Market({self.good_name!r}, {self.region_name!r})"


class Marketplace:
    """Container of markets keyed by (good name, region name)"""

    def __init__(self, num_periods: int):
        self.num_periods = num_periods
        self.markets: Dict[Tuple[str, str], Market] = {}

    def create_market(self, good_name: str, region_name: str) -> Market:
        key = (good_name, region_name)
        if key not in self.markets:
            self.markets[key] = Market(good_name, region_name, self.num_periods)
        return self.markets[key]

    def has_market(self, good_name: str, region_name: str) -> bool:
        return (good_name, region_name) in self.markets

    def set_price(self, good_name: str, region_name: str, price: float, period: int):
        market = self.markets.get((good_name, region_name))
        if market is None:
            logger.warning(f"Cannot set price of {good_name} in {region_name}: no such market")
            return
        market.prices[period] = price

    def get_price(self, good_name: str, region_name: str, period: int,
                  must_exist: bool = True) -> float:
        """Price of a good, or NO_MARKET_PRICE when the market does not exist"""
        market = self.markets.get((good_name, region_name))
        if market is None:
            if must_exist:
                logger.warning(f"Called for price of non-existent market {good_name} in region {region_name}")
            return NO_MARKET_PRICE
        return float(market.prices[period])

    def add_to_demand(self, good_name: str, region_name: str, new_value: float,
                      previous_value: float, period: int, allow_negative: bool = True) -> float:
        """
        Replace a caller's earlier contribution to demand with a new one.

        Args:
            good_name: Market good
            region_name: Market region
            new_value: Caller's demand for this evaluation
            previous_value: Value returned by the caller's previous call for this period
            period: Model period
            allow_negative: When False a negative new value is clamped to zero

        Returns:
            The value the caller must pass as previous_value next time.
        """
        market = self.markets.get((good_name, region_name))
        if market is None:
            # Nothing was added, so nothing has to be taken back later.
            return 0.0

        if not allow_negative and new_value < 0.0:
            logger.warning(f"Negative demand {new_value:.4g} for {good_name} in {region_name} "
                           f"period {period} clamped to zero")
            new_value = 0.0

        market.demands[period] += new_value - previous_value
        return new_value

    def get_demand(self, good_name: str, region_name: str, period: int) -> float:
        market = self.markets.get((good_name, region_name))
        if market is None:
            return 0.0
        return float(market.demands[period])

    def clear_demands(self, period: int):
        for market in self.markets.values():
            market.demands[period] = 0.0
