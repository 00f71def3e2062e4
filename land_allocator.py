"""
Land Allocator - nested-logit partition of a region's land among competing uses

Provides:
- LandNode: land category splitting its land among ordered children
- LandLeaf / UnmanagedLandLeaf: terminal land uses with their own carbon accounting
- LandAllocator: root node owning the region's total land and the per-period entry points
- LandAllocatorVisitor: read-only traversal hooks for reporting

Per period the driver calibrates (calibration periods only), runs init_calc,
then evaluates shares, allocation and land-use-change emissions as many times
as the outer solver needs. Trial evaluation never touches profit scalers.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterator, List, Optional, Sequence

import numpy as np

from carbon_calc import LandCarbonDensities, LandUseHistory
from discrete_choice import DiscreteChoice
from marketplace import NO_MARKET_PRICE
from model_context import CalcContext

logger = logging.getLogger(__name__)

CO2_LUC_MARKET = "CO2_LUC"

# Carbon price is in 1990$, land profit rates are in 1975$.
DOLLAR_CONVERSION_75_90 = 2.212
# kgC/m2 -> tC/thous km2 (x1e9 m2, /1e3 kg).
CARBON_SUBSIDY_CONVERSION = 1000000.0


class LandAllocatorError(Exception):
    """Base class for land allocator failures"""


class ConfigurationError(LandAllocatorError):
    """Structurally invalid input data; the run cannot continue"""


class CalibrationError(LandAllocatorError):
    """A required calibration step did not happen"""


class LandAllocationType(Enum):
    ANY = "any"
    MANAGED = "managed"
    UNMANAGED = "unmanaged"


class LandAllocatorVisitor:
    """Read-only traversal hooks. Override what you need."""

    def start_visit_land_allocator(self, allocator, period: int):
        pass

    def end_visit_land_allocator(self, allocator, period: int):
        pass

    def start_visit_land_node(self, node, period: int):
        pass

    def end_visit_land_node(self, node, period: int):
        pass

    def start_visit_land_leaf(self, leaf, period: int):
        pass

    def end_visit_land_leaf(self, leaf, period: int):
        pass

    def start_visit_carbon_calc(self, carbon_calc, period: int):
        pass

    def end_visit_carbon_calc(self, carbon_calc, period: int):
        pass


# ============================================================================
# ALLOCATOR ITEM
# ============================================================================

class AllocatorItem(ABC):
    """State and behavior shared by nodes and leaves"""

    def __init__(self, name: str, num_periods: int, parent: Optional["LandNode"] = None):
        self.name = name
        self.parent = parent
        self.num_periods = num_periods

        self.share: List[Optional[float]] = [None] * num_periods
        self.profit_scaler: List[Optional[float]] = [None] * num_periods
        self.land_allocation = np.zeros(num_periods)
        self.profit_rate = np.zeros(num_periods)
        self.calibration_profit_rate = np.zeros(num_periods)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    @property
    def is_new_tech(self) -> bool:
        return False

    def _effective_scaler(self, period: int) -> float:
        return self.profit_scaler[period] or 0.0

    def unnormalized_weight(self, choice_above: DiscreteChoice, period: int) -> float:
        """This item's weight within its parent, from current profit and scaler"""
        return choice_above.calc_unnormalized_share(self._effective_scaler(period), self.profit_rate[period], period)

    def _init_calc_state(self, ctx: CalcContext, period: int):
        if period > 0:
            if self.profit_scaler[period] is None:
                self.profit_scaler[period] = self.profit_scaler[period - 1]
            # Normally overwritten when the parent normalizes; stays for only children.
            if self.share[period] is None:
                self.share[period] = self.share[period - 1]

        if self.profit_scaler[period] is None:
            logger.error(f"Uninitialized profit scaler in period {period} for {self.name} "
                         f"in region {ctx.region_name}")
            raise CalibrationError(f"{self.name} in {ctx.region_name} has no profit scaler "
                                   f"in period {period}; was calibration skipped?")

    def _set_checked_scaler(self, ctx: CalcContext, scaler: float, period: int):
        if scaler < 0.0:
            logger.warning(f"Calibration profit too low resulting in negative profit scaler for "
                           f"{self.name} in {ctx.region_name} period {period}. Setting scaler to zero")
            scaler = 0.0
        self.profit_scaler[period] = scaler

    @abstractmethod
    def complete_init(self, ctx: CalcContext):
        ...

    @abstractmethod
    def init_calc(self, ctx: CalcContext, period: int):
        ...

    @abstractmethod
    def set_init_shares(self, ctx: CalcContext, land_allocation_above: float, period: int) -> float:
        ...

    @abstractmethod
    def calculate_calibration_profit_rate(self, ctx: CalcContext, average_profit_rate_above: float,
                                          choice_above: DiscreteChoice, period: int):
        ...

    @abstractmethod
    def calculate_profit_scalers(self, ctx: CalcContext, choice_above: DiscreteChoice, period: int):
        ...

    @abstractmethod
    def calc_land_shares(self, ctx: CalcContext, choice_above: DiscreteChoice, period: int) -> float:
        ...

    @abstractmethod
    def calc_land_allocation(self, ctx: CalcContext, land_allocation_above: float, period: int):
        ...

    @abstractmethod
    def calc_luc_emissions(self, ctx: CalcContext, period: int, end_year: int):
        ...

    @abstractmethod
    def set_unmanaged_land_profit_rate(self, ctx: CalcContext, average_profit_rate: float, period: int):
        ...

    @abstractmethod
    def set_carbon_price_increase_rate(self, rate: float, period: int):
        ...

    @abstractmethod
    def set_soil_time_scale(self, years: float):
        ...

    @abstractmethod
    def get_cal_land_allocation(self, land_type: LandAllocationType, period: int) -> float:
        ...

    @abstractmethod
    def get_profit_for_child_with_highest_share(self, period: int) -> float:
        ...

    @abstractmethod
    def iter_items(self) -> Iterator["AllocatorItem"]:
        ...

    @abstractmethod
    def accept(self, visitor: LandAllocatorVisitor, period: int):
        ...


# ============================================================================
# NODE
# ============================================================================

class LandNode(AllocatorItem):
    """Land category whose land is split among its children by a choice function"""

    def __init__(self, name: str, num_periods: int, choice_fn: DiscreteChoice,
                 parent: Optional["LandNode"] = None):
        super().__init__(name, num_periods, parent)
        self.choice_fn = choice_fn
        self.children: List[AllocatorItem] = []
        self.unnormalized_share = np.zeros(num_periods)

    def add_child(self, child: AllocatorItem) -> AllocatorItem:
        child.parent = self
        self.children.append(child)
        return child

    def get_num_children(self) -> int:
        return len(self.children)

    def get_child_at(self, index: int) -> AllocatorItem:
        return self.children[index]

    def complete_init(self, ctx: CalcContext):
        for child in self.children:
            child.complete_init(ctx)

    def init_calc(self, ctx: CalcContext, period: int):
        self._init_calc_state(ctx, period)
        for child in self.children:
            child.init_calc(ctx, period)

    def set_init_shares(self, ctx: CalcContext, land_allocation_above: float, period: int) -> float:
        node_land = self.get_cal_land_allocation(LandAllocationType.ANY, period)
        self.land_allocation[period] = node_land
        self.share[period] = node_land / land_allocation_above if land_allocation_above > 0.0 else 0.0

        self.profit_rate[period] = sum(child.set_init_shares(ctx, node_land, period)
                                       for child in self.children)
        return self.share[period] * self.profit_rate[period]

    def calculate_calibration_profit_rate(self, ctx: CalcContext, average_profit_rate_above: float,
                                          choice_above: DiscreteChoice, period: int):
        self.calibration_profit_rate[period] = choice_above.calc_implied_cost(
            self.share[period], average_profit_rate_above, period)
        self.choice_fn.set_base_value(self.calibration_profit_rate[period])
        for child in self.children:
            child.calculate_calibration_profit_rate(ctx, self.calibration_profit_rate[period],
                                                    self.choice_fn, period)

    def _aggregate_children(self, period: int) -> float:
        total = sum(child.unnormalized_weight(self.choice_fn, period) for child in self.children)
        self.unnormalized_share[period] = total
        self.profit_rate[period] = self.choice_fn.calc_average_value(total, period)
        return total

    def calculate_profit_scalers(self, ctx: CalcContext, choice_above: DiscreteChoice, period: int):
        # Children first: the node's own scaler is taken against the aggregate
        # profit its children will actually produce.
        for child in self.children:
            child.calculate_profit_scalers(ctx, self.choice_fn, period)
        self._aggregate_children(period)
        scaler = choice_above.calc_share_weight(self.share[period], self.profit_rate[period], period)
        self._set_checked_scaler(ctx, scaler, period)

    def calc_land_shares(self, ctx: CalcContext, choice_above: Optional[DiscreteChoice], period: int) -> float:
        weights = [child.calc_land_shares(ctx, self.choice_fn, period) for child in self.children]
        total = sum(weights)
        self.unnormalized_share[period] = total
        for child, weight in zip(self.children, weights):
            child.share[period] = weight / total if total > 0.0 else 0.0

        self.profit_rate[period] = self.choice_fn.calc_average_value(total, period)
        if choice_above is None:
            return total
        # A node with nothing to hand down must not draw land from its parent.
        if total <= 0.0:
            return 0.0
        return self.unnormalized_weight(choice_above, period)

    def calc_land_allocation(self, ctx: CalcContext, land_allocation_above: float, period: int):
        if land_allocation_above > 0.0:
            self.land_allocation[period] = land_allocation_above * self.share[period]
        else:
            self.share[period] = 0.0
            self.land_allocation[period] = 0.0
        for child in self.children:
            child.calc_land_allocation(ctx, self.land_allocation[period], period)

    def calc_luc_emissions(self, ctx: CalcContext, period: int, end_year: int):
        for child in self.children:
            child.calc_luc_emissions(ctx, period, end_year)

    def set_unmanaged_land_profit_rate(self, ctx: CalcContext, average_profit_rate: float, period: int):
        for child in self.children:
            child.set_unmanaged_land_profit_rate(ctx, average_profit_rate, period)

    def set_carbon_price_increase_rate(self, rate: float, period: int):
        for child in self.children:
            child.set_carbon_price_increase_rate(rate, period)

    def set_soil_time_scale(self, years: float):
        for child in self.children:
            child.set_soil_time_scale(years)

    def get_cal_land_allocation(self, land_type: LandAllocationType, period: int) -> float:
        return sum(child.get_cal_land_allocation(land_type, period) for child in self.children)

    def get_profit_for_child_with_highest_share(self, period: int) -> float:
        candidates = [child for child in self.children if not child.is_new_tech]
        if not candidates:
            return 0.0
        best = max(candidates, key=lambda child: child.share[period] or 0.0)
        return best.get_profit_for_child_with_highest_share(period)

    def get_calibration_profit_for_new_tech(self, period: int) -> float:
        """Calibration profit handed to entrant children, which have no history"""
        return self.get_profit_for_child_with_highest_share(period)

    def iter_items(self) -> Iterator[AllocatorItem]:
        yield self
        for child in self.children:
            yield from child.iter_items()

    def accept(self, visitor: LandAllocatorVisitor, period: int):
        visitor.start_visit_land_node(self, period)
        for child in self.children:
            child.accept(visitor, period)
        visitor.end_visit_land_node(self, period)


# ============================================================================
# LEAVES
# ============================================================================

class LandLeaf(AllocatorItem):
    """Terminal land use, e.g. a crop, pasture or forest"""

    def __init__(self, name: str, num_periods: int, parent: Optional[LandNode] = None,
                 readin_land_allocation: Optional[Sequence[float]] = None,
                 carbon_calc: Optional[LandCarbonDensities] = None,
                 land_use_history: Optional[LandUseHistory] = None,
                 min_above_ground_c_density: float = 0.0,
                 min_below_ground_c_density: float = 0.0,
                 is_new_tech: bool = False,
                 ghost_share: float = 0.25,
                 new_tech_start_year: int = 2020,
                 land_expansion_cost_name: Optional[str] = None):
        super().__init__(name, num_periods, parent)
        if readin_land_allocation is None:
            self.readin_land_allocation = np.zeros(num_periods)
        else:
            self.readin_land_allocation = np.array(readin_land_allocation, dtype=float)
        self.land_allocation = self.readin_land_allocation.copy()

        self.carbon_calc = carbon_calc
        self.land_use_history = land_use_history
        self.min_above_ground_c_density = min_above_ground_c_density
        self.min_below_ground_c_density = min_below_ground_c_density
        self.carbon_price_increase_rate = np.zeros(num_periods)
        self.social_discount_rate = 0.0

        self._is_new_tech = is_new_tech
        self.ghost_share = ghost_share
        self.new_tech_start_year = new_tech_start_year

        self.land_expansion_cost_name = land_expansion_cost_name

        # Contributions last reported to markets, one slot per period.
        self.last_calc_co2_value = np.zeros(num_periods)
        self.last_calc_expansion_value = np.zeros(num_periods)

    @property
    def is_new_tech(self) -> bool:
        return self._is_new_tech

    @property
    def is_land_expansion_cost(self) -> bool:
        return bool(self.land_expansion_cost_name)

    @property
    def is_unmanaged(self) -> bool:
        return False

    def _effective_scaler(self, period: int) -> float:
        # No land goes to a use that cannot make a profit, whatever its calibration.
        if self.profit_rate[period] <= 0.0:
            return 0.0
        return super()._effective_scaler(period)

    # ------------------------------------------------------------------ #
    # Initialization
    # ------------------------------------------------------------------ #
    def complete_init(self, ctx: CalcContext):
        self.social_discount_rate = ctx.region_info.social_discount_rate

        if self.carbon_calc is None:
            self.carbon_calc = LandCarbonDensities()
        self.carbon_calc.complete_init(ctx.modeltime, ctx.region_info.private_discount_rate_land)

        for period, land in enumerate(self.readin_land_allocation):
            if land < 0.0:
                logger.error(f"Negative land allocation of {land} read in for leaf {self.name} "
                             f"in {ctx.region_name} period {period}")
                raise ConfigurationError(f"Negative land allocation for {self.name} in {ctx.region_name}")

        self.init_land_use_history(ctx)

        if self.is_land_expansion_cost and not ctx.marketplace.has_market(self.land_expansion_cost_name,
                                                                        ctx.region_name):
            logger.warning(f"Leaf {self.name} uses expansion cost market {self.land_expansion_cost_name} "
                           f"which does not exist in {ctx.region_name}")

    def init_land_use_history(self, ctx: CalcContext):
        if self.land_use_history is None and not self.is_new_tech:
            logger.error(f"No land use history read in for leaf {self.name} in region {ctx.region_name}")
            raise ConfigurationError(f"Leaf {self.name} in {ctx.region_name} has no land use history")
        self.carbon_calc.init_land_use_history(self.land_use_history)

    def init_calc(self, ctx: CalcContext, period: int):
        self._init_calc_state(ctx, period)

    # ------------------------------------------------------------------ #
    # Calibration
    # ------------------------------------------------------------------ #
    def set_init_shares(self, ctx: CalcContext, land_allocation_above: float, period: int) -> float:
        if land_allocation_above > 0.0:
            self.share[period] = self.readin_land_allocation[period] / land_allocation_above
        else:
            self.share[period] = 0.0
        return self.share[period] * self.profit_rate[period]

    def calculate_calibration_profit_rate(self, ctx: CalcContext, average_profit_rate_above: float,
                                          choice_above: DiscreteChoice, period: int):
        if self.is_new_tech:
            self.calibration_profit_rate[period] = self.parent.get_calibration_profit_for_new_tech(period)
        else:
            self.calibration_profit_rate[period] = choice_above.calc_implied_cost(
                self.share[period], average_profit_rate_above, period)

    def calculate_profit_scalers(self, ctx: CalcContext, choice_above: DiscreteChoice, period: int):
        if self.is_new_tech:
            self._calculate_new_tech_scalers(ctx, choice_above, period)
            return

        if self.calibration_profit_rate[period] == 0.0 or self.profit_rate[period] == 0.0:
            scaler = 0.0
        else:
            scaler = choice_above.calc_share_weight(self.share[period], self.profit_rate[period], period)
        self._set_checked_scaler(ctx, scaler, period)

    def _calculate_new_tech_scalers(self, ctx: CalcContext, choice_above: DiscreteChoice, period: int):
        """Entrants take their scaler from the ghost share at their start period and are off before it."""
        calibration_profit = self.calibration_profit_rate[period]
        if calibration_profit > 0.0:
            scaler = choice_above.calc_share_weight(self.ghost_share, calibration_profit, period)
        else:
            logger.warning(f"No calibration profit available for new technology {self.name} "
                           f"in {ctx.region_name} period {period}")
            scaler = 0.0

        start_period = ctx.modeltime.yr_to_per(self.new_tech_start_year)
        if start_period > period:
            self.profit_scaler[period] = 0.0
            self._set_checked_scaler(ctx, scaler, start_period)
        else:
            self._set_checked_scaler(ctx, scaler, period)

    # ------------------------------------------------------------------ #
    # Profit rates
    # ------------------------------------------------------------------ #
    def set_profit_rate(self, ctx: CalcContext, profit_rate: float, period: int):
        """Store the production profit rate adjusted for expansion cost and carbon value"""
        adjusted_profit_rate = profit_rate
        if self.is_land_expansion_cost:
            expansion_cost = ctx.marketplace.get_price(self.land_expansion_cost_name, ctx.region_name, period)
            if expansion_cost != NO_MARKET_PRICE:
                adjusted_profit_rate -= expansion_cost

        self.profit_rate[period] = max(adjusted_profit_rate + self.get_carbon_subsidy(ctx, period), 0.0)

    def get_carbon_subsidy(self, ctx: CalcContext, period: int) -> float:
        """Value of the carbon held on this land above the minimum densities ($/thous km2)"""
        carbon_price = ctx.marketplace.get_price(CO2_LUC_MARKET, ctx.region_name, period, must_exist=False)
        if carbon_price == NO_MARKET_PRICE:
            return 0.0
        if carbon_price <= 0.0:
            if carbon_price < 0.0:
                logger.warning(f"Negative carbon price {carbon_price} in {ctx.region_name} "
                               f"period {period}; no carbon subsidy")
            return 0.0

        carbon_price /= DOLLAR_CONVERSION_75_90

        year = ctx.modeltime.per_to_yr(period)
        incremental_above = (self.carbon_calc.get_actual_above_ground_carbon_density(year)
                             - self.min_above_ground_c_density)
        incremental_below = (self.carbon_calc.get_actual_below_ground_carbon_density(year)
                             - self.min_below_ground_c_density)

        carbon_subsidy = (
            (incremental_above * self.carbon_calc.get_above_ground_carbon_subsidy_discount_factor()
             + incremental_below * self.carbon_calc.get_below_ground_carbon_subsidy_discount_factor())
            * carbon_price
            * (self.social_discount_rate - self.carbon_price_increase_rate[period])
            * CARBON_SUBSIDY_CONVERSION
        )
        if carbon_subsidy < 0.0:
            logger.warning(f"Negative carbon subsidy {carbon_subsidy:.4g} for {self.name} in "
                           f"{ctx.region_name} period {period} set to zero")
            return 0.0
        return carbon_subsidy

    def set_unmanaged_land_profit_rate(self, ctx: CalcContext, average_profit_rate: float, period: int):
        # Managed leaves get their profit from production.
        pass

    def set_carbon_price_increase_rate(self, rate: float, period: int):
        self.carbon_price_increase_rate[period] = rate

    def set_soil_time_scale(self, years: float):
        self.carbon_calc.set_soil_time_scale(years)

    # ------------------------------------------------------------------ #
    # Per-iteration calculation
    # ------------------------------------------------------------------ #
    def calc_land_shares(self, ctx: CalcContext, choice_above: DiscreteChoice, period: int) -> float:
        # The parent normalizes; the leaf only reports its weight.
        return self.unnormalized_weight(choice_above, period)

    def calc_land_allocation(self, ctx: CalcContext, land_allocation_above: float, period: int):
        share = self.share[period]
        if share is None or not 0.0 <= share <= 1.0:
            logger.warning(f"Invalid share {share} for {self.name} in {ctx.region_name} "
                           f"period {period}; clamping to [0, 1]")
            share = min(max(share or 0.0, 0.0), 1.0)
            self.share[period] = share

        if land_allocation_above > 0.0:
            self.land_allocation[period] = land_allocation_above * share
        else:
            self.share[period] = 0.0
            self.land_allocation[period] = 0.0

        self.carbon_calc.set_total_land_use(self.land_allocation[period], period)

        if self.is_land_expansion_cost:
            self.last_calc_expansion_value[period] = ctx.marketplace.add_to_demand(
                self.land_expansion_cost_name, ctx.region_name, self.land_allocation[period],
                self.last_calc_expansion_value[period], period, True)

    def calc_luc_emissions(self, ctx: CalcContext, period: int, end_year: int):
        self.carbon_calc.calc(period, end_year)

        # Only full-horizon evaluations (and the last period) go to the carbon market.
        if end_year == ctx.modeltime.end_year or period == ctx.modeltime.maxper - 1:
            luc_emissions = self.get_luc_emissions(ctx, period)
            self.last_calc_co2_value[period] = ctx.marketplace.add_to_demand(
                CO2_LUC_MARKET, ctx.region_name, luc_emissions,
                self.last_calc_co2_value[period], period, True)

    def get_luc_emissions(self, ctx: CalcContext, period: int) -> float:
        return self.carbon_calc.get_net_land_use_change_emission(ctx.modeltime.per_to_yr(period))

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #
    def get_cal_land_allocation(self, land_type: LandAllocationType, period: int) -> float:
        if land_type in (LandAllocationType.ANY, LandAllocationType.MANAGED):
            return float(self.readin_land_allocation[period])
        return 0.0

    def get_profit_for_child_with_highest_share(self, period: int) -> float:
        return float(self.profit_rate[period])

    def iter_items(self) -> Iterator[AllocatorItem]:
        yield self

    def accept(self, visitor: LandAllocatorVisitor, period: int):
        visitor.start_visit_land_leaf(self, period)
        if self.carbon_calc is not None:
            self.carbon_calc.accept(visitor, period)
        visitor.end_visit_land_leaf(self, period)


class UnmanagedLandLeaf(LandLeaf):
    """Land with no production technology; its value is a read-in land rent"""

    def __init__(self, name: str, num_periods: int, unmanaged_land_value: float = 0.0, **kwargs):
        super().__init__(name, num_periods, **kwargs)
        self.unmanaged_land_value = unmanaged_land_value

    @property
    def is_unmanaged(self) -> bool:
        return True

    def set_unmanaged_land_profit_rate(self, ctx: CalcContext, average_profit_rate: float, period: int):
        land_value = self.unmanaged_land_value if self.unmanaged_land_value > 0.0 else average_profit_rate
        self.profit_rate[period] = max(land_value + self.get_carbon_subsidy(ctx, period), 0.0)

    def get_cal_land_allocation(self, land_type: LandAllocationType, period: int) -> float:
        if land_type in (LandAllocationType.ANY, LandAllocationType.UNMANAGED):
            return float(self.readin_land_allocation[period])
        return 0.0


# ============================================================================
# ROOT
# ============================================================================

class LandAllocator(LandNode):
    """Root of a region's land tree; owns the region's total land"""

    def __init__(self, name: str, num_periods: int, choice_fn: DiscreteChoice,
                 total_land: Optional[Sequence[Optional[float]]] = None):
        super().__init__(name, num_periods, choice_fn)
        self.total_land: List[Optional[float]] = list(total_land) if total_land is not None else [None] * num_periods

    def leaves(self) -> Iterator[LandLeaf]:
        for item in self.iter_items():
            if isinstance(item, LandLeaf):
                yield item

    def find_item(self, name: str) -> Optional[AllocatorItem]:
        for item in self.iter_items():
            if item.name == name:
                return item
        return None

    def complete_init(self, ctx: CalcContext):
        super().complete_init(ctx)
        for period in range(ctx.modeltime.final_calibration_period + 1):
            if self.total_land[period] is None:
                self.total_land[period] = self.get_cal_land_allocation(LandAllocationType.ANY, period)
        logger.info(f"Land allocator for {ctx.region_name} initialized with "
                    f"{sum(1 for _ in self.leaves())} leaves")

    def calibrate(self, ctx: CalcContext, period: int):
        """Derive profit scalers that reproduce the read-in land allocation"""
        land = self.total_land[period] or 0.0
        self.share[period] = 1.0
        self.land_allocation[period] = land

        self.profit_rate[period] = sum(child.set_init_shares(ctx, land, period) for child in self.children)
        self.calibration_profit_rate[period] = self.profit_rate[period]
        self.choice_fn.set_base_value(self.profit_rate[period])

        for child in self.children:
            child.calculate_calibration_profit_rate(ctx, self.calibration_profit_rate[period],
                                                    self.choice_fn, period)
        for child in self.children:
            child.calculate_profit_scalers(ctx, self.choice_fn, period)
        self._aggregate_children(period)
        self.profit_scaler[period] = 1.0
        logger.info(f"Calibrated land allocator for {ctx.region_name} in period {period}")

    def init_calc(self, ctx: CalcContext, period: int):
        if period > 0 and self.total_land[period] is None:
            self.total_land[period] = self.total_land[period - 1]
        self.share[period] = 1.0
        self.profit_scaler[period] = 1.0
        super().init_calc(ctx, period)

    def set_profit_rate(self, ctx: CalcContext, leaf_name: str, profit_rate: float, period: int):
        item = self.find_item(leaf_name)
        if not isinstance(item, LandLeaf):
            logger.warning(f"No land leaf named {leaf_name} in {ctx.region_name}")
            return
        item.set_profit_rate(ctx, profit_rate, period)

    def calc_land_shares(self, ctx: CalcContext, choice_above: Optional[DiscreteChoice] = None,
                         period: int = 0) -> float:
        return super().calc_land_shares(ctx, None, period)

    def calc_land_allocation(self, ctx: CalcContext, land_allocation_above: Optional[float] = None,
                             period: int = 0):
        land = self.total_land[period] or 0.0
        self.land_allocation[period] = land
        for child in self.children:
            child.calc_land_allocation(ctx, land, period)

    def calc_luc_emissions(self, ctx: CalcContext, period: int, end_year: Optional[int] = None):
        if end_year is None:
            end_year = ctx.modeltime.end_year
        super().calc_luc_emissions(ctx, period, end_year)

    def calc(self, ctx: CalcContext, period: int):
        """One trial evaluation at the current prices and profit rates"""
        self.calc_land_shares(ctx, period=period)
        self.calc_land_allocation(ctx, period=period)
        self.calc_luc_emissions(ctx, period)

    def get_land_allocation(self, name: str, period: int) -> float:
        item = self.find_item(name)
        if item is None:
            logger.warning(f"No land allocator item named {name}")
            return 0.0
        return float(item.land_allocation[period])

    def accept(self, visitor: LandAllocatorVisitor, period: int):
        visitor.start_visit_land_allocator(self, period)
        for child in self.children:
            child.accept(visitor, period)
        visitor.end_visit_land_allocator(self, period)
