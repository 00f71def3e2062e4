import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from model_context import Modeltime


@dataclass
class CarbonDensityParams:
    """Carbon densities for one land type (kgC/m2)."""

    above_ground_carbon_density: float = 0.0
    below_ground_carbon_density: float = 0.0
    mature_age: float = 1.0  # Years for vegetation to reach full above-ground density
    soil_time_scale: float = 40.0  # e-folding time of soil carbon release/uptake (years)


@dataclass
class LandUseHistory:
    """Land allocation (thous km2) in years before the first model period."""

    allocations: Dict[int, float] = field(default_factory=dict)

    @property
    def historical_years(self) -> List[int]:
        return sorted(self.allocations)

    def get_allocation(self, year: int) -> float:
        """Linear interpolation, held flat outside the recorded years."""
        years = self.historical_years
        if not years:
            return 0.0
        values = [self.allocations[y] for y in years]
        return float(np.interp(year, years, values))


class LandCarbonDensities:
    """Carbon content calculator for a land leaf with fixed carbon densities.

    Land in thous km2 times a density in kgC/m2 is carbon in MtC, so no unit
    conversion is needed when turning land changes into emissions.
    """

    def __init__(self, params: Optional[CarbonDensityParams] = None):
        self.params = params or CarbonDensityParams()
        self.above_ground_discount_factor = 1.0
        self.below_ground_discount_factor = 1.0
        self.modeltime: Optional[Modeltime] = None
        self.land_use_history: Optional[LandUseHistory] = None
        self.land_use = np.zeros(0)

        # Emission contributions (MtC by year), keyed by period; key -1 is history.
        self._first_year = 0
        self._contributions: Dict[int, np.ndarray] = {}

    # ------------------------------------------------------------------ #
    # Initialization
    # ------------------------------------------------------------------ #
    def complete_init(self, modeltime: Modeltime, private_discount_rate: float):
        self.modeltime = modeltime
        self.land_use = np.zeros(modeltime.maxper)
        self._first_year = modeltime.start_year
        self.above_ground_discount_factor = self._discount_factor(private_discount_rate, self.params.mature_age)
        self.below_ground_discount_factor = self._discount_factor(private_discount_rate, self.params.soil_time_scale)

    @staticmethod
    def _discount_factor(rate: float, years: float) -> float:
        """Average discount over the years carbon takes to accumulate."""
        exponent = rate * years
        if exponent <= 0.0:
            return 1.0
        return (1.0 - math.exp(-exponent)) / exponent

    def init_land_use_history(self, history: Optional[LandUseHistory]):
        self.land_use_history = history
        self._contributions.clear()
        self._first_year = self.modeltime.start_year
        if history is None or not history.historical_years:
            return

        years = [y for y in history.historical_years if y < self.modeltime.start_year]
        if not years:
            return
        self._first_year = years[0]

        contribution = self._empty_series()
        for year in range(years[0] + 1, years[-1] + 1):
            land_change = history.get_allocation(year) - history.get_allocation(year - 1)
            self._add_land_change(contribution, year, land_change, self.modeltime.end_year)
        self._contributions[-1] = contribution

    def set_soil_time_scale(self, years: float):
        self.params.soil_time_scale = years

    def set_total_land_use(self, land_allocation: float, period: int):
        self.land_use[period] = land_allocation

    # ------------------------------------------------------------------ #
    # Emissions
    # ------------------------------------------------------------------ #
    def _empty_series(self) -> np.ndarray:
        return np.zeros(self.modeltime.end_year - self._first_year + 1)

    def _add_land_change(self, series: np.ndarray, year: int, land_change: float, end_year: int):
        """Emissions from a land change in one year (positive land change is uptake)."""
        if land_change == 0.0 or year > end_year or year < self._first_year:
            return
        start = year - self._first_year
        series[start] -= land_change * self.params.above_ground_carbon_density

        below_ground = land_change * self.params.below_ground_carbon_density
        if below_ground == 0.0:
            return
        elapsed = np.arange(end_year - year + 1, dtype=float)
        tau = max(self.params.soil_time_scale, 1e-6)
        fractions = np.exp(-elapsed / tau) - np.exp(-(elapsed + 1.0) / tau)
        series[start:start + len(elapsed)] -= below_ground * fractions

    def _previous_point(self, period: int):
        if period > 0:
            return self.modeltime.per_to_yr(period - 1), self.land_use[period - 1]
        if self.land_use_history is None:
            return None
        years = [y for y in self.land_use_history.historical_years if y < self.modeltime.start_year]
        if not years:
            return None
        return years[-1], self.land_use_history.get_allocation(years[-1])

    def calc(self, period: int, end_year: int):
        """Recompute this period's emission contribution out to end_year."""
        end_year = min(end_year, self.modeltime.end_year)
        contribution = self._empty_series()
        previous = self._previous_point(period)
        if previous is not None:
            previous_year, previous_land = previous
            year = self.modeltime.per_to_yr(period)
            land = self.land_use[period]
            span = year - previous_year
            for y in range(previous_year + 1, year + 1):
                # Land changes evenly over the years between the two points.
                land_change = (land - previous_land) / span
                self._add_land_change(contribution, y, land_change, end_year)
        self._contributions[period] = contribution

    def get_net_land_use_change_emission(self, year: int) -> float:
        index = year - self._first_year
        if not self._contributions or index < 0 or index > self.modeltime.end_year - self._first_year:
            return 0.0
        return float(sum(series[index] for series in self._contributions.values()))

    # ------------------------------------------------------------------ #
    # Densities
    # ------------------------------------------------------------------ #
    def get_actual_above_ground_carbon_density(self, year: int) -> float:
        return self.params.above_ground_carbon_density

    def get_actual_below_ground_carbon_density(self, year: int) -> float:
        return self.params.below_ground_carbon_density

    def get_above_ground_carbon_subsidy_discount_factor(self) -> float:
        return self.above_ground_discount_factor

    def get_below_ground_carbon_subsidy_discount_factor(self) -> float:
        return self.below_ground_discount_factor

    def accept(self, visitor, period: int):
        visitor.start_visit_carbon_calc(self, period)
        visitor.end_visit_carbon_calc(self, period)


class NoEmissCarbonCalc(LandCarbonDensities):
    """Carries densities for the carbon subsidy but never emits."""

    def init_land_use_history(self, history: Optional[LandUseHistory]):
        self.land_use_history = history

    def calc(self, period: int, end_year: int):
        pass

    def get_net_land_use_change_emission(self, year: int) -> float:
        return 0.0
