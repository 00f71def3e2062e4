from dataclasses import dataclass, field
from typing import List, Optional

from marketplace import Marketplace


@dataclass
class Modeltime:
    """Model period table: one calendar year per period."""

    years: List[int] = field(default_factory=lambda: [1975, 1990, 2005, 2020, 2035, 2050, 2065, 2080, 2095])
    final_calibration_period: int = 2

    def __post_init__(self):
        if len(self.years) == 0:
            raise ValueError("Modeltime needs at least one period")
        if any(b <= a for a, b in zip(self.years, self.years[1:])):
            raise ValueError(f"Model years must be strictly increasing: {self.years}")
        self.final_calibration_period = min(self.final_calibration_period, len(self.years) - 1)

    @property
    def maxper(self) -> int:
        return len(self.years)

    @property
    def start_year(self) -> int:
        return self.years[0]

    @property
    def end_year(self) -> int:
        """Last model year, also the horizon of a full LUC emissions calculation."""
        return self.years[-1]

    def per_to_yr(self, period: int) -> int:
        return self.years[period]

    def yr_to_per(self, year: int) -> int:
        """Period containing the year; years past the end map to the last period."""
        if year <= self.years[0]:
            return 0
        for period in range(1, self.maxper):
            if year <= self.years[period]:
                return period
        return self.maxper - 1

    def timestep(self, period: int) -> int:
        if period == 0:
            return 1
        return self.years[period] - self.years[period - 1]

    def is_calibration_period(self, period: int) -> bool:
        return period <= self.final_calibration_period


@dataclass
class RegionInfo:
    """Region-level rates consumed by the land leaves."""

    social_discount_rate: float = 0.05
    private_discount_rate_land: float = 0.1


@dataclass
class CalcContext:
    """Everything a land allocation operation needs beyond its own state."""

    region_name: str
    modeltime: Modeltime
    marketplace: Marketplace
    region_info: RegionInfo = field(default_factory=RegionInfo)

    @classmethod
    def create(cls, region_name: str = "USA", modeltime: Optional[Modeltime] = None,
               marketplace: Optional[Marketplace] = None,
               region_info: Optional[RegionInfo] = None) -> "CalcContext":
        modeltime = modeltime or Modeltime()
        return cls(
            region_name=region_name,
            modeltime=modeltime,
            marketplace=marketplace or Marketplace(modeltime.maxper),
            region_info=region_info or RegionInfo(),
        )
