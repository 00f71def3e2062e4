import argparse
import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from land_allocator import CO2_LUC_MARKET, LandAllocator
from land_config import EXAMPLE_REGION, build_land_allocator
from land_report import allocation_table
from model_context import CalcContext, Modeltime

# Production profit rates by leaf in the first period (1975$/thous km2).
BASE_PROFIT_RATES = {
    "Corn": 3.0e7,
    "Wheat": 2.5e7,
    "Biomass": 2.0e7,
    "Pasture": 1.2e7,
    "Forest": 1.5e7,
}


@dataclass
class Scenario:
    name: str
    description: str
    carbon_price_start_year: int = 2020
    carbon_price_start: float = 0.0  # 1990$/tC
    carbon_price_growth: float = 0.0  # Per year
    profit_growth: Dict[str, float] = field(default_factory=dict)  # Per year, by leaf
    profit_noise_std: float = 0.0  # Relative noise on each period's profit rates
    solver_iterations: int = 3  # Trial evaluations per period


def carbon_price_path(scenario: Scenario, modeltime: Modeltime) -> np.ndarray:
    years = np.array(modeltime.years)
    elapsed = np.maximum(years - scenario.carbon_price_start_year, 0)
    prices = scenario.carbon_price_start * (1.0 + scenario.carbon_price_growth) ** elapsed
    return np.where(years >= scenario.carbon_price_start_year, prices, 0.0)


def _profit_rates(scenario: Scenario, modeltime: Modeltime, period: int) -> Dict[str, float]:
    elapsed = modeltime.per_to_yr(period) - modeltime.start_year
    rates = {}
    for leaf_name, base in BASE_PROFIT_RATES.items():
        growth = scenario.profit_growth.get(leaf_name, 0.0)
        rate = base * (1.0 + growth) ** elapsed
        if scenario.profit_noise_std > 0.0:
            rate *= max(1.0 + np.random.normal(0.0, scenario.profit_noise_std), 0.0)
        rates[leaf_name] = rate
    return rates


def run_scenario(scenario: Scenario, modeltime: Optional[Modeltime] = None,
                 region_config: Optional[Dict[str, Any]] = None) -> Tuple[pd.DataFrame, LandAllocator, CalcContext]:
    """Run every period at fixed prices; returns the allocation table, the tree and its context"""
    modeltime = modeltime or Modeltime()
    region_config = copy.deepcopy(region_config or EXAMPLE_REGION)

    ctx = CalcContext.create(region_config["name"], modeltime)
    ctx.marketplace.create_market(CO2_LUC_MARKET, ctx.region_name)
    allocator = build_land_allocator(region_config, modeltime)
    allocator.complete_init(ctx)

    prices = carbon_price_path(scenario, modeltime)

    for period in range(modeltime.maxper):
        ctx.marketplace.set_price(CO2_LUC_MARKET, ctx.region_name, float(prices[period]), period)
        allocator.set_carbon_price_increase_rate(
            scenario.carbon_price_growth if prices[period] > 0.0 else 0.0, period)

        profit_rates = _profit_rates(scenario, modeltime, period)
        for leaf_name, rate in profit_rates.items():
            allocator.set_profit_rate(ctx, leaf_name, rate, period)
        allocator.set_unmanaged_land_profit_rate(ctx, float(np.mean(list(profit_rates.values()))), period)

        if modeltime.is_calibration_period(period):
            allocator.calibrate(ctx, period)
        allocator.init_calc(ctx, period)

        # Stand-in for the outer solver: repeated evaluation at the same prices.
        for _ in range(scenario.solver_iterations):
            allocator.calc(ctx, period)

    return allocation_table(allocator, modeltime), allocator, ctx


def _metrics(table: pd.DataFrame, ctx: CalcContext) -> Dict[str, float]:
    final_year = ctx.modeltime.end_year
    final = table[table["year"] == final_year].set_index("name")
    first = table[table["year"] == ctx.modeltime.start_year].set_index("name")
    luc = [ctx.marketplace.get_demand(CO2_LUC_MARKET, ctx.region_name, p) for p in range(ctx.modeltime.maxper)]

    return {
        "final_forest_land": final.loc["Forest", "land_allocation"],
        "forest_land_change": final.loc["Forest", "land_allocation"] - first.loc["Forest", "land_allocation"],
        "final_cropland": final.loc["Cropland", "land_allocation"],
        "final_biomass_land": final.loc["Biomass", "land_allocation"],
        "final_unmanaged_land": final.loc["UnmanagedForest", "land_allocation"],
        "final_luc_emissions": luc[-1],
        "peak_luc_emissions": max(luc),
    }


def _build_scenarios() -> List[Scenario]:
    return [
        Scenario(
            name="reference",
            description="No carbon price, flat profits"
        ),
        Scenario(
            name="crop_boom",
            description="Crop profits grow 1%/yr",
            profit_growth={"Corn": 0.01, "Wheat": 0.01}
        ),
        Scenario(
            name="carbon_tax",
            description="$50/tC from 2020, rising 3%/yr",
            carbon_price_start=50.0,
            carbon_price_growth=0.03
        ),
        Scenario(
            name="bioenergy_push",
            description="Biomass profits grow 2%/yr under a carbon price",
            carbon_price_start=50.0,
            carbon_price_growth=0.03,
            profit_growth={"Biomass": 0.02}
        ),
        Scenario(
            name="noisy_markets",
            description="Carbon price with 10% profit noise",
            carbon_price_start=50.0,
            carbon_price_growth=0.03,
            profit_noise_std=0.1
        ),
    ]


def run_scenario_suite(runs: int, seed: Optional[int], scenario_filter: Optional[List[str]],
                       modeltime: Optional[Modeltime] = None) -> pd.DataFrame:
    scenarios = _build_scenarios()
    if scenario_filter:
        scenario_filter = {name.strip() for name in scenario_filter}
        scenarios = [s for s in scenarios if s.name in scenario_filter]

    results = []

    for scenario in scenarios:
        for run in range(runs):
            if seed is not None:
                np.random.seed(seed + run)
            table, _, ctx = run_scenario(scenario, modeltime)
            metrics = _metrics(table, ctx)
            metrics.update({
                "scenario": scenario.name,
                "run": run,
                "description": scenario.description
            })
            results.append(metrics)

    return pd.DataFrame(results)


def _summarize(results: pd.DataFrame) -> pd.DataFrame:
    metrics = [
        "final_forest_land", "forest_land_change", "final_cropland", "final_biomass_land",
        "final_unmanaged_land", "final_luc_emissions", "peak_luc_emissions"
    ]
    agg = results.groupby("scenario", sort=False)[metrics].agg(["mean", "min", "max"])
    agg.columns = [f"{metric}_{stat}" for metric, stat in agg.columns]
    return agg.reset_index()


def main() -> None:
    parser = argparse.ArgumentParser(description="Land allocation scenario harness")
    parser.add_argument("--runs", type=int, default=1, help="Runs per scenario (only matters with noise)")
    parser.add_argument("--seed", type=int, default=42, help="Base RNG seed")
    parser.add_argument("--scenario", action="append", help="Scenario name (can be repeated)")
    parser.add_argument("--csv", type=str, default="scenario_results.csv", help="Output CSV path")
    parser.add_argument("--verbose", action="store_true", help="Log calibration details")

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    results = run_scenario_suite(args.runs, args.seed, args.scenario)
    summary = _summarize(results)

    pd.set_option("display.max_columns", None)
    print("\nLAND ALLOCATION SCENARIO SUMMARY (mean/min/max)")
    print(summary.to_string(index=False))

    if args.csv:
        results.to_csv(args.csv, index=False)
        print(f"\nSaved raw results: {args.csv}")


if __name__ == "__main__":
    main()
