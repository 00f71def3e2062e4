"""
Tests for the scenario harness

Runs the example region through whole projections and checks the direction
of the responses rather than exact numbers.
"""

import numpy as np
import pytest

from land_allocator import CO2_LUC_MARKET
from model_context import Modeltime
from scenario_harness import (Scenario, _build_scenarios, _metrics, _summarize, carbon_price_path, run_scenario,
                              run_scenario_suite)


def _final(table, name, modeltime):
    row = table[(table["year"] == modeltime.end_year) & (table["name"] == name)]
    return float(row["land_allocation"].iloc[0])


def test_carbon_price_path():
    modeltime = Modeltime()
    scenario = Scenario(name="tax", description="", carbon_price_start=50.0, carbon_price_growth=0.03)
    prices = carbon_price_path(scenario, modeltime)

    assert list(prices[:3]) == [0.0, 0.0, 0.0]
    assert prices[3] == 50.0
    assert prices[4] == pytest.approx(50.0 * 1.03 ** 15)


def test_carbon_price_shifts_land_away_from_cropland():
    """Low-carbon cropland loses ground to carbon-dense unmanaged forest"""
    modeltime = Modeltime()
    reference, _, _ = run_scenario(Scenario(name="reference", description=""), modeltime)
    taxed, _, ctx = run_scenario(Scenario(name="carbon_tax", description="", carbon_price_start=50.0,
                                          carbon_price_growth=0.03), modeltime)

    assert _final(taxed, "Cropland", modeltime) < _final(reference, "Cropland", modeltime)
    assert _final(taxed, "UnmanagedForest", modeltime) > _final(reference, "UnmanagedForest", modeltime)
    print(f"✓ Cropland {_final(reference, 'Cropland', modeltime):.0f} -> {_final(taxed, 'Cropland', modeltime):.0f}")


def test_calibration_periods_match_readin():
    modeltime = Modeltime()
    table, allocator, _ = run_scenario(Scenario(name="reference", description=""), modeltime)
    for leaf in allocator.leaves():
        for period in range(modeltime.final_calibration_period + 1):
            assert leaf.land_allocation[period] == pytest.approx(leaf.readin_land_allocation[period])


def test_biomass_enters_at_start_year():
    modeltime = Modeltime()
    _, allocator, _ = run_scenario(Scenario(name="reference", description=""), modeltime)
    biomass = allocator.find_item("Biomass")
    start = modeltime.years.index(2020)

    assert all(land == 0.0 for land in biomass.land_allocation[:start])
    assert biomass.land_allocation[start] > 0.0


def test_solver_iterations_do_not_change_results():
    modeltime = Modeltime()
    once = Scenario(name="once", description="", carbon_price_start=50.0, carbon_price_growth=0.03,
                    solver_iterations=1)
    thrice = Scenario(name="thrice", description="", carbon_price_start=50.0, carbon_price_growth=0.03,
                      solver_iterations=3)
    _, _, ctx_once = run_scenario(once, modeltime)
    _, _, ctx_thrice = run_scenario(thrice, modeltime)

    for period in range(modeltime.maxper):
        assert ctx_thrice.marketplace.get_demand(CO2_LUC_MARKET, "USA", period) == pytest.approx(
            ctx_once.marketplace.get_demand(CO2_LUC_MARKET, "USA", period))


def test_noise_is_reproducible_with_seed():
    modeltime = Modeltime()
    scenario = Scenario(name="noisy", description="", profit_noise_std=0.1)
    np.random.seed(7)
    first, _, _ = run_scenario(scenario, modeltime)
    np.random.seed(7)
    second, _, _ = run_scenario(scenario, modeltime)
    np.testing.assert_allclose(first["land_allocation"], second["land_allocation"])


def test_metrics():
    modeltime = Modeltime()
    table, _, ctx = run_scenario(Scenario(name="reference", description=""), modeltime)
    metrics = _metrics(table, ctx)

    assert metrics["final_unmanaged_land"] > 0.0
    assert metrics["peak_luc_emissions"] >= metrics["final_luc_emissions"]


def test_suite_and_summary():
    scenarios = [s.name for s in _build_scenarios()]
    assert scenarios == ["reference", "crop_boom", "carbon_tax", "bioenergy_push", "noisy_markets"]

    results = run_scenario_suite(runs=2, seed=42, scenario_filter=["reference", " noisy_markets"])
    assert len(results) == 4
    assert set(results["scenario"]) == {"reference", "noisy_markets"}

    summary = _summarize(results)
    assert list(summary["scenario"]) == ["reference", "noisy_markets"]
    assert "final_forest_land_mean" in summary.columns
    reference = summary[summary["scenario"] == "reference"].iloc[0]
    assert reference["final_cropland_min"] == pytest.approx(reference["final_cropland_max"])
