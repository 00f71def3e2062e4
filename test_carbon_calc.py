"""
Tests for land carbon accounting and land-use-change emissions
"""

import math

import pytest

from carbon_calc import CarbonDensityParams, LandCarbonDensities, LandUseHistory, NoEmissCarbonCalc
from model_context import Modeltime


def _carbon_calc(above: float, below: float, calc_type=LandCarbonDensities) -> LandCarbonDensities:
    modeltime = Modeltime(years=[2000, 2010], final_calibration_period=0)
    calc = calc_type(CarbonDensityParams(above_ground_carbon_density=above, below_ground_carbon_density=below))
    calc.complete_init(modeltime, 0.1)
    calc.init_land_use_history(LandUseHistory({1990: 100.0}))
    calc.set_total_land_use(100.0, 0)
    calc.set_total_land_use(90.0, 1)
    return calc


def test_history_interpolation():
    history = LandUseHistory({1950: 10.0, 1700: 0.0, 1850: 5.0})
    assert history.historical_years == [1700, 1850, 1950]
    assert history.get_allocation(1900) == pytest.approx(7.5)
    assert history.get_allocation(1600) == 0.0
    assert history.get_allocation(2000) == 10.0
    assert LandUseHistory().get_allocation(1900) == 0.0


def test_above_ground_loss_spread_evenly():
    """Losing 10 thous km2 over a decade at 1 kgC/m2 emits 1 MtC in each year"""
    calc = _carbon_calc(above=1.0, below=0.0)
    calc.calc(0, 2010)
    calc.calc(1, 2010)

    for year in range(2001, 2011):
        assert calc.get_net_land_use_change_emission(year) == pytest.approx(1.0)
    assert calc.get_net_land_use_change_emission(2000) == 0.0
    print("✓ Above-ground emissions spread evenly across the period")


def test_calc_is_idempotent():
    calc = _carbon_calc(above=1.0, below=3.0)
    calc.calc(1, 2010)
    first = [calc.get_net_land_use_change_emission(year) for year in range(2000, 2011)]
    calc.calc(1, 2010)
    calc.calc(1, 2010)
    second = [calc.get_net_land_use_change_emission(year) for year in range(2000, 2011)]
    assert first == second


def test_recalc_replaces_previous_contribution():
    calc = _carbon_calc(above=1.0, below=0.0)
    calc.calc(1, 2010)
    calc.set_total_land_use(100.0, 1)
    calc.calc(1, 2010)
    assert calc.get_net_land_use_change_emission(2005) == 0.0


def test_below_ground_release_is_exponential():
    calc = _carbon_calc(above=0.0, below=2.0)
    calc.calc(1, 2010)

    tau = calc.params.soil_time_scale
    assert calc.get_net_land_use_change_emission(2001) == pytest.approx(2.0 * (1.0 - math.exp(-1.0 / tau)))

    # Each year adds a new release on top of the tails of earlier ones.
    emissions = [calc.get_net_land_use_change_emission(year) for year in range(2001, 2011)]
    assert all(b > a for a, b in zip(emissions, emissions[1:]))


def test_shorter_horizon_truncates_emissions():
    calc = _carbon_calc(above=1.0, below=0.0)
    calc.calc(1, 2005)
    assert calc.get_net_land_use_change_emission(2005) == pytest.approx(1.0)
    assert calc.get_net_land_use_change_emission(2006) == 0.0


def test_land_gain_is_uptake():
    calc = _carbon_calc(above=1.0, below=0.0)
    calc.set_total_land_use(110.0, 1)
    calc.calc(1, 2010)
    assert calc.get_net_land_use_change_emission(2008) == pytest.approx(-1.0)


def test_history_emissions():
    modeltime = Modeltime(years=[2000, 2010], final_calibration_period=0)
    calc = LandCarbonDensities(CarbonDensityParams(above_ground_carbon_density=2.0))
    calc.complete_init(modeltime, 0.1)
    calc.init_land_use_history(LandUseHistory({1980: 50.0, 1990: 40.0}))

    assert calc.get_net_land_use_change_emission(1985) == pytest.approx(2.0)
    assert calc.get_net_land_use_change_emission(1995) == 0.0
    assert calc.get_net_land_use_change_emission(1900) == 0.0


def test_no_emiss_carbon_calc():
    calc = _carbon_calc(above=10.0, below=10.0, calc_type=NoEmissCarbonCalc)
    calc.calc(1, 2010)
    assert calc.get_net_land_use_change_emission(2005) == 0.0
    # Densities still feed the carbon subsidy.
    assert calc.get_actual_above_ground_carbon_density(2005) == 10.0


def test_subsidy_discount_factors():
    modeltime = Modeltime(years=[2000, 2010])
    calc = LandCarbonDensities(CarbonDensityParams(mature_age=1.0, soil_time_scale=40.0))
    calc.complete_init(modeltime, 0.1)
    assert calc.get_above_ground_carbon_subsidy_discount_factor() == pytest.approx((1.0 - math.exp(-0.1)) / 0.1)
    assert calc.get_below_ground_carbon_subsidy_discount_factor() == pytest.approx((1.0 - math.exp(-4.0)) / 4.0)

    calc.complete_init(modeltime, 0.0)
    assert calc.get_above_ground_carbon_subsidy_discount_factor() == 1.0
