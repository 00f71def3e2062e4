"""
Tests for building land allocation trees from nested descriptions
"""

import copy
import json

import pytest

from carbon_calc import NoEmissCarbonCalc
from discrete_choice import AbsoluteCostLogit, RelativeCostLogit
from land_allocator import ConfigurationError, LandNode, UnmanagedLandLeaf
from land_config import EXAMPLE_REGION, build_land_allocator, load_land_allocator
from model_context import CalcContext, Modeltime


def _region():
    return copy.deepcopy(EXAMPLE_REGION)


def test_build_example_region():
    modeltime = Modeltime()
    allocator = build_land_allocator(_region(), modeltime)

    assert allocator.name == "USA"
    assert [child.name for child in allocator.children] == ["Cropland", "Pasture", "Forest", "UnmanagedForest"]
    assert [leaf.name for leaf in allocator.leaves()] == [
        "Corn", "Wheat", "Biomass", "Pasture", "Forest", "UnmanagedForest"]

    cropland = allocator.find_item("Cropland")
    assert isinstance(cropland, LandNode)
    assert isinstance(cropland.choice_fn, RelativeCostLogit)
    assert cropland.choice_fn.logit_exponent == 2.0
    assert cropland.children[0].parent is cropland

    biomass = allocator.find_item("Biomass")
    assert biomass.is_new_tech
    assert biomass.land_use_history is None
    assert list(biomass.readin_land_allocation) == [0.0] * modeltime.maxper

    corn = allocator.find_item("Corn")
    assert corn.readin_land_allocation[modeltime.years.index(1990)] == 310.0
    assert corn.land_use_history.get_allocation(1850) == 150.0

    assert isinstance(allocator.find_item("UnmanagedForest"), UnmanagedLandLeaf)
    assert allocator.find_item("Forest").min_above_ground_c_density == 2.0
    assert allocator.find_item("Forest").carbon_calc.params.mature_age == 50.0


def test_total_land_defaults_to_calibration_sum():
    modeltime = Modeltime()
    allocator = build_land_allocator(_region(), modeltime)
    allocator.complete_init(CalcContext.create("USA", modeltime))
    assert allocator.total_land[0] == 300.0 + 250.0 + 900.0 + 1000.0 + 600.0
    assert allocator.total_land[modeltime.final_calibration_period + 1] is None


def test_logit_options():
    config = _region()
    config["logit_type"] = "absolute"
    config["children"][1]["carbon"]["type"] = "no-emiss"
    allocator = build_land_allocator(config, Modeltime())

    assert isinstance(allocator.choice_fn, AbsoluteCostLogit)
    assert isinstance(allocator.find_item("Pasture").carbon_calc, NoEmissCarbonCalc)


def test_missing_name():
    config = _region()
    del config["children"][1]["name"]
    with pytest.raises(ConfigurationError):
        build_land_allocator(config, Modeltime())


@pytest.mark.parametrize("mutate", [
    lambda config: config["children"][1]["carbon"].update({"type": "forest-growth"}),
    lambda config: config["children"][1]["carbon"].update({"peat_density": 3.0}),
    lambda config: config["children"][0].update({"children": []}),
    lambda config: config["children"][0]["children"].append({"name": "Corn", "land_allocation": {}}),
    lambda config: config.update({"logit_type": "nested"}),
    lambda config: config["children"][1].update({"land_allocation": [1.0, 2.0]}),
])
def test_malformed_configuration(mutate):
    config = _region()
    mutate(config)
    with pytest.raises(ConfigurationError):
        build_land_allocator(config, Modeltime())


def test_load_from_json(tmp_path):
    path = tmp_path / "usa.json"
    # JSON object keys are strings, so years arrive as "1975" etc.
    path.write_text(json.dumps(EXAMPLE_REGION))

    allocator = load_land_allocator(str(path), Modeltime())
    assert allocator.find_item("Pasture").readin_land_allocation[0] == 900.0
    assert allocator.find_item("Forest").land_use_history.historical_years == [1700, 1850, 1950]


def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_land_allocator(str(tmp_path / "missing.json"), Modeltime())
