"""
Land Config - build a region's land allocation tree from a nested description

The description is a dict (or a JSON file holding one). A dict with a
"children" list is a node, anything else is a leaf. Years are model years and
may be given as strings, as JSON requires.

Node keys:  name, children, logit_type ("relative" | "absolute"), logit_exponent,
            total_land ({year: thous km2}, root only)
Leaf keys:  name, land_allocation ({year: thous km2}), land_use_history ({year: thous km2}),
            carbon ({"type": "densities" | "no-emiss", <CarbonDensityParams fields>}),
            min_above_ground_c_density, min_below_ground_c_density,
            is_new_tech, ghost_share, new_tech_start_year,
            land_expansion_cost_name, unmanaged, unmanaged_land_value
"""

import json
import logging
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from carbon_calc import CarbonDensityParams, LandCarbonDensities, LandUseHistory, NoEmissCarbonCalc
from discrete_choice import create_choice_function
from land_allocator import (AllocatorItem, ConfigurationError, LandAllocator, LandLeaf, LandNode,
                            UnmanagedLandLeaf)
from model_context import Modeltime

logger = logging.getLogger(__name__)

DEFAULT_LOGIT_EXPONENT = 3.0

_CARBON_PARAM_NAMES = {f.name for f in fields(CarbonDensityParams)}


def _require(config: Dict[str, Any], key: str, where: str) -> Any:
    if key not in config:
        logger.error(f"Missing required field '{key}' in {where}")
        raise ConfigurationError(f"Missing required field '{key}' in {where}")
    return config[key]


def _year_table(raw: Optional[Dict[Any, float]], where: str) -> Dict[int, float]:
    if raw is None:
        return {}
    try:
        return {int(year): float(value) for year, value in raw.items()}
    except (TypeError, ValueError, AttributeError) as exc:
        raise ConfigurationError(f"Malformed year table in {where}: {raw!r}") from exc


def _per_period(table: Dict[int, float], modeltime: Modeltime, where: str) -> List[Optional[float]]:
    values: List[Optional[float]] = [None] * modeltime.maxper
    for year, value in table.items():
        if year not in modeltime.years:
            logger.warning(f"Ignoring {where} value for {year}, which is not a model year")
            continue
        values[modeltime.years.index(year)] = value
    return values


def _build_carbon_calc(raw: Optional[Dict[str, Any]], where: str) -> Optional[LandCarbonDensities]:
    if raw is None:
        return None
    raw = dict(raw)
    calc_type = raw.pop("type", "densities")
    unknown = set(raw) - _CARBON_PARAM_NAMES
    if unknown:
        raise ConfigurationError(f"Unknown carbon parameters {sorted(unknown)} in {where}")
    params = CarbonDensityParams(**{name: float(value) for name, value in raw.items()})
    if calc_type == "densities":
        return LandCarbonDensities(params)
    if calc_type == "no-emiss":
        return NoEmissCarbonCalc(params)
    raise ConfigurationError(f"Unknown carbon calculator type '{calc_type}' in {where}")


def _build_leaf(config: Dict[str, Any], modeltime: Modeltime) -> LandLeaf:
    name = _require(config, "name", "land leaf")
    where = f"leaf {name}"

    readin = _per_period(_year_table(config.get("land_allocation"), where), modeltime, where)
    history_table = _year_table(config.get("land_use_history"), where)

    kwargs = dict(
        readin_land_allocation=[value or 0.0 for value in readin],
        carbon_calc=_build_carbon_calc(config.get("carbon"), where),
        land_use_history=LandUseHistory(history_table) if history_table else None,
        min_above_ground_c_density=float(config.get("min_above_ground_c_density", 0.0)),
        min_below_ground_c_density=float(config.get("min_below_ground_c_density", 0.0)),
        is_new_tech=bool(config.get("is_new_tech", False)),
        ghost_share=float(config.get("ghost_share", 0.25)),
        new_tech_start_year=int(config.get("new_tech_start_year", 2020)),
        land_expansion_cost_name=config.get("land_expansion_cost_name"),
    )
    if config.get("unmanaged", False):
        return UnmanagedLandLeaf(name, modeltime.maxper,
                                 unmanaged_land_value=float(config.get("unmanaged_land_value", 0.0)),
                                 **kwargs)
    return LandLeaf(name, modeltime.maxper, **kwargs)


def _build_item(config: Dict[str, Any], modeltime: Modeltime) -> AllocatorItem:
    if "children" not in config:
        return _build_leaf(config, modeltime)

    name = _require(config, "name", "land node")
    node = LandNode(name, modeltime.maxper, _build_choice(config, f"node {name}"))
    _add_children(node, config, modeltime)
    return node


def _build_choice(config: Dict[str, Any], where: str):
    try:
        return create_choice_function(config.get("logit_type", "relative"),
                                      float(config.get("logit_exponent", DEFAULT_LOGIT_EXPONENT)))
    except ValueError as exc:
        raise ConfigurationError(f"{exc} in {where}") from exc


def _add_children(node: LandNode, config: Dict[str, Any], modeltime: Modeltime):
    children = config["children"]
    if not isinstance(children, list) or not children:
        raise ConfigurationError(f"Node {node.name} needs a non-empty list of children")
    seen = set()
    for child_config in children:
        child = node.add_child(_build_item(child_config, modeltime))
        if child.name in seen:
            raise ConfigurationError(f"Duplicate child {child.name} under {node.name}")
        seen.add(child.name)


def build_land_allocator(config: Dict[str, Any], modeltime: Modeltime) -> LandAllocator:
    """Build an uninitialized land allocator; call complete_init before use."""
    name = _require(config, "name", "land allocator")
    _require(config, "children", f"land allocator {name}")

    total_land = _per_period(_year_table(config.get("total_land"), name), modeltime, f"{name} total land")
    allocator = LandAllocator(name, modeltime.maxper, _build_choice(config, f"land allocator {name}"),
                              total_land=total_land)
    _add_children(allocator, config, modeltime)
    return allocator


def load_land_allocator(path: str, modeltime: Modeltime) -> LandAllocator:
    path = Path(path)
    try:
        with path.open() as f:
            config = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error(f"Could not read land allocator configuration {path}: {exc}")
        raise ConfigurationError(f"Could not read {path}") from exc
    return build_land_allocator(config, modeltime)


# Small illustrative region used by the scenario harness and dashboard.
# Land in thous km2, profit rates in 1975$/thous km2, densities in kgC/m2.
EXAMPLE_REGION: Dict[str, Any] = {
    "name": "USA",
    "logit_exponent": 3.0,
    "children": [
        {
            "name": "Cropland",
            "logit_exponent": 2.0,
            "children": [
                {
                    "name": "Corn",
                    "land_allocation": {1975: 300.0, 1990: 310.0, 2005: 330.0},
                    "land_use_history": {1700: 20.0, 1850: 150.0, 1950: 280.0},
                    "carbon": {"above_ground_carbon_density": 0.3, "below_ground_carbon_density": 5.0},
                },
                {
                    "name": "Wheat",
                    "land_allocation": {1975: 250.0, 1990: 240.0, 2005: 220.0},
                    "land_use_history": {1700: 30.0, 1850: 160.0, 1950: 260.0},
                    "carbon": {"above_ground_carbon_density": 0.3, "below_ground_carbon_density": 5.0},
                },
                {
                    "name": "Biomass",
                    "is_new_tech": True,
                    "new_tech_start_year": 2020,
                    "ghost_share": 0.25,
                    "carbon": {"above_ground_carbon_density": 1.0, "below_ground_carbon_density": 6.0},
                },
            ],
        },
        {
            "name": "Pasture",
            "land_allocation": {1975: 900.0, 1990: 880.0, 2005: 860.0},
            "land_use_history": {1700: 400.0, 1850: 700.0, 1950: 920.0},
            "carbon": {"above_ground_carbon_density": 0.5, "below_ground_carbon_density": 8.0},
            "min_below_ground_c_density": 4.0,
        },
        {
            "name": "Forest",
            "land_allocation": {1975: 1000.0, 1990: 1020.0, 2005: 1040.0},
            "land_use_history": {1700: 1500.0, 1850: 1200.0, 1950: 1010.0},
            "carbon": {"above_ground_carbon_density": 10.0, "below_ground_carbon_density": 10.0,
                       "mature_age": 50.0},
            "min_above_ground_c_density": 2.0,
        },
        {
            "name": "UnmanagedForest",
            "unmanaged": True,
            "unmanaged_land_value": 8.0e6,
            "land_allocation": {1975: 600.0, 1990: 600.0, 2005: 600.0},
            "land_use_history": {1700: 1100.0, 1850: 900.0, 1950: 650.0},
            "carbon": {"above_ground_carbon_density": 15.0, "below_ground_carbon_density": 12.0,
                       "mature_age": 100.0},
        },
    ],
}
