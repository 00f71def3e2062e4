from typing import Any, Dict, List, Optional

import pandas as pd

from land_allocator import LandAllocator, LandAllocatorVisitor, LandLeaf
from model_context import Modeltime


class LandReportVisitor(LandAllocatorVisitor):
    """Collects one row per allocator item per visited period. Never mutates the tree."""

    def __init__(self, modeltime: Modeltime):
        self.modeltime = modeltime
        self.rows: List[Dict[str, Any]] = []

    def _row(self, item, item_type: str, period: int) -> Dict[str, Any]:
        return {
            "period": period,
            "year": self.modeltime.per_to_yr(period),
            "name": item.name,
            "parent": item.parent.name if item.parent is not None else None,
            "type": item_type,
            "share": item.share[period],
            "land_allocation": float(item.land_allocation[period]),
            "profit_rate": float(item.profit_rate[period]),
            "profit_scaler": item.profit_scaler[period],
            "luc_emissions": 0.0,
        }

    def start_visit_land_allocator(self, allocator, period: int):
        self.rows.append(self._row(allocator, "allocator", period))

    def start_visit_land_node(self, node, period: int):
        self.rows.append(self._row(node, "node", period))

    def start_visit_land_leaf(self, leaf: LandLeaf, period: int):
        row = self._row(leaf, "unmanaged" if leaf.is_unmanaged else "leaf", period)
        if leaf.carbon_calc is not None:
            row["luc_emissions"] = leaf.carbon_calc.get_net_land_use_change_emission(row["year"])
        self.rows.append(row)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows)


def allocation_table(allocator: LandAllocator, modeltime: Modeltime,
                     periods: Optional[List[int]] = None) -> pd.DataFrame:
    """Tabulate the tree for the given periods (all periods by default)"""
    visitor = LandReportVisitor(modeltime)
    for period in periods if periods is not None else range(modeltime.maxper):
        allocator.accept(visitor, period)
    return visitor.to_frame()


def leaf_allocation_pivot(table: pd.DataFrame) -> pd.DataFrame:
    """Land allocation by year (rows) and leaf (columns)"""
    leaves = table[table["type"].isin(["leaf", "unmanaged"])]
    return leaves.pivot_table(index="year", columns="name", values="land_allocation", sort=False)
