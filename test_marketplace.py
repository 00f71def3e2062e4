"""
Tests for the incremental market demand protocol
"""

import logging

from marketplace import NO_MARKET_PRICE, Marketplace


def test_chained_add_to_demand_applies_difference():
    """Reporting v1 then v2 moves the total by v2 - v1, not v1 + v2"""
    marketplace = Marketplace(3)
    marketplace.create_market("CO2_LUC", "USA")

    previous = marketplace.add_to_demand("CO2_LUC", "USA", 40.0, 0.0, 1)
    total_after_first = marketplace.get_demand("CO2_LUC", "USA", 1)
    previous = marketplace.add_to_demand("CO2_LUC", "USA", 25.0, previous, 1)

    assert total_after_first == 40.0
    assert marketplace.get_demand("CO2_LUC", "USA", 1) - total_after_first == 25.0 - 40.0
    assert previous == 25.0


def test_repeated_reports_do_not_double_count():
    marketplace = Marketplace(2)
    marketplace.create_market("CO2_LUC", "USA")

    previous_a, previous_b = 0.0, 0.0
    for _ in range(5):
        previous_a = marketplace.add_to_demand("CO2_LUC", "USA", 10.0, previous_a, 0)
        previous_b = marketplace.add_to_demand("CO2_LUC", "USA", -4.0, previous_b, 0)

    assert marketplace.get_demand("CO2_LUC", "USA", 0) == 6.0
    assert marketplace.get_demand("CO2_LUC", "USA", 1) == 0.0


def test_missing_market():
    marketplace = Marketplace(2)
    assert marketplace.add_to_demand("CO2_LUC", "USA", 10.0, 0.0, 0) == 0.0
    assert marketplace.get_demand("CO2_LUC", "USA", 0) == 0.0
    assert marketplace.get_price("CO2_LUC", "USA", 0, must_exist=False) == NO_MARKET_PRICE


def test_missing_market_price_warns_only_when_required(caplog):
    marketplace = Marketplace(1)
    with caplog.at_level(logging.WARNING, logger="marketplace"):
        marketplace.get_price("CropExpansion", "USA", 0, must_exist=False)
        assert not caplog.records
        marketplace.get_price("CropExpansion", "USA", 0)
    assert "non-existent market" in caplog.text


def test_no_market_price_is_not_zero():
    marketplace = Marketplace(1)
    marketplace.create_market("CO2_LUC", "USA")
    assert marketplace.get_price("CO2_LUC", "USA", 0) == 0.0
    assert NO_MARKET_PRICE != 0.0


def test_disallowed_negative_demand_is_clamped(caplog):
    marketplace = Marketplace(1)
    marketplace.create_market("CropExpansion", "USA")
    with caplog.at_level(logging.WARNING, logger="marketplace"):
        stored = marketplace.add_to_demand("CropExpansion", "USA", -3.0, 0.0, 0, allow_negative=False)
    assert stored == 0.0
    assert marketplace.get_demand("CropExpansion", "USA", 0) == 0.0
    assert "clamped" in caplog.text


def test_set_price_and_clear_demands():
    marketplace = Marketplace(2)
    marketplace.create_market("CO2_LUC", "USA")
    marketplace.set_price("CO2_LUC", "USA", 75.0, 1)
    marketplace.add_to_demand("CO2_LUC", "USA", 12.0, 0.0, 1)

    assert marketplace.get_price("CO2_LUC", "USA", 1) == 75.0
    marketplace.clear_demands(1)
    assert marketplace.get_demand("CO2_LUC", "USA", 1) == 0.0
