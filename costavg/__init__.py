"""Rebalancing-position ladder simulator and its comparison baselines."""

from .allocators import (
    DAYS_PER_ROUND,
    DOLLAR_COST_AVERAGE_SUPPLY,
    CostAverageMethod,
    FixedFractionAverage,
    FixedIntervalAverage,
    average_price,
)
from .bull_exit import Liquidation, exit_until_balanced, liquidate
from .config import LadderSettings, STRATEGIES, build_method, load_settings, settings_from_mapping
from .dataset import PriceDataError, download_price_history, load_price_history, price_records
from .fluctuation import format_fluctuation_lines, later_lowest_prices
from .harness import (
    BearMarketRun,
    MarketPhases,
    dollar_cost_average,
    find_bull_start,
    find_market_phases,
)
from .ladder import AdaptiveLadder, FundingAdjustment, Ladder, RoundLengthError, Utilization
from .position import Position, TradeLog

__all__ = [
    "DAYS_PER_ROUND",
    "DOLLAR_COST_AVERAGE_SUPPLY",
    "CostAverageMethod",
    "FixedFractionAverage",
    "FixedIntervalAverage",
    "average_price",
    "Liquidation",
    "exit_until_balanced",
    "liquidate",
    "LadderSettings",
    "STRATEGIES",
    "build_method",
    "load_settings",
    "settings_from_mapping",
    "PriceDataError",
    "download_price_history",
    "load_price_history",
    "price_records",
    "format_fluctuation_lines",
    "later_lowest_prices",
    "BearMarketRun",
    "MarketPhases",
    "dollar_cost_average",
    "find_bull_start",
    "find_market_phases",
    "AdaptiveLadder",
    "FundingAdjustment",
    "Ladder",
    "RoundLengthError",
    "Utilization",
    "Position",
    "TradeLog",
]
