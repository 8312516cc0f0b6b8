"""Drive allocators across the phases of a bear market."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from .allocators import DOLLAR_COST_AVERAGE_SUPPLY, CostAverageMethod, average_price
from .dataset import PriceDataError


@dataclass(frozen=True)
class MarketPhases:
    """Row positions of the turning points used by the simulation."""

    entry: int
    trough: int
    bull: int


def find_market_phases(
    prices: pd.Series,
    *,
    entry_price: float,
    bull_price: float,
    bear_start: Optional[int] = None,
) -> MarketPhases:
    """Locate the entry, trough and bull-resumption rows in ``prices``.

    ``entry`` is the first row at or above ``entry_price``; ``trough`` the row
    of the lowest price; ``bull`` the first row of the trailing run of prices at
    or above ``bull_price``, searched no earlier than ``bear_start`` (defaults
    to the trough). When the series never climbs back above ``bull_price`` the
    bull row is ``len(prices)``.
    """

    values = pd.Series(prices, dtype=float).reset_index(drop=True)
    if values.empty:
        raise PriceDataError("Cannot locate market phases in an empty price series")

    hits = values.index[values >= entry_price]
    if len(hits) == 0:
        raise PriceDataError(f"Price never reaches entry price {entry_price}")
    entry = int(hits[0])
    trough = int(values.idxmin())

    floor = trough if bear_start is None else int(bear_start)
    bull = find_bull_start(values, bull_price=bull_price, floor=floor)
    return MarketPhases(entry=entry, trough=trough, bull=bull)


def find_bull_start(prices: pd.Series, *, bull_price: float, floor: int) -> int:
    """First row of the trailing run of prices at or above ``bull_price``.

    Rows at or before ``floor`` are never returned; ``len(prices)`` means the
    series ends below ``bull_price``.
    """

    values = pd.Series(prices, dtype=float).reset_index(drop=True)
    bull = len(values) - 1
    while bull > floor:
        if values.iloc[bull] < bull_price:
            break
        bull -= 1
    return bull + 1


@dataclass
class BearMarketRun:
    """Outcome of feeding one allocator through a bear market."""

    cash_invested: float
    coins_invested: float
    cash_at_trough: float
    coins_at_trough: float
    history: pd.DataFrame

    @property
    def average_price(self) -> float:
        return average_price(self.cash_invested, self.coins_invested)


def dollar_cost_average(
    prices: pd.DataFrame,
    method: CostAverageMethod,
    *,
    bear_start: int,
    bull_start: int,
    trough: Optional[int] = None,
    amount_round: float = DOLLAR_COST_AVERAGE_SUPPLY[0],
    days_per_round: int = DOLLAR_COST_AVERAGE_SUPPLY[1],
) -> BearMarketRun:
    """Feed rows ``bear_start`` to ``bull_start`` (exclusive) into ``method``.

    A new round starts every ``days_per_round`` ticks. The invested totals are
    captured just before the ``trough`` row is fed, which is the position an
    investor would be in when the market bottoms.
    """

    if "price" not in prices.columns:
        raise PriceDataError("Missing required column(s): price")
    if not 0 <= bear_start <= bull_start <= len(prices):
        raise ValueError(
            f"invalid window [{bear_start}, {bull_start}) for a series of {len(prices)} rows"
        )
    if days_per_round < 1:
        raise ValueError(f"days_per_round must be at least 1 tick, got {days_per_round}")

    method.set_supply(amount_round)

    cash_at_trough = math.nan
    coins_at_trough = math.nan
    round_ticks = 0
    rows = []
    dates = prices["date"] if "date" in prices.columns else pd.Series(prices.index, index=prices.index)
    for index in range(bear_start, bull_start):
        if index == trough:
            cash_at_trough, coins_at_trough = method.get_invest_status()
        if round_ticks == 0:
            method.start_new_round(days_per_round)
        round_ticks = (round_ticks + 1) % days_per_round

        price = float(prices["price"].iloc[index])
        method.feed_price(price)
        cash, coins = method.get_invest_status()
        rows.append(
            {
                "date": dates.iloc[index],
                "price": price,
                "cash_invested": cash,
                "coins_invested": coins,
            }
        )

    cash_invested, coins_invested = method.get_invest_status()
    history = pd.DataFrame(rows, columns=["date", "price", "cash_invested", "coins_invested"])
    return BearMarketRun(
        cash_invested=cash_invested,
        coins_invested=coins_invested,
        cash_at_trough=cash_at_trough,
        coins_at_trough=coins_at_trough,
        history=history,
    )


__all__ = [
    "BearMarketRun",
    "MarketPhases",
    "dollar_cost_average",
    "find_bull_start",
    "find_market_phases",
]
