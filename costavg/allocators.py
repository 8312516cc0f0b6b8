"""Common allocator contract and the simple dollar-cost-average baselines."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Tuple

DAYS_PER_ROUND = 30
# (amount supplied per round, ticks per round)
DOLLAR_COST_AVERAGE_SUPPLY = (2000.0, DAYS_PER_ROUND)


def average_price(cash: float, coins: float) -> float:
    """Average purchase price, or NaN before any coins were bought."""

    if coins <= 0:
        return math.nan
    return cash / coins


class CostAverageMethod(ABC):
    """Tick-driven allocator fed one price per tick.

    The driver calls :meth:`set_supply` with the budget of a round,
    :meth:`start_new_round` at each round boundary and :meth:`feed_price`
    once per tick, in time order.
    """

    @abstractmethod
    def set_supply(self, amount: float) -> None:
        ...

    @abstractmethod
    def start_new_round(self, ticks: int) -> None:
        ...

    @abstractmethod
    def feed_price(self, price: float) -> None:
        ...

    @abstractmethod
    def get_invest_status(self) -> Tuple[float, float]:
        """Return ``(total cash invested, total coins bought)`` since construction."""

    def average_price(self) -> float:
        cash, coins = self.get_invest_status()
        return average_price(cash, coins)


class FixedIntervalAverage(CostAverageMethod):
    """Invest the whole round supply at the first price of every round."""

    def __init__(self) -> None:
        self.amount_round = 0.0
        self.total_cash = 0.0
        self.total_coins = 0.0
        self._pending = False

    def __repr__(self) -> str:
        return f"FixedIntervalAverage(amount_round={self.amount_round})"

    def set_supply(self, amount: float) -> None:
        self.amount_round = float(amount)

    def start_new_round(self, ticks: int) -> None:
        self._pending = True

    def feed_price(self, price: float) -> None:
        if price <= 0:
            raise ValueError(f"price must be positive, got {price}")
        if self._pending:
            self.total_cash += self.amount_round
            self.total_coins += self.amount_round / price
            self._pending = False

    def get_invest_status(self) -> Tuple[float, float]:
        return self.total_cash, self.total_coins


class FixedFractionAverage(CostAverageMethod):
    """Invest an equal share of the round supply on every tick."""

    def __init__(self) -> None:
        self.amount_round = 0.0
        self.total_cash = 0.0
        self.total_coins = 0.0
        self.ticks = 0

    def __repr__(self) -> str:
        return f"FixedFractionAverage(amount_round={self.amount_round}, ticks={self.ticks})"

    def set_supply(self, amount: float) -> None:
        self.amount_round = float(amount)

    def start_new_round(self, ticks: int) -> None:
        if ticks <= 0:
            raise ValueError(f"ticks must be positive, got {ticks}")
        self.ticks = int(ticks)

    def feed_price(self, price: float) -> None:
        if price <= 0:
            raise ValueError(f"price must be positive, got {price}")
        if self.ticks == 0:
            raise ValueError("start_new_round must be called before feed_price")
        cash = self.amount_round / self.ticks
        self.total_cash += cash
        self.total_coins += cash / price

    def get_invest_status(self) -> Tuple[float, float]:
        return self.total_cash, self.total_coins


__all__ = [
    "CostAverageMethod",
    "DAYS_PER_ROUND",
    "DOLLAR_COST_AVERAGE_SUPPLY",
    "FixedFractionAverage",
    "FixedIntervalAverage",
    "average_price",
]
