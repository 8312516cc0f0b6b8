"""Ladder allocators: one expiring rebalancing position issued per tick.

``Ladder`` funds each new :class:`~costavg.position.Position` with a fixed
multiple of the daily budget. ``AdaptiveLadder`` corrects that amount from
the realised investment of positions that already expired.

Funding model
-------------
Let ``B = amount_round / days_per_round`` be the daily budget, ``r`` the
target cash ratio and ``u`` the use ratio. The base funding of a new position
is::

    funding = B / (1 - r) * u

and ``B - funding`` is booked into ``cash_reserve`` (negative values mean the
ladder has committed more than the daily budget). Once ``tick > horizon`` the
adaptive variant adds::

    catch_up  = (B * finished - invested_by_finished) * reinvest_daily_percentage
    ratio_fix = B * (1 / (over_invest_ratio * u) - 1)
    funding  += (catch_up + ratio_fix) / (1 - r) * u

and floors the result at zero.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

from .allocators import DAYS_PER_ROUND, CostAverageMethod, average_price
from .position import Position, TradeLog


class RoundLengthError(AssertionError):
    """Raised when a round does not match the configured number of ticks."""


@dataclass(frozen=True)
class Utilization:
    """Realised investment of the positions that have already expired."""

    cash_put: float
    cash_invested: float
    average_invested: float
    over_invest_ratio: float


@dataclass(frozen=True)
class FundingAdjustment:
    """Breakdown of the last feedback correction applied by ``AdaptiveLadder``."""

    base: float
    expected_spending: float
    difference: float
    catch_up: float
    ratio_correction: float
    funding: float


class Ladder(CostAverageMethod):
    """FIFO queue of overlapping positions sharing one fixed horizon."""

    def __init__(
        self,
        use_ratio: float,
        target_cash_ratio: float,
        rebalance_step: float,
        horizon: int,
        *,
        days_per_round: int = DAYS_PER_ROUND,
        early_break: bool = False,
    ) -> None:
        if use_ratio <= 0:
            raise ValueError(f"use_ratio must be positive, got {use_ratio}")
        if not 0.0 <= target_cash_ratio < 1.0:
            raise ValueError(f"target_cash_ratio must be in [0, 1), got {target_cash_ratio}")
        if not 0.0 < rebalance_step < 1.0:
            raise ValueError(f"rebalance_step must be in (0, 1), got {rebalance_step}")
        if horizon < 1:
            raise ValueError(f"horizon must be at least 1 tick, got {horizon}")
        if days_per_round < 1:
            raise ValueError(f"days_per_round must be at least 1 tick, got {days_per_round}")

        self.use_ratio = float(use_ratio)
        self.target_cash_ratio = float(target_cash_ratio)
        self.rebalance_step = float(rebalance_step)
        self.horizon = int(horizon)
        self.days_per_round = int(days_per_round)
        # Stop the trade pass at the first position priced below the tick.
        # Only exact when last_price is non-increasing from newest to oldest.
        self.early_break = bool(early_break)

        self.positions: Deque[Position] = deque()
        self.tick = 0
        self.amount_round = 0.0
        self.cash_reserve = 0.0
        self.funding_history: List[float] = []

        self.finished_count = 0
        self.total_reclaimed_cash = 0.0
        self.total_reclaimed_coins = 0.0
        self.last_uninvested = 0.0

        self.cumulative_cash_invested = 0.0
        self.cumulative_coins_invested = 0.0

        self.trade_log: TradeLog = []
        self.last_price: Optional[float] = None

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(use_ratio={self.use_ratio}, "
            f"target_cash_ratio={self.target_cash_ratio}, "
            f"rebalance_step={self.rebalance_step}, horizon={self.horizon})"
        )

    # -- funding -----------------------------------------------------------

    def daily_budget(self) -> float:
        return self.amount_round / self.days_per_round

    def base_funding(self) -> float:
        return self.daily_budget() / (1.0 - self.target_cash_ratio) * self.use_ratio

    def funding_today(self) -> float:
        """Cash handed to the position issued on the current tick."""
        return self.base_funding()

    # -- allocator contract --------------------------------------------------

    def set_supply(self, amount: float) -> None:
        if amount < 0:
            raise ValueError(f"supply amount must be non-negative, got {amount}")
        self.amount_round = float(amount)
        self.cash_reserve = 0.0

    def start_new_round(self, ticks: int) -> None:
        if ticks != self.days_per_round:
            raise RoundLengthError(
                f"round length {ticks} does not match configured {self.days_per_round} ticks"
            )

    def feed_price(self, price: float) -> None:
        if price <= 0:
            raise ValueError(f"price must be positive, got {price}")

        self._expire_positions()

        funding = self.funding_today()
        self.cash_reserve += self.daily_budget() - funding
        self.funding_history.append(funding)
        self.positions.append(
            Position(
                funding,
                price,
                self.tick + self.horizon,
                self.target_cash_ratio,
                self.rebalance_step,
            )
        )

        self._trade(price)

        self.tick += 1
        self.last_price = price

    def get_invest_status(self) -> tuple[float, float]:
        return self.cumulative_cash_invested, self.cumulative_coins_invested

    # -- lifecycle -----------------------------------------------------------

    def _expire_positions(self) -> None:
        # All positions share one horizon, so expiry order equals issue order.
        while self.positions:
            expired, cash, coins = self.positions[0].expire(self.tick)
            if not expired:
                break
            self.positions.popleft()
            self.last_uninvested = cash - self.daily_budget()
            self.cash_reserve += cash
            self.total_reclaimed_cash += cash
            self.total_reclaimed_coins += coins
            self.finished_count += 1

    def _trade(self, price: float) -> None:
        for position in reversed(self.positions):
            if self.early_break and position.last_price < price:
                break
            cash, coins = position.trade(price, self.trade_log)
            self.cumulative_cash_invested += cash
            self.cumulative_coins_invested += coins

    # -- diagnostics ---------------------------------------------------------

    def cash_unused(self) -> float:
        """Reserve plus the cash still parked inside live positions."""
        return self.cash_reserve + sum(position.cash for position in self.positions)

    def utilization(self) -> Utilization:
        """How much of the cash put into expired positions was actually invested.

        Before the first full horizon has elapsed the figures are zero and the
        over-invest ratio is NaN.
        """

        if self.tick <= self.horizon or self.finished_count == 0:
            return Utilization(0.0, 0.0, 0.0, math.nan)

        cash_put = math.fsum(self.funding_history[: self.finished_count])
        cash_invested = cash_put - self.total_reclaimed_cash
        average_invested = cash_invested / self.finished_count
        if cash_put > 0:
            over_invest_ratio = cash_invested / cash_put / (1.0 - self.target_cash_ratio)
        else:
            over_invest_ratio = math.nan
        return Utilization(cash_put, cash_invested, average_invested, over_invest_ratio)

    def average_price(self) -> float:
        return average_price(self.cumulative_cash_invested, self.cumulative_coins_invested)

    def status_line(self) -> str:
        usage = self.utilization()
        coin_cap = 0.0
        if self.last_price is not None:
            coin_cap = self.cumulative_coins_invested * self.last_price
        return (
            f"tick {self.tick} cash_reserve {self.cash_reserve:.2f} cash_unused {self.cash_unused():.2f} "
            f"coin cap {coin_cap:.2f}; finished positions {self.finished_count} "
            f"(cash_put {usage.cash_put:.2f}, cash_invested {usage.cash_invested:.2f}), "
            f"over_invest_ratio {usage.over_invest_ratio:.4f}, average {usage.average_invested:.2f}, "
            f"expected {self.daily_budget():.2f}"
        )


class AdaptiveLadder(Ladder):
    """Ladder whose daily funding follows the realised investment of expired positions.

    ``reinvest_daily_percentage`` is the share of the accumulated shortfall
    (expected spend minus realised investment) folded back into each day's
    funding, i.e. the shortfall is worked off over roughly
    ``1 / reinvest_daily_percentage`` ticks.
    """

    def __init__(
        self,
        use_ratio: float,
        target_cash_ratio: float,
        rebalance_step: float,
        horizon: int,
        reinvest_daily_percentage: float,
        *,
        days_per_round: int = DAYS_PER_ROUND,
        early_break: bool = False,
    ) -> None:
        super().__init__(
            use_ratio,
            target_cash_ratio,
            rebalance_step,
            horizon,
            days_per_round=days_per_round,
            early_break=early_break,
        )
        if reinvest_daily_percentage < 0:
            raise ValueError(
                f"reinvest_daily_percentage must be non-negative, got {reinvest_daily_percentage}"
            )
        self.reinvest_daily_percentage = float(reinvest_daily_percentage)
        self.last_adjustment: Optional[FundingAdjustment] = None

    def funding_today(self) -> float:
        base = self.base_funding()
        if self.tick <= self.horizon:
            return base

        budget = self.daily_budget()
        usage = self.utilization()
        expected_spending = budget * self.finished_count
        difference = expected_spending - usage.cash_invested

        catch_up = difference * self.reinvest_daily_percentage
        ratio = usage.over_invest_ratio
        if math.isfinite(ratio) and ratio > 0:
            ratio_correction = budget * (1.0 / (ratio * self.use_ratio) - 1.0)
        else:
            # No conversion observed yet; there is nothing to correct against.
            ratio_correction = 0.0

        adjust = catch_up + ratio_correction
        funding = base + adjust / (1.0 - self.target_cash_ratio) * self.use_ratio
        funding = max(funding, 0.0)

        self.last_adjustment = FundingAdjustment(
            base=base,
            expected_spending=expected_spending,
            difference=difference,
            catch_up=catch_up,
            ratio_correction=ratio_correction,
            funding=funding,
        )
        return funding


__all__ = [
    "AdaptiveLadder",
    "FundingAdjustment",
    "Ladder",
    "RoundLengthError",
    "Utilization",
]
