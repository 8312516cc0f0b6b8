"""Single fixed-horizon rebalancing position used by the ladder allocators."""

from __future__ import annotations

from typing import List, Optional, Tuple

# (price, coins) pairs; negative coin amounts denote sales.
TradeLog = List[Tuple[float, float]]


class Position:
    """Cash/coin allocation that keeps ``target_cash_ratio`` of its value in cash.

    A position only buys. Each time the price falls it walks a staircase of
    multiplicative ``rebalance_step`` decrements from ``last_price`` down to the
    new price and converts any cash surplus (relative to the target ratio)
    into coins at every step. Capital comes back to the owner through
    :meth:`expire` once ``expiry_tick`` is reached.
    """

    def __init__(
        self,
        cash: float,
        price: float,
        expiry_tick: int,
        target_cash_ratio: float,
        rebalance_step: float,
    ) -> None:
        if price <= 0:
            raise ValueError(f"price must be positive, got {price}")
        if cash < 0:
            raise ValueError(f"cash must be non-negative, got {cash}")
        if not 0.0 <= target_cash_ratio < 1.0:
            raise ValueError(f"target_cash_ratio must be in [0, 1), got {target_cash_ratio}")
        if not 0.0 < rebalance_step < 1.0:
            raise ValueError(f"rebalance_step must be in (0, 1), got {rebalance_step}")

        self.last_price = float(price)
        self.expiry_tick = int(expiry_tick)
        self.cash = float(cash)
        self.coins = 0.0
        self.target_cash_ratio = float(target_cash_ratio)
        self.rebalance_step = float(rebalance_step)
        self.expired = False

    def __repr__(self) -> str:
        return (
            f"Position(cash={self.cash:.4f}, coins={self.coins:.8f}, "
            f"last_price={self.last_price:.4f}, expiry_tick={self.expiry_tick})"
        )

    def total_value(self, price: float) -> float:
        return self.cash + self.coins * price

    def expire(self, tick: int) -> Tuple[bool, float, float]:
        """Hand back all holdings once ``tick`` reaches the expiry tick.

        Returns ``(True, cash, coins)`` exactly once; before the expiry tick and
        on every later call the result is ``(False, 0.0, 0.0)``.
        """

        if self.expired or tick < self.expiry_tick:
            return False, 0.0, 0.0
        cash, coins = self.cash, self.coins
        self.cash = 0.0
        self.coins = 0.0
        self.expired = True
        return True, cash, coins

    def trade(self, new_price: float, trade_log: Optional[TradeLog] = None) -> Tuple[float, float]:
        """Buy down to ``new_price``; returns ``(cash_spent, coins_bought)``.

        The staircase starts at ``last_price`` itself, so a call with
        ``new_price == last_price`` still executes one step. ``last_price`` is
        left at the first step price below ``new_price``.
        """

        if new_price <= 0:
            raise ValueError(f"new_price must be positive, got {new_price}")
        price = self.last_price
        if new_price > price:
            return 0.0, 0.0

        cash_spent = 0.0
        coins_bought = 0.0
        while price >= new_price:
            total = self.cash + self.coins * price
            buy = self.cash - total * self.target_cash_ratio
            if buy > 0:
                coins = buy / price
                self.cash -= buy
                self.coins += coins
                cash_spent += buy
                coins_bought += coins
                if trade_log is not None:
                    trade_log.append((price, coins))
            price -= price * self.rebalance_step
        self.last_price = price

        return cash_spent, coins_bought


__all__ = ["Position", "TradeLog"]
