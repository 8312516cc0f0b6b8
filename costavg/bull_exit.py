"""Staircase liquidation used to scale out of an appreciating market."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from .position import TradeLog


@dataclass
class Liquidation:
    """Holdings after a liquidation pass together with the sales it made."""

    cash: float
    coins: float
    price: float
    sell_log: TradeLog = field(default_factory=list)

    def cash_raised(self) -> float:
        return sum(-amount * price for price, amount in self.sell_log)

    def total_value(self, price: float) -> float:
        return self.cash + self.coins * price


def liquidate(
    target_cash_ratio: float,
    cash: float,
    coins: float,
    step: float,
    start_price: float,
    finish_price: float,
) -> Liquidation:
    """Sell coins while the price climbs from ``start_price`` to ``finish_price``.

    At each step price ``p`` (``p += p * step``) the cash deficit
    ``(cash + coins * p) * target_cash_ratio - cash`` is raised by selling
    coins at ``p``. Sales are recorded as ``(p, -coins_sold)``. Nothing happens
    unless ``finish_price > start_price``; the returned ``price`` is the first
    step price at or above ``finish_price``.
    """

    if not 0.0 <= target_cash_ratio <= 1.0:
        raise ValueError(f"target_cash_ratio must be in [0, 1], got {target_cash_ratio}")
    if not 0.0 < step < 1.0:
        raise ValueError(f"step must be in (0, 1), got {step}")
    if start_price <= 0:
        raise ValueError(f"start_price must be positive, got {start_price}")

    result = Liquidation(cash=float(cash), coins=float(coins), price=float(start_price))
    if finish_price <= start_price:
        return result

    price = result.price
    while price < finish_price:
        total = result.cash + result.coins * price
        take_out = total * target_cash_ratio - result.cash
        if take_out > 0:
            coins_to_sell = take_out / price
            result.cash += take_out
            result.coins = max(result.coins - coins_to_sell, 0.0)
            result.sell_log.append((price, -coins_to_sell))
        price += price * step
    result.price = price

    return result


def exit_until_balanced(
    prices: Sequence[float],
    start_index: int,
    stop_index: int,
    cash: float,
    coins: float,
    target_cash_ratio: float,
    step: float,
) -> tuple[Liquidation, int]:
    """Follow ``prices`` from ``start_index`` and liquidate on every rise.

    The walk stops at the first index where the cash side is worth at least as
    much as the coin side (``cash >= coins * price``), or at ``stop_index``.
    Returns the accumulated liquidation and the index where the walk stopped.
    The returned ``price`` is the last observed price when the walk stopped
    on balance, otherwise the last staircase price.
    """

    if not 0 <= start_index < len(prices):
        raise ValueError(f"start_index {start_index} outside price series of length {len(prices)}")

    state = Liquidation(cash=float(cash), coins=float(coins), price=float(prices[start_index]))
    index = start_index
    while index < stop_index:
        current = float(prices[index])
        step_result = liquidate(target_cash_ratio, state.cash, state.coins, step, state.price, current)
        state.cash = step_result.cash
        state.coins = step_result.coins
        state.price = step_result.price
        state.sell_log.extend(step_result.sell_log)
        index += 1
        if state.cash >= state.coins * current:
            state.price = current
            break

    return state, index


__all__ = ["Liquidation", "exit_until_balanced", "liquidate"]
