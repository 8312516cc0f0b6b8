"""Forward-looking drawdown table: how far the price fell after each day."""

from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd


def later_lowest_prices(prices: pd.Series, windows: Sequence[int] = ()) -> pd.DataFrame:
    """Lowest later price and maximum drop ratio for every row of ``prices``.

    For each row ``i`` the ``later_lowest_inf`` column holds the minimum of
    ``prices[i:]``; for each ``d`` in ``windows`` the ``later_lowest_{d}``
    column holds the minimum of ``prices[i:i + d]`` (today included, the window
    is truncated at the end of the series). Every ``max_drop_*`` column is
    ``1 - later_lowest / price``.
    """

    values = pd.Series(prices, dtype=float)
    if (values <= 0).any():
        raise ValueError("prices must be positive")
    for days in windows:
        if int(days) < 1:
            raise ValueError(f"window lengths must be at least 1 day, got {days}")

    out = pd.DataFrame({"price": values})
    if values.empty:
        for label in ["inf", *[str(int(d)) for d in windows]]:
            out[f"later_lowest_{label}"] = pd.Series(dtype=float)
            out[f"max_drop_{label}"] = pd.Series(dtype=float)
        return out

    reversed_values = values.iloc[::-1]
    lowest = {"inf": np.minimum.accumulate(reversed_values.to_numpy())[::-1]}
    for days in windows:
        rolled = reversed_values.rolling(int(days), min_periods=1).min()
        lowest[str(int(days))] = rolled.to_numpy()[::-1]

    price_arr = values.to_numpy()
    for label, low in lowest.items():
        out[f"later_lowest_{label}"] = low
        out[f"max_drop_{label}"] = 1.0 - low / price_arr
    return out


def format_fluctuation_lines(dates: Sequence, table: pd.DataFrame) -> list[str]:
    """Render ``table`` as one text line per (window, row) pair."""

    labels = [c[len("later_lowest_"):] for c in table.columns if c.startswith("later_lowest_")]
    lines = []
    for label in labels:
        for date, row in zip(dates, table.itertuples(index=False)):
            row_map = row._asdict()
            lines.append(
                f"{date} {row_map['price']} days range {label} "
                f"later_lowest {row_map[f'later_lowest_{label}']} "
                f"max drop ratio {row_map[f'max_drop_{label}'] * 100.0:.2f}%"
            )
    return lines


__all__ = ["format_fluctuation_lines", "later_lowest_prices"]
