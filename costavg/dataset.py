"""Utilities for loading the price histories fed to the allocators."""

from __future__ import annotations

from typing import Iterable, Iterator, Optional, Tuple

import pandas as pd

PRICE_COLUMN_ALIASES = ("price", "close", "Close", "Adj Close")


class PriceDataError(RuntimeError):
    """Raised when an expected price-history file is malformed."""


def _require_columns(df: pd.DataFrame, required: Iterable[str]) -> None:
    missing = [col for col in required if col not in df.columns]
    if missing:
        joined = ", ".join(missing)
        raise PriceDataError(f"Missing required column(s): {joined}")


def _is_headerless_tsv(path: str) -> bool:
    if path.lower().endswith(".tsv"):
        return True
    with open(path, "r", encoding="utf-8") as fh:
        for line in fh:
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            return "\t" in stripped
    return False


def _clean(df: pd.DataFrame, *, ensure_positive: bool) -> pd.DataFrame:
    df = df.copy()
    # Malformed date cells become NaT and are dropped with the row.
    df["date"] = pd.to_datetime(df["date"], errors="coerce")
    df["price"] = pd.to_numeric(df["price"], errors="coerce")
    df = df.dropna(subset=["date", "price"])
    df = df.sort_values("date", kind="stable")
    if ensure_positive:
        df = df[df["price"] > 0]
    if df.empty:
        raise PriceDataError("No rows remain after cleaning price data")
    return df[["date", "price"]].reset_index(drop=True)


def load_price_history(path: str, *, ensure_positive: bool = True) -> pd.DataFrame:
    """Load a ``date``/``price`` history from disk.

    Parameters
    ----------
    path:
        Either a CSV with a header containing ``date`` and one of
        ``price``/``close``, or a headerless tab-separated file of
        ``date<TAB>price`` rows where ``#`` starts a comment.
    ensure_positive:
        Drop any non-positive prices before returning.

    Returns
    -------
    DataFrame
        Columns ``date`` (datetime64) and ``price`` (float), sorted by date
        with a fresh ``RangeIndex`` so row positions double as tick numbers.
    """

    if _is_headerless_tsv(path):
        df = pd.read_csv(
            path,
            sep="\t",
            header=None,
            comment="#",
            usecols=[0, 1],
            names=["date", "price"],
            skip_blank_lines=True,
        )
    else:
        df = pd.read_csv(path, comment="#")
        if "price" not in df.columns:
            alias = next((c for c in PRICE_COLUMN_ALIASES if c in df.columns), None)
            if alias is not None:
                df = df.rename(columns={alias: "price"})
    _require_columns(df, ["date", "price"])
    return _clean(df, ensure_positive=ensure_positive)


def download_price_history(symbol: str, *, period: str = "max") -> pd.DataFrame:
    """Download auto-adjusted closes for ``symbol`` from Yahoo Finance."""

    try:
        import yfinance as yf  # type: ignore
    except ImportError as exc:  # pragma: no cover - exercised via runtime usage
        raise RuntimeError("yfinance is required to download price history") from exc

    data = yf.download(symbol, period=period, auto_adjust=True, progress=False, threads=False)
    if data is None or data.empty:
        raise RuntimeError(f"No price data returned for symbol {symbol}")

    close_obj = data["Close"] if "Close" in data.columns else data.iloc[:, 0]
    # Coerce to Series if DataFrame (e.g., MultiIndex columns)
    if isinstance(close_obj, pd.DataFrame):
        close_obj = close_obj.iloc[:, 0]
    index = pd.to_datetime(close_obj.index)
    if getattr(index, "tz", None) is not None:
        index = index.tz_localize(None)
    frame = pd.DataFrame({"date": index, "price": close_obj.to_numpy(dtype=float)})
    return _clean(frame, ensure_positive=True)


def price_records(
    df: pd.DataFrame,
    start: Optional[int] = None,
    stop: Optional[int] = None,
) -> Iterator[Tuple[pd.Timestamp, float]]:
    """Yield ``(date, price)`` records in row order between two positions."""

    _require_columns(df, ["date", "price"])
    window = df.iloc[start:stop]
    for date, price in zip(window["date"], window["price"]):
        yield pd.Timestamp(date), float(price)


__all__ = [
    "PriceDataError",
    "download_price_history",
    "load_price_history",
    "price_records",
]
