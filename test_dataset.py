import sys
import types

import pytest

pd = pytest.importorskip("pandas")

from costavg import dataset
from costavg.dataset import PriceDataError, load_price_history, price_records


def test_load_csv_filters_and_sorts(tmp_path):
    csv = tmp_path / "series.csv"
    csv.write_text(
        "date,close\n"
        "2020-01-04,120\n"
        "2020-01-01,100\n"
        "2020-01-02,\n"
        "2020-01-03,-5\n"
        "not-a-date,7\n"
    )

    df = load_price_history(str(csv))

    assert list(df.columns) == ["date", "price"]
    assert list(df.index) == [0, 1]
    assert list(df["date"]) == [pd.Timestamp("2020-01-01"), pd.Timestamp("2020-01-04")]
    assert list(df["price"]) == [100.0, 120.0]


def test_load_headerless_tsv_with_comments(tmp_path):
    tsv = tmp_path / "btc.tsv"
    tsv.write_text(
        "# bitcoin closes\n"
        "1/12/2021\t33000.5\n"
        "1/11/2021\t35500\n"
        "\n"
        "1/13/2021\t37300\n"
    )

    df = load_price_history(str(tsv))

    assert [d.strftime("%Y-%m-%d") for d in df["date"]] == ["2021-01-11", "2021-01-12", "2021-01-13"]
    assert list(df["price"]) == [35500.0, 33000.5, 37300.0]


def test_load_requires_columns(tmp_path):
    csv = tmp_path / "bad.csv"
    csv.write_text("date,value\n2020-01-01,1\n")

    with pytest.raises(PriceDataError):
        load_price_history(str(csv))


def test_load_raises_when_nothing_survives_cleaning(tmp_path):
    csv = tmp_path / "empty.csv"
    csv.write_text("date,price\n2020-01-01,0\n2020-01-02,-1\n")

    with pytest.raises(PriceDataError):
        load_price_history(str(csv))


def test_price_records_yield_in_row_order():
    df = pd.DataFrame(
        {"date": pd.to_datetime(["2020-01-01", "2020-01-02", "2020-01-03"]), "price": [1.0, 2.0, 3.0]}
    )

    records = list(price_records(df, 1))

    assert records == [(pd.Timestamp("2020-01-02"), 2.0), (pd.Timestamp("2020-01-03"), 3.0)]


def test_download_price_history_uses_yfinance(monkeypatch):
    calls = []

    def fake_download(symbol, **kwargs):
        calls.append((symbol, kwargs.get("auto_adjust")))
        index = pd.DatetimeIndex(["2021-01-02", "2021-01-01"], tz="UTC")
        return pd.DataFrame({"Close": [11.0, 10.0]}, index=index)

    monkeypatch.setitem(sys.modules, "yfinance", types.SimpleNamespace(download=fake_download))

    df = dataset.download_price_history("BTC-USD")

    assert calls == [("BTC-USD", True)]
    assert list(df["price"]) == [10.0, 11.0]
    assert df["date"].iloc[0] == pd.Timestamp("2021-01-01")


def test_download_price_history_raises_on_empty(monkeypatch):
    monkeypatch.setitem(
        sys.modules,
        "yfinance",
        types.SimpleNamespace(download=lambda symbol, **kwargs: pd.DataFrame()),
    )

    with pytest.raises(RuntimeError):
        dataset.download_price_history("NOPE")
