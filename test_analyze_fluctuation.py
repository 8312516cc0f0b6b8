import os
import re
import subprocess
import sys
from pathlib import Path

import pytest

pd = pytest.importorskip("pandas")

ROOT = Path(__file__).resolve().parent


def run(args):
    cmd = [sys.executable, str(ROOT / "analyze_fluctuation.py"), "--no-show", *args]
    env = dict(os.environ, MPLBACKEND="Agg")
    return subprocess.check_output(cmd, text=True, cwd=ROOT, env=env)


def test_drop_summary_and_saved_table(tmp_path):
    tsv = tmp_path / "prices.tsv"
    prices = [100, 110, 55, 80, 115, 90, 60, 100, 130, 125]
    dates = pd.date_range("2020-03-01", periods=len(prices), freq="D")
    tsv.write_text("".join(f"{d:%Y-%m-%d}\t{p}\n" for d, p in zip(dates, prices)))
    table_csv = tmp_path / "fluctuation.csv"

    out = run(["--csv", str(tsv), "--windows", "3", "--print-lines", "--save-csv", str(table_csv)])

    # 110 on day two is followed by 55: the deepest drop over the rest of the series
    m = re.search(r"max_drop_inf: worst ([0-9.]+)% from ([0-9.]+) on (\S+)", out)
    assert m, "max_drop_inf summary not found"
    assert float(m.group(1)) == pytest.approx(50.0)
    assert float(m.group(2)) == pytest.approx(110.0)
    assert m.group(3) == "2020-03-02"
    assert re.search(r"max_drop_3: worst [0-9.]+%", out)
    assert "2020-03-01 100.0 days range 3 later_lowest 55.0 max drop ratio 45.00%" in out

    table = pd.read_csv(table_csv)
    assert list(table.columns) == [
        "date",
        "price",
        "later_lowest_inf",
        "max_drop_inf",
        "later_lowest_3",
        "max_drop_3",
    ]
    assert len(table) == len(prices)
    assert table["later_lowest_inf"].iloc[-1] == pytest.approx(125.0)
