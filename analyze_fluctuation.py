"""
Forward drawdown analyzer for a price history

For every day this script reports the lowest price seen afterwards, over the
rest of the series and over forward windows of the given lengths (today
included), together with the maximum drop ratio ``1 - lowest / price``. The
window lengths usually match ladder horizons, so the table shows how deep a
position issued on that day could have been pushed before expiring.

CLI
---
python analyze_fluctuation.py --csv bitcoin_price_hist.tsv [--windows 30,150] \
  [--print-lines] [--save-csv fluctuation.csv] [--save-plot fluctuation.png] [--no-show]
"""

from __future__ import annotations

import argparse

import matplotlib.pyplot as plt

from costavg import format_fluctuation_lines, later_lowest_prices, load_price_history


def main():
    parser = argparse.ArgumentParser(description="Forward lowest-price and drawdown table")
    parser.add_argument("--csv", required=True, help="Price history CSV/TSV path")
    parser.add_argument("--windows", default="30,150", help="Comma separated forward window lengths in days")
    parser.add_argument("--print-lines", action="store_true", help="Print one line per day and window")
    parser.add_argument("--save-csv", default=None, help="If set, save the table here")
    parser.add_argument("--save-plot", default=None, help="If set, save plot PNG here")
    parser.add_argument("--no-show", action="store_true", help="Do not display the plot")
    args = parser.parse_args()

    windows = [int(w) for w in args.windows.split(",") if w.strip()]
    prices = load_price_history(args.csv)
    table = later_lowest_prices(prices["price"], windows)
    table.insert(0, "date", prices["date"])

    if args.print_lines:
        print("log fluctuation")
        for line in format_fluctuation_lines(
            [d.strftime("%Y-%m-%d") for d in prices["date"]], table.drop(columns=["date"])
        ):
            print(line)
        print()

    drop_cols = [c for c in table.columns if c.startswith("max_drop_")]
    for col in drop_cols:
        worst = table[col].idxmax()
        print(
            f"{col}: worst {table.loc[worst, col] * 100.0:.2f}% from {table.loc[worst, 'price']:.2f} "
            f"on {table.loc[worst, 'date'].date()}, median {table[col].median() * 100.0:.2f}%"
        )

    if args.save_csv:
        table.to_csv(args.save_csv, index=False)
        print(f"Saved table to {args.save_csv}")

    if args.save_plot or not args.no_show:
        fig, ax = plt.subplots(figsize=(12, 5))
        for col in drop_cols:
            ax.plot(table["date"], table[col] * 100.0, lw=1.0, label=col)
        ax.set_ylabel("Max later drop (%)")
        ax.legend(loc="upper right")
        ax.grid(True, alpha=0.3)
        fig.tight_layout()
        if args.save_plot:
            fig.savefig(args.save_plot, dpi=150)
            print(f"Saved plot to {args.save_plot}")
        if not args.no_show:
            plt.show()
        plt.close(fig)


if __name__ == "__main__":
    main()
