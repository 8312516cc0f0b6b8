"""
Bear-market cost-averaging simulator comparing the rebalancing ladder with DCA baselines

Overview
--------
This script replays a price history through a full market cycle:

1) Bull exit: the investor enters at the first price >= --entry-price holding
   --initial-cash in cash and --initial-invest worth of coins, then scales out
   with the staircase liquidation algorithm (target cash ratio --exit-cash-ratio)
   until the cash side is worth at least as much as the coin side.
2) Bear hold: the portfolio is re-split so --bear-cash-ratio of it is cash.
3) Bear accumulation: every allocator in --strategies is fed the bear-market
   prices, receiving --amount-round every --days-per-round ticks. Invested cash
   and coins are reported at the trough and when the bull market resumes
   (the trailing run of prices >= --bull-price).
4) Next bull exit: the holdings bought by --use-strategy are rebalanced to
   --exit-cash-ratio and liquidated from --bull-exit-price starting on
   --bull-exit-date until the end of the series.

Allocators
----------
- fixed-interval: invest the whole round budget on the first day of the round.
- fixed-fraction: invest an equal share of the round budget every day.
- ladder: issue one rebalancing position per day with a fixed horizon.
- adaptive: ladder whose daily funding is corrected from realised investment.

Inputs
------
- --csv: a CSV with ``date``/``price`` (or ``close``) columns, or a headerless
  ``date<TAB>price`` TSV. Alternatively --symbol downloads closes from Yahoo
  Finance.
- --settings: optional JSON file of ladder overrides (see costavg.config).

Run
---
python simulate_ladder.py --csv bitcoin_price_hist.tsv [--symbol BTC-USD] \
  [--entry-price 10000] [--bull-price 13000] [--stress-price 300] \
  [--strategies fixed-interval,fixed-fraction,ladder,adaptive] [--use-strategy ladder] \
  [--bull-exit-date 2021-01-12] [--bull-exit-price 33000] \
  [--print-trades] [--save-csv histories.csv] [--save-plot ladder.png] [--no-show]
"""

from __future__ import annotations

import argparse
import math
from dataclasses import replace
from typing import Dict, List

import matplotlib.pyplot as plt
import pandas as pd

from costavg import (
    STRATEGIES,
    BearMarketRun,
    Ladder,
    build_method,
    download_price_history,
    dollar_cost_average,
    exit_until_balanced,
    find_market_phases,
    liquidate,
    load_price_history,
    load_settings,
    settings_from_mapping,
)
from costavg.config import DEFAULT_REBALANCE_STEP


def print_sell_log(sell_log) -> None:
    for price, amount in sell_log:
        print(f"At price {price:.2f} sell {-amount:.8f} coins get {-price * amount:.2f} cash")


def run_strategies(args, prices: pd.DataFrame, bear_start: int, bull_start: int, trough: int) -> Dict[str, BearMarketRun]:
    base = load_settings(args.settings) if args.settings else None
    runs: Dict[str, BearMarketRun] = {}
    for name in args.strategies:
        preset = STRATEGIES[name] if base is None else replace(base, kind=STRATEGIES[name].kind)
        settings = settings_from_mapping(
            {"days_per_round": args.days_per_round, "rebalance_step": args.rebalance_step},
            preset,
        )
        method = build_method(settings)
        runs[name] = dollar_cost_average(
            prices,
            method,
            bear_start=bear_start,
            bull_start=bull_start,
            trough=trough,
            amount_round=args.amount_round,
            days_per_round=args.days_per_round,
        )
        if isinstance(method, Ladder):
            print(f"  [{name}] {method.status_line()}")
    return runs


def plot_runs(runs: Dict[str, BearMarketRun], save_plot, show: bool) -> None:
    fig, (ax_price, ax_cash) = plt.subplots(2, 1, figsize=(12, 8), sharex=True)
    first = next(iter(runs.values()))
    ax_price.plot(first.history["date"], first.history["price"], color="black", lw=1.0)
    ax_price.set_ylabel("Price")
    ax_price.set_yscale("log")
    ax_price.set_title("Bear-market accumulation")
    for name, run in runs.items():
        ax_cash.plot(run.history["date"], run.history["cash_invested"], lw=1.2, label=name)
    ax_cash.set_ylabel("Cumulative cash invested")
    ax_cash.legend(loc="upper left")
    ax_cash.grid(True, alpha=0.3)
    fig.tight_layout()
    if save_plot:
        fig.savefig(save_plot, dpi=150)
        print(f"Saved plot to {save_plot}")
    if show:
        plt.show()
    plt.close(fig)


def main():
    parser = argparse.ArgumentParser(description="Compare ladder cost averaging with DCA baselines over a bear market")
    parser.add_argument("--csv", default=None, help="Price history CSV/TSV path")
    parser.add_argument("--symbol", default=None, help="Download this symbol from Yahoo Finance instead of --csv")
    parser.add_argument("--settings", default=None, help="Optional JSON file of ladder setting overrides")
    parser.add_argument("--entry-price", type=float, default=10000.0, help="Enter at the first price >= this (default 10000)")
    parser.add_argument("--bull-price", type=float, default=13000.0, help="Bull market resumes above this price (default 13000)")
    parser.add_argument("--stress-price", type=float, default=300.0, help="Price used for the worst-case loss report (default 300)")
    parser.add_argument("--initial-cash", type=float, default=30000.0)
    parser.add_argument("--initial-invest", type=float, default=90000.0)
    parser.add_argument("--exit-cash-ratio", type=float, default=0.25)
    parser.add_argument("--bear-cash-ratio", type=float, default=0.75)
    parser.add_argument("--rebalance-step", type=float, default=DEFAULT_REBALANCE_STEP)
    parser.add_argument("--amount-round", type=float, default=2000.0)
    parser.add_argument("--days-per-round", type=int, default=30)
    parser.add_argument(
        "--strategies",
        default="fixed-interval,fixed-fraction,ladder,adaptive",
        help="Comma separated allocators to compare",
    )
    parser.add_argument("--use-strategy", default="ladder", help="Allocator whose coins are carried into the next bull")
    parser.add_argument("--bull-exit-date", default="2021-01-12", help="Start exiting the next bull market on this date")
    parser.add_argument("--bull-exit-price", type=float, default=33000.0)
    parser.add_argument("--print-trades", action="store_true", help="Print every liquidation sale")
    parser.add_argument("--save-csv", default=None, help="If set, save per-tick allocator histories here")
    parser.add_argument("--save-plot", default=None, help="If set, save plot PNG here")
    parser.add_argument("--no-show", action="store_true", help="Do not display the plot")
    args = parser.parse_args()

    args.strategies = [s.strip() for s in args.strategies.split(",") if s.strip()]
    unknown = [s for s in args.strategies + [args.use_strategy] if s not in STRATEGIES]
    if unknown:
        parser.error(f"unknown strategies: {', '.join(unknown)}; choose from {', '.join(STRATEGIES)}")
    if args.use_strategy not in args.strategies:
        args.strategies.append(args.use_strategy)

    if args.symbol:
        prices = download_price_history(args.symbol)
    elif args.csv:
        prices = load_price_history(args.csv)
    else:
        parser.error("one of --csv or --symbol is required")

    phases = find_market_phases(prices["price"], entry_price=args.entry_price, bull_price=args.bull_price)
    enter_price = float(prices["price"].iloc[phases.entry])
    print(f"Entry {prices['date'].iloc[phases.entry].date()} at {enter_price:.2f}")
    print(f"Lowest {prices['price'].iloc[phases.trough]:.2f} on {prices['date'].iloc[phases.trough].date()}")

    # 1) Scale out of the first bull market.
    coins = args.initial_invest / enter_price
    begin_total_asset = args.initial_cash + args.initial_invest
    print(f"begins: {args.initial_cash:.2f} cash, {coins:.8f} coins, total {begin_total_asset:.2f}")
    exit_state, exit_index = exit_until_balanced(
        prices["price"].to_numpy(),
        phases.entry,
        phases.trough,
        args.initial_cash,
        coins,
        args.exit_cash_ratio,
        args.rebalance_step,
    )
    if args.print_trades:
        print_sell_log(exit_state.sell_log)
    print(f"remaining: {exit_state.cash:.2f} cash, {exit_state.coins:.8f} coins")

    total_asset = exit_state.total_value(enter_price)
    print(
        f"when price dropped back to {enter_price:.2f}, total {total_asset:.2f} "
        f"gain {total_asset - begin_total_asset:.2f}"
    )

    # 2) Hold a bear-market cash ratio.
    cash = total_asset * args.bear_cash_ratio
    coins = total_asset * (1.0 - args.bear_cash_ratio) / enter_price
    print(f"Bear market split: cash {cash:.2f}, coins {coins:.8f}")

    # 3) Accumulate through the bear market.
    bull_start = find_market_phases(
        prices["price"], entry_price=args.entry_price, bull_price=args.bull_price, bear_start=exit_index
    ).bull
    already_invested = begin_total_asset - cash
    runs = run_strategies(args, prices, exit_index, bull_start, phases.trough)
    for name, run in runs.items():
        print(f"\n Try {name}:")
        if not math.isnan(run.cash_at_trough):
            worst_cash = already_invested + run.cash_at_trough
            worst_coins = coins + run.coins_at_trough
            print(
                f"At lowest price {prices['price'].iloc[phases.trough]:.2f}, total invested cash {worst_cash:.2f}, "
                f"coins {worst_coins:.8f}. Potential loss if price goes to {args.stress_price:.2f}: "
                f"{worst_cash - args.stress_price * worst_coins:.2f}"
            )
        print(
            f"Bear market invested cash {run.cash_invested:.2f}, coins {run.coins_invested:.8f}, "
            f"average price {run.average_price:.2f}"
        )

    # 4) Exit the next bull market with the chosen allocator's coins.
    chosen = runs[args.use_strategy]
    coins = coins + chosen.coins_invested
    if bull_start >= len(prices):
        print("\nSeries ends before the bull market resumes; skipping bull exit")
    else:
        bull_start_price = float(prices["price"].iloc[bull_start])
        total_asset = cash + coins * bull_start_price
        start_cash = total_asset * args.exit_cash_ratio
        start_coins = total_asset * (1.0 - args.exit_cash_ratio) / bull_start_price
        print(
            f"\nUse {args.use_strategy}: rebalance at {bull_start_price:.2f} on "
            f"{prices['date'].iloc[bull_start].date()}, total asset {total_asset:.2f}, "
            f"cash {start_cash:.2f}, coins {start_coins:.8f}"
        )

        exit_from = prices.index[prices["date"] >= pd.Timestamp(args.bull_exit_date)]
        sells: List = []
        price = args.bull_exit_price
        for index in range(int(exit_from[0]) if len(exit_from) else len(prices), len(prices)):
            step = liquidate(
                args.exit_cash_ratio,
                start_cash,
                start_coins,
                args.rebalance_step,
                price,
                float(prices["price"].iloc[index]),
            )
            start_cash, start_coins, price = step.cash, step.coins, step.price
            sells.extend(step.sell_log)
        if args.print_trades:
            print_sell_log(sells)

        invested_total = begin_total_asset + chosen.cash_invested
        last_price = float(prices["price"].iloc[-1])
        final_total = start_cash + start_coins * last_price
        print(
            f"Last price {last_price:.2f} remaining: {start_cash:.2f} cash, {start_coins:.8f} coins, "
            f"total asset {final_total:.2f}, unrealized profit {final_total - invested_total:.2f} of "
            f"{invested_total:.2f}; cash out percentage {start_cash / invested_total:.4f}"
        )

    if args.save_csv:
        frames = []
        for name, run in runs.items():
            frame = run.history.copy()
            frame.insert(0, "strategy", name)
            frames.append(frame)
        pd.concat(frames, ignore_index=True).to_csv(args.save_csv, index=False)
        print(f"Saved histories to {args.save_csv}")

    if args.save_plot or not args.no_show:
        plot_runs(runs, args.save_plot, show=not args.no_show)


if __name__ == "__main__":
    main()
