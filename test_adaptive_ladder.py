import pytest

np = pytest.importorskip("numpy")

from costavg.ladder import AdaptiveLadder, Ladder


def _run(ladder, prices, supply=300.0, days_per_round=30):
    ladder.set_supply(supply)
    for i, price in enumerate(prices):
        if i % days_per_round == 0:
            ladder.start_new_round(days_per_round)
        ladder.feed_price(float(price))
    return ladder


def test_matches_plain_ladder_until_the_horizon_elapses():
    prices = np.linspace(100.0, 80.0, 11)
    plain = _run(Ladder(0.817, 0.8, 0.005, 10), prices)
    adaptive = _run(AdaptiveLadder(0.817, 0.8, 0.005, 10, 0.05), prices)

    assert adaptive.funding_history == plain.funding_history
    assert adaptive.get_invest_status() == plain.get_invest_status()
    assert adaptive.last_adjustment is None


def test_correction_combines_catch_up_and_ratio_terms():
    use_ratio, cash_ratio, pct = 0.5, 0.8, 0.1
    ladder = _run(AdaptiveLadder(use_ratio, cash_ratio, 0.005, 3, pct), [100.0] * 5)

    budget = 10.0
    base = budget / (1 - cash_ratio) * use_ratio
    # two positions expired on ticks 3 and 4; each invested 20% of its cash
    invested = 2 * 0.2 * base
    catch_up = (2 * budget - invested) * pct
    ratio_correction = budget * (1.0 / (1.0 * use_ratio) - 1.0)
    expected = base + (catch_up + ratio_correction) / (1 - cash_ratio) * use_ratio

    adjustment = ladder.last_adjustment
    assert adjustment is not None
    assert adjustment.base == pytest.approx(base)
    assert adjustment.expected_spending == pytest.approx(2 * budget)
    assert adjustment.catch_up == pytest.approx(catch_up)
    assert adjustment.ratio_correction == pytest.approx(ratio_correction)
    assert ladder.funding_history[4] == pytest.approx(expected)
    assert adjustment.funding == pytest.approx(expected)
    assert ladder.cash_reserve == pytest.approx(
        sum(budget - f for f in ladder.funding_history) + ladder.total_reclaimed_cash
    )


def test_funding_is_floored_at_zero_when_overinvested():
    # a use ratio far above 1 makes every position invest five times the budget
    ladder = _run(AdaptiveLadder(5.0, 0.8, 0.005, 3, 1.0), [100.0] * 8)

    assert ladder.funding_history[4] == 0.0
    assert min(ladder.funding_history) >= 0.0
    assert ladder.last_adjustment.funding >= 0.0


def test_missing_conversion_history_skips_ratio_correction():
    ladder = _run(AdaptiveLadder(0.817, 0.8, 0.005, 3, 0.5), [100.0] * 6, supply=0.0)

    assert ladder.funding_history == [0.0] * 6
    assert ladder.last_adjustment.ratio_correction == 0.0
    assert ladder.last_adjustment.funding == 0.0


@pytest.mark.parametrize("use_ratio", [0.3, 0.817, 2.0])
@pytest.mark.parametrize("pct", [0.0, 0.05, 1.0])
def test_funding_never_negative_on_noisy_prices(use_ratio, pct):
    rng = np.random.RandomState(11)
    prices = 100.0 * np.cumprod(1.0 + rng.normal(0.0, 0.04, size=120))

    ladder = _run(AdaptiveLadder(use_ratio, 0.75, 0.01, 20, pct), prices, supply=2000.0)

    assert min(ladder.funding_history) >= 0.0
    assert len(ladder.funding_history) == ladder.tick == 120
    for position in ladder.positions:
        assert position.cash >= 0.0
        assert position.coins >= 0.0


def test_negative_reinvest_percentage_is_rejected():
    with pytest.raises(ValueError):
        AdaptiveLadder(0.817, 0.8, 0.005, 150, -0.1)
