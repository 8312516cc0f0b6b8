import pytest

from costavg.position import Position


def _position(cash=100.0, price=50.0, expiry=10, ratio=0.8, step=0.005):
    return Position(cash, price, expiry, ratio, step)


def test_first_trade_at_creation_price_executes_one_boundary_step():
    pos = _position()

    cash, coins = pos.trade(50.0)

    # total 100 at price 50, keep 80 as cash, buy 20 worth
    assert cash == pytest.approx(20.0)
    assert coins == pytest.approx(0.4)
    assert pos.cash == pytest.approx(80.0)
    assert pos.coins == pytest.approx(0.4)
    assert pos.last_price == pytest.approx(50.0 * (1 - 0.005))


def test_same_price_twice_is_a_no_op_on_second_call():
    pos = _position()
    pos.trade(50.0)
    state = (pos.cash, pos.coins, pos.last_price)

    assert pos.trade(50.0) == (0.0, 0.0)
    assert (pos.cash, pos.coins, pos.last_price) == state


def test_price_rise_leaves_position_untouched():
    pos = _position()

    assert pos.trade(60.0) == (0.0, 0.0)
    assert pos.cash == 100.0
    assert pos.coins == 0.0
    assert pos.last_price == 50.0


def test_trade_log_accounts_for_all_cash_converted():
    pos = _position(cash=1000.0, price=100.0)
    log = []

    cash, coins = pos.trade(80.0, log)

    assert len(log) > 1
    assert sum(p * c for p, c in log) == pytest.approx(cash)
    assert sum(c for _, c in log) == pytest.approx(coins)
    assert pos.cash + cash == pytest.approx(1000.0)
    assert pos.coins == pytest.approx(coins)
    assert all(80.0 <= p <= 100.0 for p, _ in log)


def test_each_logged_buy_keeps_value_at_its_price():
    pos = _position(cash=1000.0, price=100.0)
    log = []

    pos.trade(80.0, log)

    cash, coins = 1000.0, 0.0
    for price, bought in log:
        before = cash + coins * price
        cash -= price * bought
        coins += bought
        assert cash + coins * price == pytest.approx(before)
        assert cash == pytest.approx(0.8 * before)
    assert pos.cash == pytest.approx(cash)
    assert pos.coins == pytest.approx(coins)


def test_trade_settles_on_target_cash_ratio_at_last_step_price():
    pos = _position(cash=1000.0, price=100.0)
    log = []

    pos.trade(70.0, log)

    last_price, _ = log[-1]
    total = pos.cash + pos.coins * last_price
    assert pos.cash == pytest.approx(0.8 * total)


def test_final_price_undershoots_by_less_than_one_step():
    pos = _position(cash=1000.0, price=100.0, step=0.01)

    pos.trade(73.0)

    assert 73.0 * (1 - 0.01) <= pos.last_price < 73.0


def test_step_without_cash_surplus_is_skipped_but_price_advances():
    pos = Position(100.0, 10.0, 5, 0.0, 0.1)
    log = []

    cash, coins = pos.trade(8.0, log)

    assert cash == pytest.approx(100.0)
    assert coins == pytest.approx(10.0)
    assert log == [(10.0, pytest.approx(10.0))]
    assert pos.last_price == pytest.approx(7.29)


def test_holdings_never_negative_along_a_choppy_path():
    pos = _position(cash=500.0, price=100.0, step=0.01)
    path = [95.0, 99.0, 90.0, 60.0, 75.0, 58.0, 40.0, 41.0, 12.0]

    for price in path:
        pos.trade(price)
        assert pos.cash >= 0.0
        assert pos.coins >= 0.0


def test_expire_returns_holdings_exactly_once():
    pos = _position(expiry=3)
    pos.trade(50.0)

    assert pos.expire(2) == (False, 0.0, 0.0)
    assert pos.cash == pytest.approx(80.0)

    expired, cash, coins = pos.expire(3)
    assert expired is True
    assert cash == pytest.approx(80.0)
    assert coins == pytest.approx(0.4)

    assert pos.expire(4) == (False, 0.0, 0.0)
    assert pos.cash == 0.0 and pos.coins == 0.0


def test_expire_flag_is_raised_on_a_single_tick():
    pos = _position(expiry=3)
    pos.trade(50.0)

    flags = [pos.expire(tick)[0] for tick in range(0, 8)]

    assert flags.count(True) == 1
    assert flags.index(True) == 3


@pytest.mark.parametrize(
    "kwargs",
    [
        {"price": 0.0},
        {"cash": -1.0},
        {"ratio": 1.0},
        {"ratio": -0.1},
        {"step": 0.0},
        {"step": 1.0},
    ],
)
def test_invalid_construction_is_rejected(kwargs):
    with pytest.raises(ValueError):
        _position(**kwargs)


def test_trade_rejects_non_positive_price():
    with pytest.raises(ValueError):
        _position().trade(0.0)
