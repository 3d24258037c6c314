import math

import numpy as np
import pytest

from fx_signal_engine.indicators import change_pct, latest_rsi, latest_sma, rolling_rsi, rolling_sma


def test_rolling_sma_aligned_with_nan_prefix():
    out = rolling_sma([1, 2, 3, 4, 5, 6], 5)
    assert all(math.isnan(x) for x in out[:4])
    assert out[4] == pytest.approx(3.0)
    assert out[5] == pytest.approx(4.0)


def test_latest_sma_undefined_when_short():
    assert latest_sma([1.1] * 19, 20) is None
    assert latest_sma([1.1] * 20, 20) == pytest.approx(1.1)
    assert latest_sma([], 5) is None


def test_latest_sma_uses_only_trailing_window():
    values = [100.0] * 10 + [1.0, 2.0, 3.0, 4.0, 5.0]
    assert latest_sma(values, 5) == pytest.approx(3.0)


def test_rsi_needs_period_plus_one_samples():
    assert latest_rsi(list(range(14)), 14) is None
    assert latest_rsi(list(range(15)), 14) is not None


def test_rsi_known_value():
    # 7 gains of 2 and 7 losses of 1: avg gain 1.0, avg loss 0.5, RS 2
    closes = [10.0]
    for i in range(14):
        closes.append(closes[-1] + (2.0 if i % 2 == 0 else -1.0))
    assert latest_rsi(closes, 14) == pytest.approx(100 - 100 / 3)


def test_rsi_saturates_when_no_losses():
    assert latest_rsi([1.0 + i * 0.01 for i in range(20)], 14) == 100.0
    # flat window has zero average loss as well
    assert latest_rsi([1.1] * 20, 14) == 100.0


def test_rsi_zero_when_only_losses():
    assert latest_rsi([2.0 - i * 0.01 for i in range(20)], 14) == pytest.approx(0.0)


def test_rsi_only_looks_at_last_transitions():
    closes = [5.0, 1.0] + [1.0 + i * 0.01 for i in range(1, 15)]
    assert latest_rsi(closes, 14) == 100.0


@pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
def test_rsi_bounded_on_random_walks(seed):
    rng = np.random.default_rng(seed)
    closes = 1.1 + np.cumsum(rng.normal(0, 0.003, 200))
    rsi = rolling_rsi(closes, 14)
    defined = rsi[~np.isnan(rsi)]
    assert len(defined) == 200 - 14
    assert defined.min() >= 0.0
    assert defined.max() <= 100.0


def test_change_pct():
    out = change_pct([100.0, 110.0, 99.0])
    assert list(out) == pytest.approx([0.0, 10.0, -10.0])
    assert list(change_pct([])) == []


@pytest.mark.parametrize("base", [1.2345, 1.3, 1.085, 1.1, 0.9876, 1.0912])
def test_latest_sma_flat_window_equals_price_exactly(base):
    values = [base] * 30
    for period in (5, 10, 20):
        assert latest_sma(values, period) == base
    assert latest_rsi(values, 14) == 100.0
