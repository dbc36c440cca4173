"""Technical indicators -- pure Python math, no numpy/pandas required.

Every function takes closing prices oldest-first, performs no I/O and never
raises on short or empty input: a window that does not fit yields None
(RSI yields its neutral 50).
"""

from __future__ import annotations

from collections.abc import Sequence

from core.models.indicators import IndicatorSet, MACDResult, Trend
from core.models.market import PriceSeries

RSI_NEUTRAL = 50.0
RSI_PERIOD = 14


def rsi(closes: Sequence[float], period: int = RSI_PERIOD) -> float:
    """Relative Strength Index over the trailing `period` price changes.

    Uses simple averages of gains and losses. Returns 50 when there are
    fewer than period + 1 prices and 100 when there were no losses.
    """
    if period <= 0 or len(closes) < period + 1:
        return RSI_NEUTRAL

    window = closes[-(period + 1):]
    gains = 0.0
    losses = 0.0
    for prev, curr in zip(window, window[1:]):
        delta = curr - prev
        if delta > 0:
            gains += delta
        else:
            losses -= delta

    avg_gain = gains / period
    avg_loss = losses / period
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def sma(closes: Sequence[float], period: int) -> float | None:
    """Arithmetic mean of the trailing `period` prices."""
    if period <= 0 or len(closes) < period:
        return None
    return sum(closes[-period:]) / period


def ema_series(values: Sequence[float], period: int) -> list[float]:
    """EMA values from the seed point onward.

    The seed is the SMA of the first `period` values; each later point
    applies ema = (price - ema) * k + ema with k = 2 / (period + 1).
    Returns an empty list when there are fewer than `period` values.
    """
    if period <= 0 or len(values) < period:
        return []

    k = 2.0 / (period + 1)
    current = sum(values[:period]) / period
    out = [current]
    for price in values[period:]:
        current = (price - current) * k + current
        out.append(current)
    return out


def ema(closes: Sequence[float], period: int) -> float | None:
    """Latest EMA value, or None when the series is shorter than `period`."""
    series = ema_series(closes, period)
    return series[-1] if series else None


def macd(
    closes: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MACDResult | None:
    """MACD line, signal line and histogram.

    The signal line is a true `signal`-period EMA of the MACD line series.
    It (and the histogram) stay None until that many MACD values exist,
    i.e. until the series has slow + signal - 1 prices.
    """
    if len(closes) < max(fast, slow):
        return None

    fast_ema = ema_series(closes, fast)
    slow_ema = ema_series(closes, slow)
    # Align both series on the last len(slow_ema) prices.
    offset = len(fast_ema) - len(slow_ema)
    line = [f - s for f, s in zip(fast_ema[offset:], slow_ema)]

    value = line[-1]
    signal_values = ema_series(line, signal)
    if not signal_values:
        return MACDResult(value=value)

    signal_value = signal_values[-1]
    return MACDResult(
        value=value,
        signal=signal_value,
        histogram=value - signal_value,
    )


def classify_trend(
    price: float | None,
    sma20: float | None,
    sma50: float | None,
) -> Trend | None:
    """Bullish when price > sma20 > sma50, bearish when price is below both
    averages (so 90 vs 100/95 is bearish), otherwise neutral."""
    if price is None or sma20 is None or sma50 is None:
        return None
    if price > sma20 > sma50:
        return "bullish"
    if price < sma20 and price < sma50:
        return "bearish"
    return "neutral"


def compute_indicators(series: PriceSeries | Sequence[float]) -> IndicatorSet:
    """Compute the full indicator set for one price series."""
    closes = list(series.closes if isinstance(series, PriceSeries) else series)
    sma20 = sma(closes, 20)
    sma50 = sma(closes, 50)
    return IndicatorSet(
        rsi=rsi(closes, RSI_PERIOD),
        sma20=sma20,
        sma50=sma50,
        ema12=ema(closes, 12),
        ema26=ema(closes, 26),
        macd=macd(closes),
        trend=classify_trend(closes[-1] if closes else None, sma20, sma50),
    )
