"""
Indicator Engine Service Implementation

Turns a candle series into an IndicatorSnapshot.
NO LLM INVOLVEMENT - Pure Python/NumPy calculations.
"""

import logging
from typing import Optional

from signalpro.core.config import settings
from signalpro.schemas.market import CandleSeries
from signalpro.schemas.indicators import (
    AnalysisProfile,
    ATRData,
    BollingerBandsData,
    IndicatorSnapshot,
    IntradayIndicators,
    MACDData,
    MovingAverages,
    PriceRange,
    PriceRanges,
    SwingPatterns,
    TrendAlignment,
    VolumeMetrics,
)
from signalpro.services.base import ValidationError
from signalpro.services.indicators.interface import IndicatorServiceInterface
from signalpro.services.indicators.calculations import (
    accumulation_distribution,
    annualized_volatility,
    atr,
    bollinger_bands,
    bollinger_position,
    change_percent,
    ema,
    macd,
    price_range,
    rsi,
    sma,
    stochastic,
    volatility_percentile,
    volume_metrics,
    volume_spike,
    vwap,
    weekly_pivot,
)
from signalpro.services.indicators.levels import fibonacci_levels, find_support_resistance
from signalpro.services.indicators.patterns import (
    check_atr_validation,
    check_breakouts,
    check_price_range,
    check_rsi_bounce_zone,
    detect_breakout_pattern,
    detect_macd_crossover,
    detect_pullback_to_support,
    detect_rising_volume,
    detect_volume_breakout,
)

logger = logging.getLogger(__name__)


ATR_PERIODS = {
    AnalysisProfile.SWING: 21,
    AnalysisProfile.INTRADAY: 14,
}


def trend_alignment(price: float, ema_9: float, vwap_value: float) -> TrendAlignment:
    """Where price sits relative to EMA(9) and VWAP."""
    if price > ema_9 > vwap_value:
        return TrendAlignment.BULLISH_ALIGNED
    if price < ema_9 < vwap_value:
        return TrendAlignment.BEARISH_ALIGNED
    if price > ema_9 and price > vwap_value:
        return TrendAlignment.BULLISH_PARTIAL
    if price < ema_9 and price < vwap_value:
        return TrendAlignment.BEARISH_PARTIAL
    return TrendAlignment.NEUTRAL


class IndicatorService(IndicatorServiceInterface):
    """
    Indicator Engine Service.

    One indicator library serves both profiles; the profile only selects
    the ATR period and which optional block is filled in.
    """

    def __init__(
        self,
        stop_loss_multiplier: Optional[float] = None,
        take_profit_multiplier: Optional[float] = None,
    ):
        self.stop_loss_multiplier = (
            stop_loss_multiplier
            if stop_loss_multiplier is not None
            else settings.atr_stop_loss_multiplier
        )
        self.take_profit_multiplier = (
            take_profit_multiplier
            if take_profit_multiplier is not None
            else settings.atr_take_profit_multiplier
        )

    async def execute(self, input_data: CandleSeries) -> IndicatorSnapshot:
        return self.build_snapshot(input_data)

    def build_snapshot(
        self,
        series: CandleSeries,
        profile: Optional[AnalysisProfile] = None,
    ) -> IndicatorSnapshot:
        if series.is_empty:
            raise ValidationError(
                self.name, "Cannot build a snapshot from an empty series",
                {"instrument_key": series.instrument_key},
            )

        if profile is None:
            profile = (
                AnalysisProfile.INTRADAY if series.timeframe.is_intraday else AnalysisProfile.SWING
            )

        highs, lows = series.highs, series.lows
        closes, volumes = series.closes, series.volumes
        price = float(closes[-1])

        # Trend
        sma_50 = sma(closes, 50)
        sma_200 = sma(closes, 200)
        moving_averages = MovingAverages(
            sma_20=round(sma(closes, 20), 2),
            sma_50=round(sma_50, 2),
            sma_200=round(sma_200, 2),
            ema_9=round(ema(closes, 9), 2),
            ema_21=round(ema(closes, 21), 2),
            ema_50=round(ema(closes, 50), 2),
        )
        has_long_history = len(closes) >= 200

        # Momentum
        rsi_14 = rsi(closes, 14)
        macd_line, signal_line, histogram = macd(closes)

        # Volatility
        atr_period = ATR_PERIODS[profile]
        atr_result = atr(
            highs, lows, closes,
            period=atr_period,
            stop_loss_multiplier=self.stop_loss_multiplier,
            take_profit_multiplier=self.take_profit_multiplier,
        )
        upper, middle, lower = bollinger_bands(closes)

        # Volume
        volume_stats = volume_metrics(volumes)

        # Levels
        levels = find_support_resistance(highs, lows, closes, volumes)

        intraday = self._intraday_block(series, price, moving_averages.ema_9) if (
            profile == AnalysisProfile.INTRADAY
        ) else None
        patterns = self._swing_block(series, price, rsi_14, levels.support) if (
            profile == AnalysisProfile.SWING
        ) else None

        snapshot = IndicatorSnapshot(
            symbol=series.symbol,
            profile=profile,
            timestamp=series.last.timestamp,
            price=price,
            candle_count=len(series),
            moving_averages=moving_averages,
            golden_cross=has_long_history and sma_50 > sma_200,
            death_cross=has_long_history and sma_50 < sma_200,
            change_50_percent=round(change_percent(closes, 50), 2),
            rsi_14=round(rsi_14, 2),
            rsi_21=round(rsi(closes, 21), 2),
            macd=MACDData(macd_line=macd_line, signal_line=signal_line, histogram=histogram),
            stochastic=stochastic(highs, lows, closes),
            atr=ATRData(
                period=atr_period,
                value=round(atr_result.atr, 2),
                atr_percent=round(atr_result.atr / price * 100, 2),
                scaled_stop_loss=round(atr_result.scaled_stop_loss, 2),
                scaled_take_profit=round(atr_result.scaled_take_profit, 2),
                suggested_stop_loss=round(price - atr_result.scaled_stop_loss, 2),
                suggested_take_profit=round(price + atr_result.scaled_take_profit, 2),
            ),
            bollinger=BollingerBandsData(
                upper=round(upper, 2),
                middle=round(middle, 2),
                lower=round(lower, 2),
                position=bollinger_position(price, upper, middle, lower),
            ),
            volatility_percentile=volatility_percentile(closes),
            annualized_volatility=round(annualized_volatility(closes), 2),
            volume=VolumeMetrics(
                average_20=round(volume_stats.average_20, 2),
                current=volume_stats.current,
                ratio=round(volume_stats.ratio, 2),
                trend=volume_stats.trend,
                breakout=volume_stats.breakout,
            ),
            accumulation_distribution=round(
                accumulation_distribution(highs, lows, closes, volumes), 2
            ),
            levels=levels,
            fibonacci_levels=fibonacci_levels(highs, lows),
            weekly_pivot=round(weekly_pivot(highs, lows, closes), 2),
            price_ranges=PriceRanges(
                day_3=PriceRange(**self._range(highs, lows, 3)),
                day_10=PriceRange(**self._range(highs, lows, 10)),
                day_30=PriceRange(**self._range(highs, lows, 30)),
            ),
            intraday=intraday,
            patterns=patterns,
        )

        logger.debug(
            f"Snapshot {snapshot.symbol} ({profile.value}): price={price}, "
            f"rsi={snapshot.rsi_14}, atr={snapshot.atr.value}"
        )
        return snapshot

    @staticmethod
    def _range(highs, lows, period: int) -> dict:
        high, low = price_range(highs, lows, period)
        return {"high": high, "low": low}

    def _intraday_block(
        self, series: CandleSeries, price: float, ema_9: float
    ) -> IntradayIndicators:
        highs, lows = series.highs, series.lows
        closes, volumes = series.closes, series.volumes

        vwap_value = vwap(highs, lows, closes, volumes)
        breakouts = check_breakouts(highs, lows, closes)

        return IntradayIndicators(
            vwap=round(vwap_value, 2),
            trend_alignment=trend_alignment(price, ema_9, vwap_value),
            volume_spike=volume_spike(volumes),
            breakout_day_high=breakouts.day_high,
            breakout_prev_day_range=breakouts.prev_day_range,
            opening_range_breakout=breakouts.opening_range,
        )

    def _swing_block(
        self,
        series: CandleSeries,
        price: float,
        rsi_14: float,
        support: list[float],
    ) -> SwingPatterns:
        highs, lows = series.highs, series.lows
        closes, volumes = series.closes, series.volumes

        pattern = detect_breakout_pattern(closes, highs, lows, volumes)
        atr_valid, atr_percent = check_atr_validation(highs, lows, closes, price)
        price_valid, price_band = check_price_range(price)
        is_pullback, _, support_distance = detect_pullback_to_support(highs, support, price)
        volume_breakout, volume_multiple = detect_volume_breakout(volumes)
        in_bounce_zone, rsi_zone = check_rsi_bounce_zone(rsi_14)
        macd_cross, macd_status = detect_macd_crossover(closes)
        rising, volume_trend = detect_rising_volume(volumes)

        return SwingPatterns(
            breakout_pattern=pattern.pattern,
            breakout_confidence=pattern.confidence,
            atr_validation=atr_valid,
            atr_percent=atr_percent,
            price_range_valid=price_valid,
            price_range=price_band,
            pullback_to_support=is_pullback,
            support_distance=support_distance,
            volume_breakout_detected=volume_breakout,
            volume_multiple=volume_multiple,
            rsi_bounce_zone=in_bounce_zone,
            rsi_zone=rsi_zone,
            macd_bullish_crossover=macd_cross,
            macd_signal_status=macd_status,
            rising_volume=rising,
            volume_trend=volume_trend,
        )


# Singleton instance
_service_instance: Optional[IndicatorService] = None


def get_indicator_service() -> IndicatorService:
    """Get or create indicator service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = IndicatorService()
    return _service_instance
