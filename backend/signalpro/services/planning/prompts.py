"""
Advisory Prompt Templates

CRITICAL RULES (enforced in all prompts):
- LLM does NO indicator math - all numbers come from the snapshot
- Respond with a single JSON object
- Entry, target and stop must be consistent with the direction
"""

from signalpro.schemas.indicators import AnalysisProfile
from signalpro.services.planning.interface import PlanContext

# =============================================================================
# SYSTEM PROMPTS
# =============================================================================

INTRADAY_SYSTEM_PROMPT = """You are a professional intraday trader and technical analyst for Indian stock markets (NSE/BSE).
Your job is to read pre-computed indicators and return a trading recommendation in strict JSON format.

CRITICAL REQUIREMENTS:
1. Respond with ONLY a valid JSON object - no other text before or after
2. Decide if the setup is LONG (buy), SHORT (sell) or NEUTRAL
3. Use ATR multiples for targets and stops: LONG target = entry + 1-1.5 x ATR, SHORT target = entry - 1-1.5 x ATR
4. LONG: stop_loss < entry_price < target_price. SHORT: target_price < entry_price < stop_loss
5. Never do indicator math - every indicator value is given to you

JSON RESPONSE FORMAT (MANDATORY):
{
  "direction": "LONG" | "SHORT" | "NEUTRAL",
  "signal": "strong" | "caution" | "neutral" | "risk",
  "explanation": "1-2 sentences of technical reasoning",
  "entry_price": number,
  "target_price": number,
  "stop_loss": number,
  "trading_plan": "Bullet plan with \\n line breaks: DIRECTION, ENTRY, TARGET, STOP LOSS, STRATEGY"
}

REMEMBER: You are providing analysis, not financial advice."""

SWING_SYSTEM_PROMPT = """You are an expert swing trader for Indian stock markets (NSE/BSE) with typical holding periods of 2 days to 3 weeks.

EVALUATE:
- Trend alignment, support/resistance strength, volume confirmation
- Breakout patterns (cup & handle, flag, wedge, triangle) and pullbacks to support
- RSI bounce zone (35-55), MACD crossovers, rising volume
- Risk-reward of at least 1:2

ENTRY PRICE GUIDELINES:
- Entry must be within 1-2% of the current price
- LONG: stop_loss < entry_price < target_price_1 < target_price_2
- SHORT: target_price_2 < target_price_1 < entry_price < stop_loss

Respond with ONLY a JSON object:
{
  "signal": "strong_buy" | "buy" | "hold" | "sell" | "strong_sell" | "neutral",
  "direction": "LONG" | "SHORT" | "NEUTRAL",
  "confidence_level": "very_high" | "high" | "moderate" | "low",
  "analysis": "Detailed analysis text",
  "entry_price": number,
  "target_price_1": number,
  "target_price_2": number,
  "stop_loss": number,
  "trading_plan": string,
  "key_catalysts": string,
  "risk_factors": string
}

REMEMBER: You are providing analysis, not financial advice."""


# =============================================================================
# USER PROMPTS
# =============================================================================

COMMON_PROMPT_TEMPLATE = """Analyze {symbol} ({profile} setup).

PRICE: ₹{price:.2f}

TREND:
- SMA 20/50/200: ₹{sma_20:.2f} / ₹{sma_50:.2f} / ₹{sma_200:.2f}
- EMA 9/21/50: ₹{ema_9:.2f} / ₹{ema_21:.2f} / ₹{ema_50:.2f}
- Trend: {trend_direction} ({trend_strength}), regime: {market_regime}
- 50-candle change: {change_50:+.2f}%

MOMENTUM:
- RSI 14: {rsi_14:.1f} ({rsi_signal}), RSI 21: {rsi_21:.1f}
- MACD line/signal/histogram: {macd_line:.4f} / {macd_signal:.4f} / {macd_histogram:.4f}
- Stochastic: {stochastic:.1f} ({stochastic_signal})

VOLATILITY:
- ATR ({atr_period}): ₹{atr:.2f} ({atr_percent:.2f}% of price)
- Bollinger: ₹{bb_upper:.2f} / ₹{bb_middle:.2f} / ₹{bb_lower:.2f} ({bb_position})
- Volatility percentile: {volatility_percentile:.1f} ({volatility_rating})

VOLUME:
- Current: {volume_current:,.0f}, 20-period avg: {volume_avg:,.0f} ({volume_ratio:.2f}x)
- Trend: {volume_trend}, breakout: {volume_breakout}, quality: {volume_quality}

LEVELS:
- Support: {support}
- Resistance: {resistance}
- Fibonacci: {fibonacci}
- Weekly pivot: ₹{weekly_pivot:.2f}

SCORE: {score:.1f}/10 ({setup_quality})
"""

INTRADAY_PROMPT_TEMPLATE = """
INTRADAY:
- VWAP: ₹{vwap:.2f}
- Trend alignment: {trend_alignment}
- Volume spike: {volume_spike}
- Day high breakout: {breakout_day_high}
- Prev day range breakout: {breakout_prev_day_range}
- Opening range breakout: {opening_range_breakout}
- Clean setup: {clean_setup}
"""

SWING_PROMPT_TEMPLATE = """
SWING SETUP CHECKS:
- Breakout pattern: {breakout_pattern} ({breakout_confidence} confidence)
- ATR validation (>2%): {atr_validation} ({pattern_atr_percent:.2f}%)
- Price range: {price_range}
- Pullback to support: {pullback_to_support} ({support_distance:.2f}% away)
- Volume breakout: {volume_breakout_detected} ({volume_multiple:.2f}x)
- RSI zone: {rsi_zone}
- MACD: {macd_signal_status}
- Volume trend: {pattern_volume_trend}
"""


def _levels(values: list[float]) -> str:
    return ", ".join(f"₹{v:.2f}" for v in values) if values else "none"


def format_advisory_prompt(context: PlanContext) -> str:
    """Structured summary of every indicator value and score label."""
    snapshot, score = context.snapshot, context.score
    ma = snapshot.moving_averages

    prompt = COMMON_PROMPT_TEMPLATE.format(
        symbol=snapshot.symbol,
        profile=snapshot.profile.value,
        price=snapshot.price,
        sma_20=ma.sma_20,
        sma_50=ma.sma_50,
        sma_200=ma.sma_200,
        ema_9=ma.ema_9,
        ema_21=ma.ema_21,
        ema_50=ma.ema_50,
        trend_direction=score.trend_direction.value,
        trend_strength=score.trend_strength.value,
        market_regime=score.market_regime.value,
        change_50=snapshot.change_50_percent,
        rsi_14=snapshot.rsi_14,
        rsi_signal=score.rsi_signal.value,
        rsi_21=snapshot.rsi_21,
        macd_line=snapshot.macd.macd_line,
        macd_signal=snapshot.macd.signal_line,
        macd_histogram=snapshot.macd.histogram,
        stochastic=snapshot.stochastic,
        stochastic_signal=score.stochastic_signal.value,
        atr_period=snapshot.atr.period,
        atr=snapshot.atr.value,
        atr_percent=snapshot.atr.atr_percent,
        bb_upper=snapshot.bollinger.upper,
        bb_middle=snapshot.bollinger.middle,
        bb_lower=snapshot.bollinger.lower,
        bb_position=snapshot.bollinger.position.value,
        volatility_percentile=snapshot.volatility_percentile,
        volatility_rating=score.volatility_rating.value,
        volume_current=snapshot.volume.current,
        volume_avg=snapshot.volume.average_20,
        volume_ratio=snapshot.volume.ratio,
        volume_trend=snapshot.volume.trend.value,
        volume_breakout=snapshot.volume.breakout,
        volume_quality=score.volume_quality.value,
        support=_levels(snapshot.levels.support),
        resistance=_levels(snapshot.levels.resistance),
        fibonacci=_levels(snapshot.fibonacci_levels),
        weekly_pivot=snapshot.weekly_pivot,
        score=score.score,
        setup_quality=score.setup_quality.value,
    )

    if snapshot.intraday is not None:
        intraday = snapshot.intraday
        prompt += INTRADAY_PROMPT_TEMPLATE.format(
            vwap=intraday.vwap,
            trend_alignment=intraday.trend_alignment.value,
            volume_spike=intraday.volume_spike,
            breakout_day_high=intraday.breakout_day_high,
            breakout_prev_day_range=intraday.breakout_prev_day_range,
            opening_range_breakout=intraday.opening_range_breakout,
            clean_setup=score.clean_setup,
        )

    if snapshot.patterns is not None:
        patterns = snapshot.patterns
        prompt += SWING_PROMPT_TEMPLATE.format(
            breakout_pattern=patterns.breakout_pattern.value,
            breakout_confidence=patterns.breakout_confidence.value,
            atr_validation=patterns.atr_validation,
            pattern_atr_percent=patterns.atr_percent,
            price_range=patterns.price_range,
            pullback_to_support=patterns.pullback_to_support,
            support_distance=patterns.support_distance,
            volume_breakout_detected=patterns.volume_breakout_detected,
            volume_multiple=patterns.volume_multiple,
            rsi_zone=patterns.rsi_zone,
            macd_signal_status=patterns.macd_signal_status,
            pattern_volume_trend=patterns.volume_trend,
        )

    prompt += f"\nTIMING: {context.timing_advice}\n"
    return prompt


def get_system_prompt(profile: AnalysisProfile) -> str:
    if profile == AnalysisProfile.INTRADAY:
        return INTRADAY_SYSTEM_PROMPT
    return SWING_SYSTEM_PROMPT
