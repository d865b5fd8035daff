"""
Deterministic Fallback Plans

Rule tables keyed by score, clean setup, volume spike and RSI extremity.
Used whenever advisory is unavailable or unusable. Never raises on a
valid snapshot, and the same context always yields the same plan.
"""

from typing import Optional

from signalpro.schemas.indicators import AnalysisProfile
from signalpro.schemas.plan import PlanSource, SignalTier, TradeDirection
from signalpro.schemas.scoring import SetupQuality, TrendDirection
from signalpro.services.planning.interface import PlanContext, PlanDraft, PlanStrategy


STRATEGY_TEXT = {
    SignalTier.STRONG: "Strong setup - invest 2-3% of your money. Book half at the first target, trail the rest.",
    SignalTier.CAUTION: "Moderate setup - invest 1-2% of your money. Be patient for the right entry.",
    SignalTier.RISK: "High risk - only 0.5% of your money. Wait 1-3 hours for a better entry or skip.",
    SignalTier.NEUTRAL: "Maximum 1% of your money. Better to wait for a clearer opportunity.",
    SignalTier.STRONG_BUY: "High-quality swing setup - full position size, scale out at each target.",
    SignalTier.BUY: "Good swing setup - standard position size, hold for 1-2 weeks.",
    SignalTier.STRONG_SELL: "High-quality short setup - full position size, cover in stages.",
    SignalTier.SELL: "Good short setup - standard position size, cover by the second target.",
    SignalTier.HOLD: "No fresh entry. Hold existing positions and wait for confirmation.",
}

SWING_TIERS = {
    TradeDirection.LONG: {
        SetupQuality.EXCELLENT: SignalTier.STRONG_BUY,
        SetupQuality.GOOD: SignalTier.BUY,
        SetupQuality.FAIR: SignalTier.HOLD,
        SetupQuality.POOR: SignalTier.NEUTRAL,
    },
    TradeDirection.SHORT: {
        SetupQuality.EXCELLENT: SignalTier.STRONG_SELL,
        SetupQuality.GOOD: SignalTier.SELL,
        SetupQuality.FAIR: SignalTier.HOLD,
        SetupQuality.POOR: SignalTier.NEUTRAL,
    },
}

AT_LEAST_GOOD = (SetupQuality.EXCELLENT, SetupQuality.GOOD)


def _percent(value: float, base: float) -> float:
    return abs(value - base) / base * 100 if base else 0.0


def format_trading_plan(
    timing_advice: str,
    direction: TradeDirection,
    signal: SignalTier,
    entry: float,
    target: float,
    stop: float,
    entry_note: str,
    header: Optional[str] = None,
) -> str:
    """Bullet plan: timing, DIRECTION, ENTRY, TARGET, STOP LOSS, STRATEGY."""
    if direction == TradeDirection.SHORT:
        action, exit_action = "Sell short", "Cover"
    elif direction == TradeDirection.LONG:
        action, exit_action = "Buy", "Sell"
    else:
        action, exit_action = "No position", "Exit"

    lines = [timing_advice, ""]
    if header:
        lines += [header, ""]
    lines += [
        f"• DIRECTION: {direction.value} - {action}",
        "",
        f"• ENTRY: {entry_note} at ₹{entry:.2f}.",
        "",
        f"• TARGET: {exit_action} at ₹{target:.2f}. Potential gain: {_percent(target, entry):.1f}%.",
        "",
        f"• STOP LOSS: Exit at ₹{stop:.2f} if the trade goes wrong. Risk: {_percent(stop, entry):.1f}%.",
        "",
        f"• STRATEGY: {STRATEGY_TEXT.get(signal, STRATEGY_TEXT[SignalTier.NEUTRAL])}",
    ]
    return "\n".join(lines)


# =============================================================================
# INTRADAY RULE TABLE
# =============================================================================


def intraday_plan(context: PlanContext) -> PlanDraft:
    """
    First match wins: strong, caution, risk, neutral, default.
    Formulas are written for LONG and mirrored when the alignment is bearish.
    """
    snapshot, score = context.snapshot, context.score
    intraday = snapshot.intraday
    price = snapshot.price
    atr = snapshot.atr.value
    vwap = intraday.vwap if intraday else price
    rsi = snapshot.rsi_14
    total = score.score
    clean = bool(score.clean_setup)
    spike = bool(score.volume_spike)
    alignment = intraday.trend_alignment.value if intraday else "neutral"
    day_high = bool(intraday and intraday.breakout_day_high)
    opening_range = bool(intraday and intraday.opening_range_breakout)

    direction = TradeDirection.SHORT if alignment.startswith("bearish") else TradeDirection.LONG
    sign = 1 if direction == TradeDirection.LONG else -1
    header = None

    if total >= 8 and clean and spike:
        signal = SignalTier.STRONG
        if sign > 0:
            entry = min(price, vwap + atr * 0.5)
            stop = max(price * 0.96, vwap - atr)
        else:
            entry = max(price, vwap - atr * 0.5)
            stop = min(price * 1.04, vwap + atr)
        target = price + sign * atr * 3
        rationale = (
            f"Excellent setup with {total}/10 score. {alignment} trend with volume "
            f"confirmation and a clean breakout pattern."
        )
        entry_note = f"Enter near VWAP support (₹{vwap:.2f}) when volume picks up"

    elif total >= 6 and (day_high or opening_range):
        signal = SignalTier.CAUTION
        if day_high:
            entry = price * (1 - sign * 0.002)
            entry_note = "Enter near the current breakout level, wait 5-10 minutes to confirm"
        else:
            entry = vwap
            entry_note = f"Enter at VWAP (₹{vwap:.2f}), wait 5-10 minutes to confirm"
        target = entry + sign * atr * 2
        stop = entry - sign * atr * 1.5
        rationale = (
            f"Good setup with {total}/10 score. Breakout confirmed but watch for sustained momentum."
        )

    elif rsi > 75 or rsi < 25:
        signal = SignalTier.RISK
        overbought = rsi > 75
        offset = -atr * 0.5 if overbought else atr * 0.5
        entry = vwap + sign * offset
        target = entry + sign * atr
        stop = entry - sign * atr * 2
        state = "overbought" if overbought else "oversold"
        rationale = (
            f"Extreme RSI ({rsi:.1f}) suggests {state} conditions. High reversal risk."
        )
        header = "HIGH RISK TRADE"
        entry_note = f"Do not chase. Stock is {state} (RSI {rsi:.1f}); wait for price to reach"

    elif total < 4 or not clean:
        signal = SignalTier.NEUTRAL
        entry = vwap
        target = entry + sign * atr * 1.5
        stop = entry - sign * atr
        rationale = (
            f"Mixed signals with {total}/10 score. Lack of clear directional bias "
            f"suggests waiting for a better setup."
        )
        header = "UNCLEAR SETUP - PROCEED WITH CAUTION"
        entry_note = "Wait for the VWAP level instead of buying at market"

    else:
        signal = SignalTier.NEUTRAL
        entry = price * (1 - sign * 0.02)
        target = price * (1 + sign * 0.02)
        stop = price * (1 - sign * 0.05)
        rationale = "Technical analysis suggests a neutral position."
        entry_note = "Wait for a pullback and enter"

    trading_plan = format_trading_plan(
        context.timing_advice, direction, signal, entry, target, stop, entry_note, header
    )

    return PlanDraft(
        direction=direction,
        signal=signal,
        source=PlanSource.FALLBACK,
        entry_price=round(entry, 2),
        target_price_1=round(target, 2),
        stop_loss=round(stop, 2),
        rationale=rationale,
        trading_plan=trading_plan,
    )


# =============================================================================
# SWING RULE TABLE
# =============================================================================


def swing_direction(context: PlanContext) -> TradeDirection:
    """Trend decides; MACD only breaks a sideways or transitioning trend."""
    score = context.score
    if score.trend_direction == TrendDirection.BULLISH:
        return TradeDirection.LONG
    if score.trend_direction == TrendDirection.BEARISH:
        return TradeDirection.SHORT

    histogram = context.snapshot.macd.histogram
    if score.setup_quality in AT_LEAST_GOOD:
        if histogram > 0:
            return TradeDirection.LONG
        if histogram < 0:
            return TradeDirection.SHORT
    return TradeDirection.NEUTRAL


def swing_plan(context: PlanContext) -> PlanDraft:
    """
    Direction from trend and MACD, tier from setup quality, levels from
    the ATR-scaled stop and take-profit distances.
    """
    snapshot, score = context.snapshot, context.score
    price = snapshot.price
    direction = swing_direction(context)
    quality = score.setup_quality

    if direction == TradeDirection.NEUTRAL:
        signal = SignalTier.HOLD if quality != SetupQuality.POOR else SignalTier.NEUTRAL
    else:
        signal = SWING_TIERS[direction][quality]

    summary = (
        f"Swing score {score.score:.1f}/10 ({quality.value} setup), "
        f"{score.trend_direction.value} trend, RSI {snapshot.rsi_14:.1f} "
        f"({score.rsi_signal.value}), MACD histogram {snapshot.macd.histogram:+.4f}, "
        f"{score.volume_quality.value} volume."
    )

    if signal in (SignalTier.HOLD, SignalTier.NEUTRAL):
        rationale = f"{summary} No actionable edge; stay flat until the setup improves."
        trading_plan = format_trading_plan(
            context.timing_advice, TradeDirection.NEUTRAL, signal,
            price, price, price, "No entry. Re-evaluate",
        )
        return PlanDraft(
            direction=TradeDirection.NEUTRAL,
            signal=signal,
            source=PlanSource.FALLBACK,
            entry_price=round(price, 2),
            target_price_1=round(price, 2),
            target_price_2=round(price, 2),
            stop_loss=round(price, 2),
            rationale=rationale,
            trading_plan=trading_plan,
        )

    sign = 1 if direction == TradeDirection.LONG else -1
    stop_distance = snapshot.atr.scaled_stop_loss
    target_distance = snapshot.atr.scaled_take_profit

    entry = price
    stop = entry - sign * stop_distance
    target_1 = entry + sign * target_distance
    target_2 = entry + sign * target_distance * 2

    bias = "bullish" if sign > 0 else "bearish"
    rationale = f"{summary} {bias.capitalize()} bias with ATR-based risk control."
    trading_plan = format_trading_plan(
        context.timing_advice, direction, signal, entry, target_1, stop,
        "Buy" if sign > 0 else "Sell short",
    )
    trading_plan += f"\n\n• SECOND TARGET: ₹{target_2:.2f} for the remaining position."

    return PlanDraft(
        direction=direction,
        signal=signal,
        source=PlanSource.FALLBACK,
        entry_price=round(entry, 2),
        target_price_1=round(target_1, 2),
        target_price_2=round(target_2, 2),
        stop_loss=round(stop, 2),
        rationale=rationale,
        trading_plan=trading_plan,
    )


class FallbackStrategy(PlanStrategy):
    """Rule-based plan. Total: always returns a draft."""

    @property
    def name(self) -> str:
        return "fallback"

    async def propose(self, context: PlanContext) -> PlanDraft:
        return self.build(context)

    def build(self, context: PlanContext) -> PlanDraft:
        if context.profile == AnalysisProfile.INTRADAY:
            return intraday_plan(context)
        return swing_plan(context)
