"""
Position Sizing

Fixed-fractional sizing: shares = capital x risk% / risk-per-share,
clipped to the per-trade investment ceiling. Pure functions.
"""

import math

from signalpro.schemas.plan import PositionSizing, SignalTier


# (min, recommended, max) % of capital at risk per tier
RISK_TABLE: dict[SignalTier, tuple[float, float, float]] = {
    SignalTier.STRONG: (2.0, 2.5, 3.0),
    SignalTier.STRONG_BUY: (2.0, 2.5, 3.0),
    SignalTier.STRONG_SELL: (2.0, 2.5, 3.0),
    SignalTier.CAUTION: (1.0, 1.5, 2.0),
    SignalTier.BUY: (1.0, 1.5, 2.0),
    SignalTier.SELL: (1.0, 1.5, 2.0),
    SignalTier.NEUTRAL: (0.5, 0.75, 1.0),
    SignalTier.HOLD: (0.5, 0.75, 1.0),
    SignalTier.RISK: (0.25, 0.5, 0.5),
}


def shares_for_risk(
    capital: float,
    risk_percent: float,
    risk_per_share: float,
    entry_price: float,
    investment_ceiling: float,
) -> int:
    """floor(capital x pct / 100 / risk_per_share), clipped so shares x entry <= ceiling."""
    if risk_per_share <= 0 or entry_price <= 0:
        return 0

    shares = math.floor(capital * risk_percent / 100 / risk_per_share)
    max_affordable = math.floor(investment_ceiling / entry_price)
    return max(min(shares, max_affordable), 0)


def risk_reward_ratio(entry_price: float, target_price: float, stop_loss: float) -> float:
    risk = abs(entry_price - stop_loss)
    if risk == 0:
        return 0.0
    return round(abs(target_price - entry_price) / risk, 2)


def volume_range_text(min_shares: int, recommended_shares: int, max_shares: int) -> str:
    if max_shares == 0:
        return "No position (risk per share is zero or entry is unaffordable)"
    if min_shares == max_shares:
        return f"{recommended_shares} shares"
    return f"{min_shares}-{max_shares} shares (recommended {recommended_shares})"


def calculate_position_sizing(
    signal: SignalTier,
    entry_price: float,
    stop_loss: float,
    capital_base: float,
    investment_ceiling: float,
) -> PositionSizing:
    """Share counts for the tier's (min, recommended, max) risk band."""
    risk_per_share = abs(entry_price - stop_loss)
    min_pct, rec_pct, max_pct = RISK_TABLE.get(signal, RISK_TABLE[SignalTier.NEUTRAL])

    min_shares, recommended, max_shares = (
        shares_for_risk(capital_base, pct, risk_per_share, entry_price, investment_ceiling)
        for pct in (min_pct, rec_pct, max_pct)
    )

    return PositionSizing(
        capital_base=capital_base,
        investment_ceiling=investment_ceiling,
        risk_per_share=round(risk_per_share, 2),
        min_risk_percent=min_pct,
        recommended_risk_percent=rec_pct,
        max_risk_percent=max_pct,
        min_shares=min_shares,
        recommended_shares=recommended,
        max_shares=max_shares,
        position_value=round(recommended * entry_price, 2),
        volume_range_text=volume_range_text(min_shares, recommended, max_shares),
    )


def position_size_percent(sizing: PositionSizing, entry_price: float) -> float:
    if sizing.capital_base <= 0:
        return 0.0
    return round(sizing.recommended_shares * entry_price / sizing.capital_base * 100, 2)
