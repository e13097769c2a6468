"""Synthetic near-the-money option suggestions."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, List, Optional

from gamma_scanner.models import OptionPlay

if TYPE_CHECKING:  # pragma: no cover
    from gamma_scanner.config.loader import OptionsSettings


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""

    return int(math.floor(value + 0.5))


class OptionsEstimator:
    """Propose cheap strikes around the current price.

    Premiums are an approximation (intrinsic value plus a small time value)
    forced into the configured band; they are not market quotes.
    """

    def __init__(self, settings: Optional["OptionsSettings"] = None):
        if settings is None:
            from gamma_scanner.config.loader import OptionsSettings

            settings = OptionsSettings()
        self.settings = settings

    def _premium(self, price: float, strike: int, otm_percent: float) -> float:
        intrinsic = abs(price - strike)
        time_value = self.settings.base_time_value + self.settings.otm_time_value * (otm_percent / 100.0)
        premium = round(intrinsic + time_value, 2)
        return min(self.settings.premium_max, max(self.settings.premium_min, premium))

    def estimate(self, price: float) -> List[OptionPlay]:
        settings = self.settings
        if not price or price <= 0 or price < settings.min_underlying_price:
            return []
        if settings.max_underlying_price is not None and price > settings.max_underlying_price:
            return []

        strikes: List[int] = []
        for multiplier in settings.strike_multipliers:
            strike = round_half_up(price * multiplier)
            if strike in strikes or not 0 < strike < settings.max_strike:
                continue
            strikes.append(strike)

        plays: List[OptionPlay] = []
        for strike in strikes:
            otm_percent = abs(strike - price) / price * 100.0
            if otm_percent > settings.max_otm_percent:
                continue
            plays.append(
                OptionPlay(
                    option_type="call" if strike >= price else "put",
                    strike=strike,
                    premium=self._premium(price, strike, otm_percent),
                    otm_percent=round(otm_percent, 2),
                )
            )

        plays.sort(key=lambda play: play.otm_percent)
        return plays[: settings.max_plays]


__all__ = ["OptionsEstimator", "round_half_up"]
