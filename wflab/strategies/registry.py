"""
Strategy catalogue.

Every strategy variant is declared once here as a StrategyDef and
resolved by id everywhere else (grid generation, walk-forward, portfolio).
The catalogue is assembled at import time; `register_strategy` lets a
caller add variants at startup, before any evaluation runs.
"""
import logging
from typing import Dict, List

from ..shared.defaults import (
    RSI_PERIOD, RSI_OVERSOLD, RSI_OVERBOUGHT,
    MA_SHORT_PERIOD, MA_LONG_PERIOD,
    MACD_FAST, MACD_SLOW, MACD_SIGNAL,
    ATR_PERIOD, ATR_STOP_MULTIPLE, RSI_STOP_LOSS_PCT, DIP_STOP_LOSS_PCT,
)
from .base import ParamDef, ParamValues, StrategyDef
from .breakout import compute_cup_with_handle, compute_cwh_trail
from .reversal import (
    compute_rsi_reversal, compute_dip_buy, compute_dip_kairi, compute_dip_rsi_volume,
    compute_dip_bb3sigma, compute_bb_mean_reversion, compute_bb_breakdown_gap,
)
from .trend import (
    MACD_FILTERS, compute_ma_cross, compute_macd_signal, compute_macd_trail, macd_filter_compute,
)

logger = logging.getLogger(__name__)


def short_below_long(params: ParamValues) -> bool:
    """Short period must be strictly shorter than long period."""
    return params["shortPeriod"] < params["longPeriod"]


def entry_below_exit(params: ParamValues) -> bool:
    """Entry deviation must be more extreme (lower) than the exit deviation."""
    return params["entryKairi"] < params["exitKairi"]


_MACD_PARAMS = (
    ParamDef("shortPeriod", "Short EMA", MACD_FAST, 5, 30),
    ParamDef("longPeriod", "Long EMA", MACD_SLOW, 10, 50),
    ParamDef("signalPeriod", "Signal", MACD_SIGNAL, 3, 20),
)


def _build_catalogue() -> List[StrategyDef]:
    catalogue = [
        StrategyDef(
            id="ma_cross",
            name="MA cross",
            description="Buy when the short MA crosses above the long MA, sell on the cross below",
            params=(
                ParamDef("shortPeriod", "Short MA", MA_SHORT_PERIOD, 2, 50),
                ParamDef("longPeriod", "Long MA", MA_LONG_PERIOD, 5, 200),
            ),
            compute=compute_ma_cross,
            validity=(short_below_long,),
        ),
        StrategyDef(
            id="rsi_reversal",
            name="RSI reversal",
            description="Buy oversold RSI, sell overbought RSI or at the ATR / percent stop",
            params=(
                ParamDef("period", "RSI period", RSI_PERIOD, 5, 30),
                ParamDef("oversold", "Buy below RSI", RSI_OVERSOLD, 10, 50),
                ParamDef("overbought", "Sell above RSI", RSI_OVERBOUGHT, 50, 90),
                ParamDef("atrPeriod", "ATR period", ATR_PERIOD),
                ParamDef("atrMultiple", "ATR multiple", ATR_STOP_MULTIPLE),
                ParamDef("stopLossPct", "Stop loss (%)", RSI_STOP_LOSS_PCT),
            ),
            compute=compute_rsi_reversal,
        ),
        StrategyDef(
            id="macd_signal",
            name="MACD signal",
            description="Buy when MACD crosses above its signal line, sell on the cross below",
            params=_MACD_PARAMS,
            compute=compute_macd_signal,
            validity=(short_below_long,),
        ),
    ]

    for key, (name, _) in MACD_FILTERS.items():
        catalogue.append(StrategyDef(
            id=f"macd_{key}_filter",
            name=name,
            description=f"{name}: MACD cross entries gated by the '{key}' filter, exit on the bearish cross",
            params=_MACD_PARAMS,
            compute=macd_filter_compute(key),
            validity=(short_below_long,),
        ))

    catalogue += [
        StrategyDef(
            id="macd_trail",
            name="MACD trailing stop",
            description="Buy on the bullish MACD cross, exit on a trailing stop or the initial stop-loss",
            params=_MACD_PARAMS + (
                ParamDef("trailPct", "Trailing stop (%)", 12, 5, 20),
                ParamDef("stopLossPct", "Stop loss (%)", 5, 3, 15),
            ),
            compute=compute_macd_trail,
            validity=(short_below_long,),
        ),
        StrategyDef(
            id="dip_buy",
            name="Dip buy",
            description="Buy an N% drop from the running peak, sell after an M% recovery or at the stop",
            params=(
                ParamDef("dipPct", "Drop (%)", 10, 3, 30, 1),
                ParamDef("recoveryPct", "Recovery (%)", 15, 5, 50, 1),
                ParamDef("stopLossPct", "Stop loss (%)", DIP_STOP_LOSS_PCT),
            ),
            compute=compute_dip_buy,
        ),
        StrategyDef(
            id="dip_kairi",
            name="Dip buy (MA deviation)",
            description="Buy a deep deviation below MA25, exit on recovery, MA5 touch, stop or time stop",
            params=(
                ParamDef("entryKairi", "Entry deviation (%)", -10, -30, -5, 1),
                ParamDef("exitKairi", "Exit deviation (%)", -5, -15, 0, 1),
                ParamDef("stopLossPct", "Stop loss (%)", 7, 3, 15, 1),
                ParamDef("timeStopDays", "Time stop (bars)", 5, 2, 10, 1),
            ),
            compute=compute_dip_kairi,
            validity=(entry_below_exit,),
        ),
        StrategyDef(
            id="dip_rsi_volume",
            name="Dip buy (RSI + volume)",
            description="Buy an RSI washout on a volume spike, exit on RSI recovery, take-profit or entry-low break",
            params=(
                ParamDef("rsiThreshold", "RSI threshold", 20, 10, 30, 1),
                ParamDef("volumeMultiple", "Volume multiple", 2, 1.5, 5, 0.5),
                ParamDef("rsiExit", "Exit RSI", 40, 30, 60, 5),
                ParamDef("takeProfitPct", "Take profit (%)", 5, 3, 15, 1),
            ),
            compute=compute_dip_rsi_volume,
        ),
        StrategyDef(
            id="dip_bb3sigma",
            name="Dip buy (BB -3 sigma)",
            description="Buy at the lower 3-sigma band, exit at lower 2-sigma or at the stop",
            params=(
                ParamDef("stopLossPct", "Stop loss (%)", 5, 3, 10, 1),
            ),
            compute=compute_dip_bb3sigma,
        ),
        StrategyDef(
            id="cup_with_handle",
            name="Cup with handle",
            description="Buy a cup-with-handle breakout, exit at a fixed take-profit or stop-loss",
            params=(
                ParamDef("takeProfitPct", "Take profit (%)", 20, 5, 50, 1),
                ParamDef("stopLossPct", "Stop loss (%)", 7, 2, 20, 1),
            ),
            compute=compute_cup_with_handle,
        ),
        StrategyDef(
            id="cwh_trail",
            name="Cup with handle (trailing)",
            description="Buy a cup-with-handle breakout, exit on a trailing stop or the stop-loss",
            params=(
                ParamDef("trailPct", "Trailing stop (%)", 8, 3, 20, 1),
                ParamDef("stopLossPct", "Stop loss (%)", 7, 2, 20, 1),
            ),
            compute=compute_cwh_trail,
        ),
        StrategyDef(
            id="bb_mean_reversion",
            name="Bollinger mean reversion",
            description="Buy the first green bar after a close below lower 2-sigma, exit at MA25 or below the entry low",
            params=(),
            compute=compute_bb_mean_reversion,
        ),
        StrategyDef(
            id="bb_breakdown_gap",
            name="Bollinger breakdown gap",
            description="Buy a gap down with two red bars near lower 2-sigma, exit at the gap fill or below the entry low",
            params=(),
            compute=compute_bb_breakdown_gap,
        ),
    ]
    return catalogue


STRATEGIES: Dict[str, StrategyDef] = {s.id: s for s in _build_catalogue()}


def list_strategies() -> List[StrategyDef]:
    """All registered strategies in catalogue order."""
    return list(STRATEGIES.values())


def get_strategy(strategy_id: str) -> StrategyDef:
    """
    Resolve a strategy by id.

    Raises:
        KeyError: If the id is not registered
    """
    try:
        return STRATEGIES[strategy_id]
    except KeyError:
        raise KeyError(
            f"Unknown strategy '{strategy_id}'. Available: {sorted(STRATEGIES)}"
        ) from None


def register_strategy(strategy: StrategyDef, replace: bool = False) -> None:
    """Add a strategy to the catalogue (call at startup, before evaluation)."""
    if strategy.id in STRATEGIES and not replace:
        raise ValueError(f"Strategy '{strategy.id}' is already registered")
    STRATEGIES[strategy.id] = strategy
    logger.debug(f"Registered strategy {strategy.id}")
