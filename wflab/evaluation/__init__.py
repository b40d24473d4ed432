"""
Evaluation module.

Provides the single-position backtest simulator, calendar-year
walk-forward evaluation, strategy equity / portfolio aggregation and
cross-strategy correlation analysis.
"""
from .config import WalkForwardConfig, ScoringWeights, PortfolioConfig, RunConfig
from .backtest_types import Trade, BacktestStats, BacktestResult
from .backtest import BacktestSimulator, calculate_stats, holding_quartiles
from .walk_forward_types import WFWindow, WFRecord, SelectionRecord, TradeRecord, WalkForwardResult
from .walk_forward import WalkForwardEvaluator, generate_windows, selection_score
from .portfolio_types import StrategyEquity, PortfolioResult, DrawdownPeriod, CorrelationResult
from .portfolio import build_strategy_equity, build_portfolio, drawdown_series
from .correlation import pearson, drawdown_correlations, return_correlations, find_drawdown_periods
from .config_loader import load_config_from_yaml, save_config_to_yaml

__all__ = [
    'WalkForwardConfig',
    'ScoringWeights',
    'PortfolioConfig',
    'RunConfig',
    'Trade',
    'BacktestStats',
    'BacktestResult',
    'BacktestSimulator',
    'calculate_stats',
    'holding_quartiles',
    'WFWindow',
    'WFRecord',
    'SelectionRecord',
    'TradeRecord',
    'WalkForwardResult',
    'WalkForwardEvaluator',
    'generate_windows',
    'selection_score',
    'StrategyEquity',
    'PortfolioResult',
    'DrawdownPeriod',
    'CorrelationResult',
    'build_strategy_equity',
    'build_portfolio',
    'drawdown_series',
    'pearson',
    'drawdown_correlations',
    'return_correlations',
    'find_drawdown_periods',
    'load_config_from_yaml',
    'save_config_to_yaml',
]
