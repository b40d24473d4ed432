"""
Parameter stability scoring.

Ranks each strategy's parameter combos by how well and how consistently
they performed out-of-sample across walk-forward windows:
- test-return median and minimum (higher is better)
- test-return standard deviation (lower is better)
- overfit degree, train median minus test median (lower is better)

Each metric is min-max normalized within the strategy and the weighted
sum gives the composite score. Rank 1 is the recommended combo.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..evaluation.config import ScoringWeights
from ..evaluation.walk_forward_types import WFRecord, WFWindow
from ..shared.stats import median, sample_std

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParamScore:
    """Stability score of one (strategy, combo) across all windows."""
    strategy_id: str
    strategy_name: str
    combo_label: str
    combo_values: Dict[str, float]
    test_return_median: float
    test_return_min: float
    test_return_std: float
    train_return_median: float
    overfit_degree: float
    composite_score: float
    rank: int  # 1 = best within the strategy
    window_returns: Tuple[float, ...]  # Test return per window id, 0 where missing


def normalize(values: Sequence[float], higher_is_better: bool) -> List[float]:
    """Min-max normalize to [0, 1]; all-equal values map to 0.5."""
    lo, hi = min(values), max(values)
    if hi == lo:
        return [0.5] * len(values)
    span = hi - lo
    if higher_is_better:
        return [(v - lo) / span for v in values]
    return [(hi - v) / span for v in values]


class StabilityScorer:
    """Scores and ranks parameter combos from full-grid walk-forward records."""

    def __init__(self, weights: Optional[ScoringWeights] = None):
        self.weights = weights or ScoringWeights()

    def score(self, records: Sequence[WFRecord], windows: Sequence[WFWindow]) -> List[ParamScore]:
        """
        Score every (strategy, combo) group in `records`.

        The result is sorted by strategy id, then rank. It does not depend on
        the order of `records`.
        """
        window_ids = sorted(w.id for w in windows)

        by_strategy: Dict[str, Dict[str, List[WFRecord]]] = defaultdict(lambda: defaultdict(list))
        for record in records:
            by_strategy[record.strategy_id][record.combo_label].append(record)

        scores = []
        for strategy_id in sorted(by_strategy):
            scores.extend(self._score_strategy(by_strategy[strategy_id], window_ids))
        logger.info(f"Scored {len(scores)} combos across {len(by_strategy)} strategies")
        return scores

    def _score_strategy(self, groups: Dict[str, List[WFRecord]], window_ids: List[int]) -> List[ParamScore]:
        labels = sorted(groups)
        raw = []
        for label in labels:
            recs = sorted(groups[label], key=lambda r: r.window_id)
            test = [r.test_return for r in recs]
            train = [r.train_return for r in recs]
            test_med = median(test)
            train_med = median(train)
            by_window = {r.window_id: r.test_return for r in recs}
            raw.append({
                "record": recs[0],
                "median": test_med,
                "min": min(test),
                "std": sample_std(test),
                "train": train_med,
                "overfit": train_med - test_med,
                "windows": tuple(by_window.get(w, 0.0) for w in window_ids),
            })

        med_norm = normalize([r["median"] for r in raw], True)
        min_norm = normalize([r["min"] for r in raw], True)
        std_norm = normalize([r["std"] for r in raw], False)
        ofit_norm = normalize([r["overfit"] for r in raw], False)

        w = self.weights
        composites = [
            w.median * med_norm[i] + w.minimum * min_norm[i] + w.stddev * std_norm[i] + w.overfit * ofit_norm[i]
            for i in range(len(raw))
        ]

        # Descending score, ties broken by label
        order = sorted(range(len(raw)), key=lambda i: (-composites[i], labels[i]))
        scores = []
        for rank, i in enumerate(order, start=1):
            r = raw[i]
            first = r["record"]
            scores.append(ParamScore(
                strategy_id=first.strategy_id,
                strategy_name=first.strategy_name,
                combo_label=labels[i],
                combo_values=dict(first.combo_values),
                test_return_median=r["median"],
                test_return_min=r["min"],
                test_return_std=r["std"],
                train_return_median=r["train"],
                overfit_degree=r["overfit"],
                composite_score=composites[i],
                rank=rank,
                window_returns=r["windows"],
            ))
        return scores

    @staticmethod
    def recommend(scores: Sequence[ParamScore]) -> Dict[str, ParamScore]:
        """Rank-1 combo per strategy id."""
        return {s.strategy_id: s for s in scores if s.rank == 1}
