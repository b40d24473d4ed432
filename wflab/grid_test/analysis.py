"""
Result sinks for walk-forward runs.

Converts walk-forward records and stability scores into DataFrames
(column names are the record field names), writes them as CSV, and
renders a per-strategy markdown report:
- selections.csv: best-train combo per (strategy, window)
- grid_records.csv: every (strategy, combo, window) cell
- trades.csv: out-of-sample round trips of the selected combos
- scores.csv: stability scores and ranks
- walk_forward_report.md
"""
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from ..evaluation.walk_forward_types import (
    WFRecord, SelectionRecord, TradeRecord, WalkForwardResult,
)
from ..shared.stats import clamp_infinite
from .stability import ParamScore, StabilityScorer

logger = logging.getLogger(__name__)

SELECTIONS_CSV = "selections.csv"
GRID_RECORDS_CSV = "grid_records.csv"
TRADES_CSV = "trades.csv"
SCORES_CSV = "scores.csv"
REPORT_MD = "walk_forward_report.md"

TRADE_COLUMNS = [
    "window", "strategy_id", "strategy_name", "symbol",
    "entry_date", "exit_date", "entry_price", "exit_price", "return_pct", "win",
]


def _combo_json(values: Dict[str, float]) -> str:
    return json.dumps(values, sort_keys=True)


def _records_frame(records: Sequence, columns: List[str]) -> pd.DataFrame:
    rows = [asdict(r) for r in records]
    for row in rows:
        if "combo_values" in row:
            row["combo_values"] = _combo_json(row["combo_values"])
    return pd.DataFrame(rows, columns=columns)


def selection_records_to_frame(records: Sequence[SelectionRecord]) -> pd.DataFrame:
    """One row per (strategy, window) selection."""
    return _records_frame(records, list(SelectionRecord.__dataclass_fields__))


def grid_records_to_frame(records: Sequence[WFRecord]) -> pd.DataFrame:
    """One row per (strategy, combo, window) cell."""
    return _records_frame(records, list(WFRecord.__dataclass_fields__))


def trades_to_frame(records: Sequence[TradeRecord]) -> pd.DataFrame:
    """One row per out-of-sample round trip."""
    return _records_frame(records, TRADE_COLUMNS)


def scores_to_frame(scores: Sequence[ParamScore]) -> pd.DataFrame:
    """
    One row per (strategy, combo) stability score.

    window_returns is expanded into window_1 .. window_N columns.
    """
    columns = [c for c in ParamScore.__dataclass_fields__ if c != "window_returns"]
    n_windows = max((len(s.window_returns) for s in scores), default=0)
    rows = []
    for s in scores:
        row = asdict(s)
        returns = row.pop("window_returns")
        row["combo_values"] = _combo_json(row["combo_values"])
        row["composite_score"] = clamp_infinite(row["composite_score"])
        for i in range(n_windows):
            row[f"window_{i + 1}"] = returns[i] if i < len(returns) else 0.0
        rows.append(row)
    return pd.DataFrame(rows, columns=columns + [f"window_{i + 1}" for i in range(n_windows)])


def save_results(
    result: WalkForwardResult,
    scores: Sequence[ParamScore],
    output_dir: Path,
) -> Dict[str, Path]:
    """
    Write all result CSVs and the markdown report under output_dir.

    Returns:
        Mapping of artifact name -> written path
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = {
        "selections": output_dir / SELECTIONS_CSV,
        "grid_records": output_dir / GRID_RECORDS_CSV,
        "trades": output_dir / TRADES_CSV,
        "scores": output_dir / SCORES_CSV,
        "report": output_dir / REPORT_MD,
    }
    selection_records_to_frame(result.selection_records).to_csv(paths["selections"], index=False)
    grid_records_to_frame(result.grid_records).to_csv(paths["grid_records"], index=False)
    trades_to_frame(result.trade_records).to_csv(paths["trades"], index=False)
    scores_to_frame(scores).to_csv(paths["scores"], index=False)
    generate_markdown_report(result, scores, paths["report"])

    for name, path in paths.items():
        logger.info(f"Wrote {name}: {path}")
    return paths


def load_results(results_dir: Path) -> Dict[str, pd.DataFrame]:
    """Load the CSVs written by save_results; missing files are skipped."""
    results_dir = Path(results_dir)
    frames = {}
    for name, filename in (
        ("selections", SELECTIONS_CSV),
        ("grid_records", GRID_RECORDS_CSV),
        ("trades", TRADES_CSV),
        ("scores", SCORES_CSV),
    ):
        path = results_dir / filename
        if path.exists():
            frames[name] = pd.read_csv(path)
    return frames


def _df_to_markdown_table(df: pd.DataFrame) -> str:
    if df.empty:
        return ""
    lines = []
    headers = list(df.columns)
    lines.append("| " + " | ".join(str(h) for h in headers) + " |")
    lines.append("| " + " | ".join("---" for _ in headers) + " |")
    for _, row in df.iterrows():
        values = [str(v) if pd.notna(v) else "" for v in row]
        lines.append("| " + " | ".join(values) + " |")
    return "\n".join(lines)


def _window_table(
    result: WalkForwardResult,
    strategy_id: str,
    recommended: Optional[ParamScore],
) -> pd.DataFrame:
    """Per-window selection results, with the recommended combo's test return."""
    rows = []
    selections = {r.window_id: r for r in result.selection_records if r.strategy_id == strategy_id}
    for i, window in enumerate(result.windows):
        sel = selections.get(window.id)
        row = {"window": window.label}
        if sel is not None:
            row.update({
                "selected": sel.combo_label,
                "train_wr": round(sel.train_win_rate, 1),
                "test_wr": round(sel.test_win_rate, 1),
                "train_med_ret": round(sel.train_median_return, 2),
                "test_med_ret": round(sel.test_median_return, 2),
                "instruments": sel.instruments,
            })
        if recommended is not None and i < len(recommended.window_returns):
            row["recommended_test_ret"] = round(recommended.window_returns[i], 2)
        rows.append(row)
    return pd.DataFrame(rows)


def generate_markdown_report(
    result: WalkForwardResult,
    scores: Sequence[ParamScore],
    output_path: Path,
) -> None:
    """Write a per-strategy walk-forward summary as markdown."""
    recommended = StabilityScorer.recommend(scores)
    strategy_ids = []
    names = {}
    for record in list(result.selection_records) + list(scores):
        if record.strategy_id not in names:
            strategy_ids.append(record.strategy_id)
            names[record.strategy_id] = record.strategy_name

    with open(output_path, "w") as f:
        f.write("# Walk-Forward Results\n\n")
        f.write(f"**Windows:** {len(result.windows)}\n")
        f.write(f"**Strategies:** {len(strategy_ids)}\n")
        f.write(f"**Test Trades:** {len(result.trade_records)}\n")
        if result.failed_cells:
            f.write(f"**Failed Cells:** {result.failed_cells}\n")
        f.write("\n")

        if recommended:
            f.write("## Recommended Parameters\n\n")
            summary = pd.DataFrame([
                {
                    "strategy": s.strategy_id,
                    "combo": s.combo_label,
                    "score": round(s.composite_score, 3),
                    "test_median": round(s.test_return_median, 2),
                    "test_min": round(s.test_return_min, 2),
                    "test_std": round(s.test_return_std, 2),
                    "overfit": round(s.overfit_degree, 2),
                }
                for s in sorted(recommended.values(), key=lambda s: -s.composite_score)
            ])
            f.write(_df_to_markdown_table(summary))
            f.write("\n\n")

        for strategy_id in strategy_ids:
            rec = recommended.get(strategy_id)
            f.write(f"## {names[strategy_id]} ({strategy_id})\n\n")
            if rec is not None:
                f.write(f"- Recommended: `{rec.combo_label}`\n")
                f.write(
                    f"- Test return median / min / std: {rec.test_return_median:.2f}% / "
                    f"{rec.test_return_min:.2f}% / {rec.test_return_std:.2f}%\n"
                )
                f.write(f"- Overfit degree: {rec.overfit_degree:.2f}\n\n")
            table = _window_table(result, strategy_id, rec)
            f.write(_df_to_markdown_table(table))
            f.write("\n\n")
