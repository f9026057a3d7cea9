"""Sweep result reporting and formatting."""
import json
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from cranfield_eval.core.domain.models import QueryMetrics, RunSummary
from cranfield_eval.core.services.evaluation import RECALL_LEVELS

if TYPE_CHECKING:
    from cranfield_eval.eval.runner import SweepResult


class SweepReporter:
    """Handles formatting, persisting and printing of sweep results."""

    @staticmethod
    def format_summary(summary: RunSummary) -> str:
        """
        Human-readable summary of one configuration.

        Args:
            summary: Aggregated metrics of the configuration

        Returns:
            Multi-line text ending with a newline
        """
        lines = [
            f"----- Evaluation Summary: {summary.label} -----",
            f"MAP policy: {summary.map_policy.value}",
            f"Queries evaluated: {summary.num_evaluated}",
            f"Queries counted in MAP: {summary.num_queries}",
            f"Queries skipped: {summary.num_skipped}",
            f"MAP: {summary.mean_average_precision:.6f}",
            f"Mean Precision (per-query): {summary.mean_precision:.6f}",
            f"Mean Recall (per-query): {summary.mean_recall:.6f}",
            f"Mean F1 (per-query): {summary.mean_f1:.6f}",
            "11-point interpolated precision-recall (recall 0.0 .. 1.0):",
        ]
        for level, precision in zip(RECALL_LEVELS, summary.mean_interpolated_precision):
            lines.append(f"Recall={level:.1f} : Precision={precision:.6f}")
        return "\n".join(lines) + "\n"

    @staticmethod
    def format_details(metrics: Sequence[QueryMetrics]) -> str:
        """One `Query <id>: AP=..., Precision=..., Recall=..., F1=...` line per query."""
        return "".join(f"{m}\n" for m in metrics)

    @staticmethod
    def write_summary(summary: RunSummary, output_dir: Path) -> tuple[Path, Path]:
        """
        Write `<label>.summary.txt` and `<label>.summary.json`.

        Returns:
            Paths of the text and JSON files
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        text_path = output_dir / f"{summary.label}.summary.txt"
        json_path = output_dir / f"{summary.label}.summary.json"

        text_path.write_text(SweepReporter.format_summary(summary), encoding="utf-8")
        json_path.write_text(
            json.dumps(summary.model_dump(mode="json"), indent=2) + "\n",
            encoding="utf-8",
        )
        return text_path, json_path

    @staticmethod
    def write_details(label: str, metrics: Sequence[QueryMetrics], output_dir: Path) -> Path:
        """Write the per-query metrics file `<label>.details.txt`."""
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / f"{label}.details.txt"
        path.write_text(SweepReporter.format_details(metrics), encoding="utf-8")
        return path

    @staticmethod
    def print_configuration_header(label: str) -> None:
        """Print configuration section header."""
        print(f"\n{'='*60}")
        print(f"Running Configuration: {label}")
        print(f"{'='*60}")

    @staticmethod
    def print_run_summary(summary: RunSummary) -> None:
        print(SweepReporter.format_summary(summary), end="")

    @staticmethod
    def print_sweep_summary(result: "SweepResult") -> None:
        """
        Print the sweep-level comparison table.

        Args:
            result: Outcomes of every configuration in the sweep
        """
        print(f"\n{'='*80}")
        print("SWEEP SUMMARY")
        print(f"{'='*80}")
        print(f"Total Configurations: {len(result.outcomes)}")
        print(f"Succeeded: {len(result.succeeded)}")
        print(f"Failed: {len(result.failed)}")

        summaries = [o.summary for o in result.outcomes if o.summary is not None]
        if summaries:
            SweepReporter._print_metrics_table(summaries)

        if result.failed:
            SweepReporter._print_failures(
                [(o.label, o.failure or "unknown error") for o in result.failed]
            )

    @staticmethod
    def _print_metrics_table(summaries: list[RunSummary]) -> None:
        """Print formatted table of metrics by configuration, best MAP first."""
        print("\nMETRICS BY CONFIGURATION")
        print(f"{'='*80}")

        max_name_width = max(len(s.label) for s in summaries)
        max_name_width = max(max_name_width, len("Configuration"))
        max_name_width = min(max_name_width, 40)

        header = (
            f"{'Configuration':<{max_name_width}} | "
            f"{'MAP':>8} | {'Precision':>9} | {'Recall':>8} | {'F1':>8} | {'Queries':>7}"
        )
        print(header)
        print("-" * len(header))

        ordered = sorted(summaries, key=lambda s: s.mean_average_precision, reverse=True)
        for summary in ordered:
            display_label = (
                summary.label
                if len(summary.label) <= max_name_width
                else summary.label[: max_name_width - 3] + "..."
            )
            print(
                f"{display_label:<{max_name_width}} | "
                f"{summary.mean_average_precision:>8.4f} | "
                f"{summary.mean_precision:>9.4f} | "
                f"{summary.mean_recall:>8.4f} | "
                f"{summary.mean_f1:>8.4f} | "
                f"{summary.num_queries:>7d}"
            )

        print("=" * len(header))

    @staticmethod
    def _print_failures(failures: list[tuple[str, str]]) -> None:
        """Print failed configurations with reasons."""
        print("\nFAILED CONFIGURATIONS")
        print(f"{'='*80}")
        for label, reason in failures:
            print(f"  - {label}")
            print(f"    Reason: {reason}")
