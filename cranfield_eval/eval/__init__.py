"""
Sweep module for retrieval quality assessment.

It can be used in two ways:

1. From code:
   ```python
   from cranfield_eval.eval import SweepRunner, SweepConfig
   result = await SweepRunner(engine, evaluator, run_writer).run_plan(plan, docs, queries, qrels)
   ```

2. Via command line:
   ```bash
   python -m cranfield_eval --plan sweep.json --output-dir results
   ```
"""

from cranfield_eval.eval.schema import SweepPlan, load_sweep_plan
from cranfield_eval.eval.run_writer import TrecRunWriter
from cranfield_eval.eval.reporter import SweepReporter
from cranfield_eval.eval.cross_check import CrossChecker, CrossCheckResult
from cranfield_eval.eval.runner import (
    ConfigurationOutcome,
    SweepConfig,
    SweepResult,
    SweepRunner,
)

__all__ = [
    # Schema
    "SweepPlan",
    "load_sweep_plan",
    # Output
    "TrecRunWriter",
    "SweepReporter",
    # Cross-check
    "CrossChecker",
    "CrossCheckResult",
    # Runner
    "ConfigurationOutcome",
    "SweepConfig",
    "SweepResult",
    "SweepRunner",
]
