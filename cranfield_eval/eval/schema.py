"""Data models for sweep plans."""
import itertools
import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator

from cranfield_eval.core.domain.models import RetrievalConfiguration
from cranfield_eval.exceptions import ResourceUnavailable


def grid_label(values: tuple[Any, ...]) -> str:
    """Label of one grid point: values joined by underscores, in key order."""
    return "_".join(str(v) for v in values)


class SweepPlan(BaseModel):
    """
    The retrieval configurations to evaluate.

    Configurations can be listed explicitly, generated from a grid, or both.
    A grid such as `{"analyzer": ["standard", "english"], "similarity":
    ["bm25", "tfidf"]}` expands to four configurations labelled
    `standard_bm25`, `standard_tfidf`, `english_bm25` and `english_tfidf`,
    each carrying its grid values (plus `base_params`) as parameters.
    """

    name: str = "sweep"
    configurations: list[RetrievalConfiguration] = Field(default_factory=list)
    grid: dict[str, list[Any]] = Field(default_factory=dict)
    base_params: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_labels(self) -> "SweepPlan":
        """Ensure the expanded plan is non-empty with unique labels."""
        for key, values in self.grid.items():
            if not values:
                raise ValueError(f"Grid dimension '{key}' has no values")

        labels = [c.label for c in self.expand()]
        if not labels:
            raise ValueError("Sweep plan defines no configurations")
        duplicates = sorted({label for label in labels if labels.count(label) > 1})
        if duplicates:
            raise ValueError(f"Duplicate configuration labels: {', '.join(duplicates)}")
        return self

    def expand(self) -> list[RetrievalConfiguration]:
        """Explicit configurations first, then grid points in cartesian order."""
        configurations = [
            RetrievalConfiguration(
                label=c.label,
                params={**self.base_params, **c.params},
            )
            for c in self.configurations
        ]
        if self.grid:
            keys = list(self.grid)
            for values in itertools.product(*(self.grid[k] for k in keys)):
                configurations.append(RetrievalConfiguration(
                    label=grid_label(values),
                    params={**self.base_params, **dict(zip(keys, values))},
                ))
        return configurations


def load_sweep_plan(path: Path | str) -> SweepPlan:
    """
    Load a sweep plan from a JSON file.

    Raises:
        ResourceUnavailable: If the file cannot be read or is not valid JSON
        pydantic.ValidationError: If the content does not describe a valid plan
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ResourceUnavailable(path, e) from e
    return SweepPlan.model_validate(data)
