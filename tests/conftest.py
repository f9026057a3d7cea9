"""Shared test fixtures and utilities for all tests."""
from pathlib import Path

import pytest

from cranfield_eval.core.domain.models import Document, Query, RelevanceJudgments

CORPUS_TEXT = """\
.I 1
.T
experimental investigation of the aerodynamics
of a wing in a slipstream .
.A
brenckman,m.
.B
j. ae. scs. 25, 1958, 324.
.W
experimental investigation of the aerodynamics of a
wing in a slipstream .
.I 2
.T
simple shear flow past a flat plate
.A
ting-yili
.B
department of aeronautical engineering, rensselaer polytechnic
institute
.W
simple shear flow past a flat plate in an incompressible fluid of small viscosity .
.I 3
.T
the boundary layer in simple shear flow past a flat plate .
.W
the boundary-layer equations are presented for steady incompressible flow .
"""

QUERIES_TEXT = """\
.I 001
.W
what similarity laws must be obeyed when constructing aeroelastic models
of heated high speed aircraft .
.I 002
.W
what are the structural and aeroelastic problems associated with flight
of high speed aircraft .
"""


def write_file(directory: Path, name: str, content: str) -> Path:
    """Helper to write a text file for a test."""
    path = directory / name
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def corpus_file(tmp_path) -> Path:
    return write_file(tmp_path, "cran.all.1400", CORPUS_TEXT)


@pytest.fixture
def queries_file(tmp_path) -> Path:
    return write_file(tmp_path, "cran.qry", QUERIES_TEXT)


@pytest.fixture
def documents() -> list[Document]:
    """Small corpus of five documents."""
    return [Document(id=f"doc{i}", title=f"title {i}", body=f"body {i}") for i in range(1, 6)]


@pytest.fixture
def queries() -> list[Query]:
    return [
        Query(id="1", text="slipstream aerodynamics"),
        Query(id="2", text="shear flow flat plate"),
        Query(id="3", text="heat transfer"),
    ]


@pytest.fixture
def judgments() -> RelevanceJudgments:
    """Queries 1 and 2 are judged; query 3 has no judgments."""
    return RelevanceJudgments({
        "1": {"doc1": 1, "doc2": 0, "doc3": 2},
        "2": {"doc4": 1},
    })
