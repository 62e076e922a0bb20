"""
Sensitivity and scenario result tables.
"""

from dataclasses import asdict, dataclass
from typing import Iterable, Iterator, List, Optional

import pandas as pd

SENSITIVITY_COLUMNS = [
    "Category",
    "Element",
    "Curve Tenor",
    "Pricer",
    "Delta",
    "Gamma",
    "Hedge Tenor",
    "Hedge Delta",
    "Hedge Notional",
]

SCENARIO_COLUMNS = ["Pricer", "Measure", "Base", "Scenario", "Delta"]


@dataclass
class ResultRow:
    """One sensitivity of one pricer to one selection."""

    category: str
    element: str
    curve_tenor: str
    pricer: str
    delta: float
    gamma: Optional[float] = None
    hedge_tenor: Optional[str] = None
    hedge_delta: Optional[float] = None
    hedge_notional: Optional[float] = None

    def as_record(self) -> dict:
        return dict(zip(SENSITIVITY_COLUMNS, asdict(self).values()))


class ResultTable:
    """Rows of a sensitivity run in the order they were produced."""

    def __init__(self, rows: Iterable[ResultRow] = (), calc_gamma: bool = False,
                 calc_hedge: bool = False):
        self.rows: List[ResultRow] = list(rows)
        self.calc_gamma = calc_gamma
        self.calc_hedge = calc_hedge

    def add(self, row: ResultRow) -> None:
        self.rows.append(row)

    def extend(self, rows: Iterable[ResultRow]) -> None:
        self.rows.extend(rows)

    def __iter__(self) -> Iterator[ResultRow]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def __getitem__(self, index: int) -> ResultRow:
        return self.rows[index]

    def rows_for(self, pricer: str) -> List[ResultRow]:
        return [r for r in self.rows if r.pricer == pricer]

    def total_delta(self, pricer: Optional[str] = None) -> float:
        """Sum of deltas, optionally for one pricer."""
        rows = self.rows if pricer is None else self.rows_for(pricer)
        return float(sum(r.delta for r in rows))

    @property
    def columns(self) -> List[str]:
        columns = SENSITIVITY_COLUMNS[:5]
        if self.calc_gamma:
            columns.append("Gamma")
        if self.calc_hedge:
            columns.extend(SENSITIVITY_COLUMNS[6:])
        return columns

    def to_frame(self) -> pd.DataFrame:
        """Rows as a DataFrame; gamma and hedge columns only when computed."""
        records = [row.as_record() for row in self.rows]
        return pd.DataFrame(records, columns=SENSITIVITY_COLUMNS)[self.columns]

    def __repr__(self) -> str:
        return f"ResultTable({len(self.rows)} rows)"


@dataclass
class ScenarioRow:
    """Base and shifted value of one evaluator."""

    pricer: str
    measure: str
    base: float
    scenario: float

    @property
    def delta(self) -> float:
        return self.scenario - self.base

    def as_record(self) -> dict:
        return {
            "Pricer": self.pricer,
            "Measure": self.measure,
            "Base": self.base,
            "Scenario": self.scenario,
            "Delta": self.delta,
        }


class ScenarioResult:
    """Rows of a scenario run, one per evaluator."""

    def __init__(self, rows: Iterable[ScenarioRow] = ()):
        self.rows: List[ScenarioRow] = list(rows)

    def add(self, row: ScenarioRow) -> None:
        self.rows.append(row)

    def __iter__(self) -> Iterator[ScenarioRow]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def __getitem__(self, index: int) -> ScenarioRow:
        return self.rows[index]

    def total_delta(self) -> float:
        return float(sum(r.delta for r in self.rows))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([r.as_record() for r in self.rows], columns=SCENARIO_COLUMNS)
