"""Structured model descriptors handed to the fitting libraries."""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
import pandas as pd

from ..data.scenarios import JointScenario


@dataclass(frozen=True)
class LongitudinalModelSpec:
    """Linear mixed model description.

    Attributes:
        response: Response column.
        terms: Fixed-effect covariates in coefficient order.
        factors: Members of ``terms`` that are dummy-coded, first level
            as reference.
        time: Occasion index column.
        group: Subject identifier column.
        include_time: Whether ``time`` enters the fixed effects.
        random_slope: Whether subjects get a random slope on ``time``.
    """

    response: str = "Y"
    terms: Tuple[str, ...] = ("x1l", "x2l", "x3l")
    factors: Tuple[str, ...] = ("x2l",)
    time: str = "time"
    group: str = "id"
    include_time: bool = True
    random_slope: bool = False

    @classmethod
    def for_scenario(cls, scenario: JointScenario) -> "LongitudinalModelSpec":
        """Model description matching the random-effects structure of a scenario."""
        return cls(random_slope=scenario.has_random_slope)

    def design(self, df: pd.DataFrame) -> pd.DataFrame:
        """Fixed-effect design matrix.

        Columns are ``Intercept``, then each term in order (factors
        expanded to ``name[level]``), then ``time`` if included.
        """
        columns = {"Intercept": np.ones(len(df))}

        for term in self.terms:
            if term in self.factors:
                values = df[term]
                if isinstance(values.dtype, pd.CategoricalDtype):
                    levels = list(values.cat.categories)
                else:
                    levels = sorted(values.unique())
                for level in levels[1:]:
                    columns[f"{term}[{level}]"] = (values == level).to_numpy(dtype=float)
            else:
                columns[term] = df[term].to_numpy(dtype=float)

        if self.include_time:
            columns[self.time] = df[self.time].to_numpy(dtype=float)

        return pd.DataFrame(columns, index=df.index)

    def random_design(self, df: pd.DataFrame) -> pd.DataFrame:
        """Random-effects design: intercept, plus time for a random slope."""
        columns = {"Intercept": np.ones(len(df))}
        if self.random_slope:
            columns[self.time] = df[self.time].to_numpy(dtype=float)
        return pd.DataFrame(columns, index=df.index)


@dataclass(frozen=True)
class SurvivalModelSpec:
    """Proportional hazards model description.

    Attributes:
        duration: Observed time column.
        event: Event indicator column (1 = event).
        covariates: Covariate columns.
    """

    duration: str = "survtime"
    event: str = "status"
    covariates: Tuple[str, ...] = ("x1", "x3")

    def frame(self, df: pd.DataFrame, extra: Sequence[str] = ()) -> pd.DataFrame:
        """Columns needed for the fit, in duration/event/covariate order."""
        return df[[self.duration, self.event, *self.covariates, *extra]]
