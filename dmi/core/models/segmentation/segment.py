"""Segment model: the records covered by one rule."""

# Standard Library Imports
from typing import List

# Third Party Imports
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

# Internal Imports
from dmi.core.models.segmentation.rule import Rule


class Segment(BaseModel):
    """A horizontal segment of the dataset used as the unit of imputation.

    Attributes:
        index: Position of the rule in its rule list
        rule: Rule whose predicates define membership
        data: Working copy of the member records, indexed by row id
        centroid: Per-attribute normalized mean or mode of the member records
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    index: int = Field(ge=0, description="Position of the rule in its rule list.")
    rule: Rule = Field(description="Rule defining segment membership.")
    data: pd.DataFrame = Field(description="Member records indexed by row id.")
    centroid: pd.Series = Field(description="Normalized mean / mode per attribute.")
    assigned: List[int] = Field(
        default_factory=list,
        description="Row ids of incomplete records appended for numeric imputation.",
    )

    def __len__(self) -> int:
        return len(self.data)

    def add_record(self, row_id: int, record: pd.Series) -> None:
        """Append an incomplete record to the working copy, once per row id."""
        if row_id in self.data.index:
            return
        row = record.to_frame().T
        row.index = [row_id]
        row = row.astype(self.data.dtypes.to_dict(), errors="ignore")
        self.data = pd.concat([self.data, row])
        self.assigned.append(row_id)

    def __str__(self) -> str:
        return f"Segment-{self.index} [{self.rule}] n={len(self)}"

    def __repr__(self) -> str:
        return self.__str__()
