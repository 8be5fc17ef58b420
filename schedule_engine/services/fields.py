"""Product x component amount fields and their column names."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

import pandas as pd

from schedule_engine.config.schedule_rules import PRODUCT_COMPONENTS


@dataclass(frozen=True)
class AmountField:
    product: str
    component: str

    @property
    def source_column(self) -> str:
        return f"product_{self.product}_{self.component}"

    @property
    def base_column(self) -> str:
        return f"base_instalment_{self.product}_{self.component}"

    @property
    def upgrade_column(self) -> str:
        return f"upgrade_instalment_{self.product}_{self.component}"

    def read(self, table: pd.DataFrame) -> pd.Series:
        """Annualised amount for this field; NaN where missing."""
        if self.source_column not in table.columns:
            return pd.Series(float("nan"), index=table.index, dtype=float)
        return pd.to_numeric(table[self.source_column], errors="coerce").astype(float)


def amount_fields(
    product_components: Mapping[str, tuple[str, ...]] | None = None,
) -> tuple[AmountField, ...]:
    pc = PRODUCT_COMPONENTS if product_components is None else product_components
    return tuple(
        AmountField(product=str(p), component=str(c))
        for p, components in pc.items()
        for c in components
    )


AMOUNT_FIELDS: tuple[AmountField, ...] = amount_fields()

AMOUNT_COLUMNS: tuple[str, ...] = tuple(f.source_column for f in AMOUNT_FIELDS)
BASE_INSTALMENT_COLUMNS: tuple[str, ...] = tuple(f.base_column for f in AMOUNT_FIELDS)
UPGRADE_INSTALMENT_COLUMNS: tuple[str, ...] = tuple(f.upgrade_column for f in AMOUNT_FIELDS)
