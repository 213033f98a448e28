"""Wide item parameter tables."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from tdcm.constants import REPORT_DIGITS

if TYPE_CHECKING:
    import pandas as pd

    from tdcm.results.fit_result import GDINAFitResult


def item_parameter_table(
    fit: GDINAFitResult,
    digits: int = REPORT_DIGITS,
    standard_errors: bool = False,
) -> pd.DataFrame:
    """Item coefficients with one row per item (and group).

    Columns are the parameter labels (``lambda0``, ``lambda1,1``, ...)
    ordered by interaction order; cells of parameters an item does not
    have are NaN.

    Parameters
    ----------
    fit : GDINAFitResult
        Fitted G-DINA model.
    digits : int
        Rounding of the estimates.
    standard_errors : bool, default=False
        Report standard errors instead of estimates.

    Returns
    -------
    pandas.DataFrame
        Indexed by item name, with a leading ``group`` column when item
        parameters are group specific.
    """
    import pandas as pd

    model = fit.model
    layout = model.layout
    values = fit.standard_errors if standard_errors else model.delta

    columns: list[str] = []
    seen_order: dict[str, int] = {}
    for row in range(layout.n_coefficients):
        label = layout.label[row]
        if label not in seen_order:
            seen_order[label] = int(layout.order[row])
            columns.append(label)
    columns.sort(key=lambda label: seen_order[label])

    blocks = sorted(set(int(g) for g in layout.group))
    records = []
    index = []
    for group in blocks:
        for item in range(model.n_items):
            rows = layout.rows(item, group)
            record: dict[str, object] = {}
            if group >= 0:
                record["group"] = fit.group_labels[group]
            for label in columns:
                record[label] = np.nan
            for row in rows:
                record[layout.label[row]] = round(float(values[row]), digits)
            records.append(record)
            index.append(model.item_names[item])

    table = pd.DataFrame(records, index=index)
    table.index.name = "item"
    return table
