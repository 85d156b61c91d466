"""
Repression summaries computed from a sweep result table.

Only column names are relied on: the condition columns are everything that
is not one of the per-row result columns.
"""
import numpy as np
import pandas as pd

from sweep.trajectory import RESULT_COLUMNS
from utils.errors import ConfigurationError

# Species that still count as (uncleaved) target.
UNCLEAVED_SPECIES = ("target", "complex")


def condition_columns(frame: pd.DataFrame) -> list:
    return [c for c in frame.columns if c not in RESULT_COLUMNS]


def total_target_table(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Uncleaved target (free target + complex) per condition and time point,
    in the order the conditions appear in `frame`.
    """
    cols = condition_columns(frame)
    uncleaved = frame[frame["species"].isin(UNCLEAVED_SPECIES)]
    table = (
        uncleaved.groupby(cols + ["time", "time_in_hours"], sort=False, dropna=False)["concentration"]
        .sum()
        .reset_index()
        .rename(columns={"concentration": "total_remaining"})
    )
    return table


def _first_crossing(hours, fraction, level=0.5):
    below = np.nonzero(fraction <= level)[0]
    if below.size == 0:
        return np.nan
    i = below[0]
    if i == 0:
        return float(hours[0])
    h0, h1 = hours[i - 1], hours[i]
    f0, f1 = fraction[i - 1], fraction[i]
    return float(h0 + (level - f0) * (h1 - h0) / (f1 - f0))


def repression_summary(frame: pd.DataFrame, at_hours=None) -> pd.DataFrame:
    """
    Per-condition repression of the target.

    Args:
        frame: sweep result table.
        at_hours: read-out time in hours, defaults to the last time point.
                  Values between time points are interpolated linearly.

    Returns:
        One row per condition with its condition columns plus
        remaining_fraction, fold_repression and half_life_hours (NaN when the
        uncleaved target never falls to half of its starting amount).
    """
    cols = condition_columns(frame)
    table = total_target_table(frame)
    records = []
    for keys, group in table.groupby(cols, sort=False, dropna=False):
        keys = keys if isinstance(keys, tuple) else (keys,)
        group = group.sort_values("time")
        hours = group["time_in_hours"].to_numpy(dtype=float)
        total = group["total_remaining"].to_numpy(dtype=float)

        if at_hours is not None and not (hours[0] <= at_hours <= hours[-1]):
            raise ConfigurationError(f"at_hours={at_hours} lies outside [{hours[0]}, {hours[-1]}]")

        if total[0] > 0:
            fraction = total / total[0]
        else:
            fraction = np.full_like(total, np.nan)
        remaining = fraction[-1] if at_hours is None else float(np.interp(at_hours, hours, fraction))
        if np.isnan(remaining):
            fold = np.nan
        else:
            fold = 1.0 / remaining if remaining > 0 else np.inf

        record = dict(zip(cols, keys))
        record.update(
            remaining_fraction=remaining,
            fold_repression=fold,
            half_life_hours=_first_crossing(hours, fraction),
        )
        records.append(record)
    return pd.DataFrame.from_records(records)
