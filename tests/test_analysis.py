import numpy as np
import pandas as pd
import pytest

from models.kinetics import Condition
from sweep.analysis import repression_summary, total_target_table
from sweep.runner import run_condition
from utils.errors import ConfigurationError


def _frame(totals, hours=(0.0, 1.0, 2.0), total_target=1.0):
    rows = []
    for h, total in zip(hours, totals):
        for species, value in (("target", total), ("enzyme", 1.0), ("complex", 0.0)):
            rows.append({
                "total_target": total_target,
                "time": h * 3600.0,
                "species": species,
                "concentration": value,
                "time_in_hours": h,
                "initial_target": totals[0],
            })
    return pd.DataFrame(rows)


def test_total_target_table_sums_target_and_complex(unit_params):
    frame = run_condition(Condition(1.0, 1.0), [0.0, 1.0, 5.0], unit_params).to_frame()
    table = total_target_table(frame)
    assert len(table) == 3
    assert table["total_remaining"].iloc[0] == pytest.approx(1.0)


def test_repression_summary_values():
    summary = repression_summary(_frame([1.0, 0.6, 0.4]))
    row = summary.iloc[0]
    assert row["remaining_fraction"] == pytest.approx(0.4)
    assert row["fold_repression"] == pytest.approx(2.5)
    assert row["half_life_hours"] == pytest.approx(1.5)


def test_repression_summary_at_intermediate_time():
    summary = repression_summary(_frame([1.0, 0.6, 0.4]), at_hours=0.5)
    assert summary.iloc[0]["remaining_fraction"] == pytest.approx(0.8)
    with pytest.raises(ConfigurationError):
        repression_summary(_frame([1.0, 0.6, 0.4]), at_hours=5.0)


def test_half_life_is_nan_when_never_reached():
    summary = repression_summary(_frame([1.0, 0.9, 0.8]))
    assert np.isnan(summary.iloc[0]["half_life_hours"])


def test_one_summary_row_per_condition():
    frame = pd.concat([_frame([1.0, 0.5, 0.2], total_target=1.0),
                       _frame([2.0, 1.8, 1.6], total_target=2.0)], ignore_index=True)
    summary = repression_summary(frame)
    assert list(summary["total_target"]) == [1.0, 2.0]
    assert summary["remaining_fraction"].tolist() == pytest.approx([0.2, 0.8])
