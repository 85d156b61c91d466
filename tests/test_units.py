import numpy as np
import pytest

from config.constants import AVOGADRO, TIME_POINTS
from models.units import molecules_to_nm, seconds_to_hours
from utils.errors import ConfigurationError


def test_one_nanomolar_in_one_picolitre():
    molecules = AVOGADRO * 1e-9 * 1e-12
    assert molecules_to_nm(molecules, 1.0) == pytest.approx(1.0)


@pytest.mark.parametrize("count,volume", [(-1.0, 1.0), (1.0, 0.0), (1.0, -2.0), (1.0, np.nan)])
def test_invalid_inputs(count, volume):
    with pytest.raises(ConfigurationError):
        molecules_to_nm(count, volume)


def test_time_conversions():
    assert seconds_to_hours(7200.0) == 2.0
    np.testing.assert_allclose(seconds_to_hours(np.array([1800.0, 3600.0])), [0.5, 1.0])


def test_default_time_grid_is_hourly_in_seconds():
    assert TIME_POINTS[0] == 0.0
    assert TIME_POINTS[-1] == 48 * 3600.0
    assert len(TIME_POINTS) == 49
