"""
Unit conversions between molecule counts, cell volumes and concentrations.
"""
import numpy as np

from config.constants import AVOGADRO, LITRES_PER_PICOLITRE, NANOMOLAR_PER_MOLAR, SECONDS_PER_HOUR
from utils.errors import ConfigurationError


def _check_volume(volume_pl):
    if not np.isfinite(volume_pl) or volume_pl <= 0:
        raise ConfigurationError(f"Cell volume must be a positive number of picolitres, got {volume_pl}")


def molecules_to_nm(count, volume_pl):
    """
    Concentration (nM) of `count` molecules in a volume of `volume_pl` picolitres.
    """
    _check_volume(volume_pl)
    if count < 0:
        raise ConfigurationError(f"Molecule count must be >= 0, got {count}")
    return float(count) / (AVOGADRO * volume_pl * LITRES_PER_PICOLITRE) * NANOMOLAR_PER_MOLAR


def seconds_to_hours(seconds):
    return np.asarray(seconds, dtype=float) / SECONDS_PER_HOUR
