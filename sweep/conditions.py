"""
Translation of sweep coordinates into Condition records.

Dimension names the factory understands:

    total_target, total_enzyme     concentrations (nM)
    efficiency                     relative catalytic efficiency in (0, 1]
    synthesis                      constant target production (nM/s)
    k_on_scale, k_off_scale,
    k_cat_scale                    rate multipliers
    cell                           cell type name, sets the volume used below
    mirna_count                    miRNA copies per cell -> total_enzyme
    target_count                   target copies per cell -> total_target
    target_fraction                fraction of the cell's mRNA copies that are targets
    perturbed_rate, rate_multiplier
                                   robustness sweep: multiply one of k_on, k_off, k_cat

Anything not set by a dimension falls back to the sweep's base condition.
"""
from __future__ import annotations

from typing import Any, Mapping

from config.constants import CELL_TYPES, ROBUSTNESS_RATES
from models.kinetics import CONDITION_FIELDS, Condition
from models.units import molecules_to_nm
from utils.errors import ConfigurationError

DIRECT_FIELDS = CONDITION_FIELDS
CELL_FIELDS = ("cell", "mirna_count", "target_count", "target_fraction")
ROBUSTNESS_FIELDS = ("perturbed_rate", "rate_multiplier")
KNOWN_DIMENSIONS = DIRECT_FIELDS + CELL_FIELDS + ROBUSTNESS_FIELDS


class ConditionFactory:
    """
    Builds Conditions from {dimension name: value} combinations.

    Args:
        base: defaults for Condition fields not swept (total_target, ...).
        cells: cell table {name: {"volume_pl": ..., "mrna_per_cell": ...}}.
    """

    def __init__(self, base: Mapping[str, Any] | None = None, cells: Mapping[str, Mapping] | None = None):
        base = dict(base or {})
        unknown = set(base) - set(DIRECT_FIELDS) - set(CELL_FIELDS)
        if unknown:
            raise ConfigurationError(f"Unknown base condition field(s): {sorted(unknown)}")
        self.base = base
        self.cells = {k: dict(v) for k, v in (cells if cells is not None else CELL_TYPES).items()}
        for name, cell in self.cells.items():
            if "volume_pl" not in cell:
                raise ConfigurationError(f"Cell type '{name}' has no volume_pl")

    def check_dimensions(self, names) -> None:
        """Reject unknown or conflicting dimension sets before anything runs."""
        names = set(names)
        unknown = names - set(KNOWN_DIMENSIONS)
        if unknown:
            raise ConfigurationError(
                f"Unknown sweep dimension(s): {sorted(unknown)}; known: {', '.join(KNOWN_DIMENSIONS)}"
            )
        if ("perturbed_rate" in names) != ("rate_multiplier" in names):
            raise ConfigurationError("perturbed_rate and rate_multiplier must be swept together")
        if "perturbed_rate" in names and names & {"k_on_scale", "k_off_scale", "k_cat_scale"}:
            raise ConfigurationError("perturbed_rate cannot be combined with explicit *_scale dimensions")
        if "target_count" in names and "target_fraction" in names:
            raise ConfigurationError("target_count and target_fraction are mutually exclusive")
        if "mirna_count" in names and "total_enzyme" in names:
            raise ConfigurationError("mirna_count and total_enzyme are mutually exclusive")
        if names & {"target_count", "target_fraction"} and "total_target" in names:
            raise ConfigurationError("target_count/target_fraction and total_target are mutually exclusive")

    def _cell(self, name):
        try:
            return self.cells[name]
        except KeyError:
            raise ConfigurationError(f"Unknown cell type '{name}'; known: {sorted(self.cells)}") from None

    def __call__(self, combination: Mapping[str, Any]) -> Condition:
        self.check_dimensions(combination)
        values = {**self.base, **combination}
        fields = {k: values[k] for k in DIRECT_FIELDS if k in values}

        if "perturbed_rate" in combination:
            rate = combination["perturbed_rate"]
            if rate not in ROBUSTNESS_RATES:
                raise ConfigurationError(f"perturbed_rate must be one of {ROBUSTNESS_RATES}, got {rate!r}")
            fields[f"{rate}_scale"] = combination["rate_multiplier"]

        cell_keys = {"mirna_count", "target_count", "target_fraction"} & set(values)
        if cell_keys:
            if "cell" not in values:
                raise ConfigurationError(f"{sorted(cell_keys)} require a 'cell' to convert counts to nM")
            cell = self._cell(values["cell"])
            volume = float(cell["volume_pl"])
            if "mirna_count" in values and "total_enzyme" not in combination:
                fields["total_enzyme"] = molecules_to_nm(values["mirna_count"], volume)
            if "target_count" in values and "total_target" not in combination:
                fields["total_target"] = molecules_to_nm(values["target_count"], volume)
            elif "target_fraction" in values and "total_target" not in combination:
                if "mrna_per_cell" not in cell:
                    raise ConfigurationError(f"Cell type '{values['cell']}' has no mrna_per_cell")
                fraction = float(values["target_fraction"])
                if not (0.0 <= fraction <= 1.0):
                    raise ConfigurationError(f"target_fraction must lie in [0, 1], got {fraction}")
                fields["total_target"] = molecules_to_nm(fraction * float(cell["mrna_per_cell"]), volume)
        elif "cell" in combination:
            self._cell(combination["cell"])

        missing = [k for k in ("total_target", "total_enzyme") if k not in fields]
        if missing:
            raise ConfigurationError(f"Condition {dict(combination)} does not define {missing}")

        return Condition(labels=tuple(combination.items()), **fields)
