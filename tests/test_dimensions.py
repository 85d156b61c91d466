import pytest

from models.units import molecules_to_nm
from sweep.conditions import ConditionFactory
from sweep.dimensions import Dimension, SweepSpec, dimension_from_config
from utils.errors import ConfigurationError


def test_linear_and_log_builders():
    lin = Dimension.linear("total_target", 0.0, 1.0, 5)
    assert lin.values == (0.0, 0.25, 0.5, 0.75, 1.0)
    log = Dimension.log_uniform("total_enzyme", 0.1, 1000.0, 5)
    assert log.values[0] == pytest.approx(0.1)
    assert log.values[-1] == pytest.approx(1000.0)
    assert log.values[2] == pytest.approx(10.0)


def test_log_builder_needs_positive_bounds():
    with pytest.raises(ConfigurationError):
        Dimension.log_uniform("total_enzyme", 0.0, 10.0, 3)


@pytest.mark.parametrize("values", [(), (1.0, 1.0), (True, False), (float("nan"),), (None,)])
def test_invalid_dimension_values(values):
    with pytest.raises(ConfigurationError):
        Dimension("total_target", values)


def test_dimension_from_config_forms():
    assert dimension_from_config("cell", ["oocyte", "somatic"]).values == ("oocyte", "somatic")
    assert dimension_from_config("efficiency", {"values": [0.5, 1]}).values == (0.5, 1.0)
    dim = dimension_from_config("total_target", {"scale": "log", "start": 1, "stop": 100, "num": 3})
    assert dim.values == pytest.approx((1.0, 10.0, 100.0))
    with pytest.raises(ConfigurationError):
        dimension_from_config("total_target", {"scale": "cubic", "start": 1, "stop": 2, "num": 2})
    with pytest.raises(ConfigurationError):
        dimension_from_config("total_target", {"scale": "linear", "start": 1})


def test_combinations_are_lexicographic(grid_spec):
    combos = list(grid_spec.combinations())
    assert grid_spec.size == len(combos) == 24
    assert combos[0] == (1.0, 0.5, 0.5)
    assert combos[1] == (1.0, 0.5, 1.0)
    assert combos[2] == (1.0, 1.0, 0.5)
    assert combos[-1] == (3.0, 4.0, 1.0)


def test_spec_rejects_duplicate_names():
    with pytest.raises(ConfigurationError):
        SweepSpec((Dimension("efficiency", (0.5,)), Dimension("efficiency", (1.0,))))
    with pytest.raises(ConfigurationError):
        SweepSpec(())


def test_from_mapping_keeps_order():
    spec = SweepSpec.from_mapping({"total_enzyme": [1.0, 2.0], "total_target": [3.0]})
    assert spec.names == ("total_enzyme", "total_target")


def test_factory_direct_fields_and_base():
    factory = ConditionFactory(base={"total_enzyme": 2.0, "synthesis": 0.1})
    condition = factory({"total_target": 5.0, "efficiency": 0.5})
    assert condition.total_target == 5.0
    assert condition.total_enzyme == 2.0
    assert condition.synthesis == 0.1
    assert condition.efficiency == 0.5
    assert condition.labels == (("total_target", 5.0), ("efficiency", 0.5))


def test_factory_cell_counts_convert_through_volume():
    cells = {"tiny": {"volume_pl": 1.0, "mrna_per_cell": 1000.0}}
    factory = ConditionFactory(cells=cells)
    condition = factory({"cell": "tiny", "target_fraction": 0.5, "mirna_count": 100.0})
    assert condition.total_target == pytest.approx(molecules_to_nm(500.0, 1.0))
    assert condition.total_enzyme == pytest.approx(molecules_to_nm(100.0, 1.0))


def test_same_counts_are_more_dilute_in_a_larger_cell():
    factory = ConditionFactory()
    oocyte = factory({"cell": "oocyte", "target_count": 1e4, "mirna_count": 1e4})
    somatic = factory({"cell": "somatic", "target_count": 1e4, "mirna_count": 1e4})
    assert oocyte.total_enzyme < somatic.total_enzyme
    assert oocyte.total_target < somatic.total_target


def test_factory_robustness_dimensions():
    factory = ConditionFactory(base={"total_target": 1.0, "total_enzyme": 1.0})
    condition = factory({"perturbed_rate": "k_off", "rate_multiplier": 10.0})
    assert condition.k_off_scale == 10.0
    assert condition.k_on_scale == 1.0
    assert condition.k_cat_scale == 1.0
    assert condition.efficiency is None
    with pytest.raises(ConfigurationError):
        factory({"perturbed_rate": "k_foo", "rate_multiplier": 10.0})


@pytest.mark.parametrize("names", [
    ("bogus",),
    ("perturbed_rate",),
    ("perturbed_rate", "rate_multiplier", "k_on_scale"),
    ("target_count", "target_fraction"),
    ("mirna_count", "total_enzyme"),
])
def test_factory_rejects_unknown_or_conflicting_dimensions(names):
    with pytest.raises(ConfigurationError):
        ConditionFactory().check_dimensions(names)


def test_factory_requires_cell_for_counts_and_totals():
    with pytest.raises(ConfigurationError):
        ConditionFactory()({"mirna_count": 10.0, "total_target": 1.0})
    with pytest.raises(ConfigurationError):
        ConditionFactory()({"total_target": 1.0})
    with pytest.raises(ConfigurationError):
        ConditionFactory()({"cell": "neuron", "total_target": 1.0, "total_enzyme": 1.0})


def test_unknown_base_field_is_rejected():
    with pytest.raises(ConfigurationError):
        ConditionFactory(base={"temperature": 37.0})
