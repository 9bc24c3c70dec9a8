import numpy as np
import pytest

from descentlab.core.errors import InvalidConfiguration
from descentlab.core.rng import SeededSequence
from descentlab.data import get_dataset, make_linear1d, make_linear2d, make_neuron


def _constant(value):
    return lambda: value


def test_linear1d_inputs_are_evenly_spaced():
    data = make_linear1d(num_points=10, x_min=1.0, x_max=10.0, seed=42)
    assert data.input_names == ("x",)
    assert np.allclose(data.inputs[:, 0], np.arange(1.0, 11.0))


def test_linear1d_noise_follows_seeded_sequence():
    data = make_linear1d(num_points=10, true_slope=2.0, noise_level=0.1, seed=42)
    first_noise = (206659 / 233280 * 2 - 1) * 0.1
    assert data.targets[0] == pytest.approx(2.0 + first_noise)
    expected = SeededSequence(42).take(10)
    noise = (expected * 2 - 1) * 0.1
    assert np.allclose(data.targets, 2.0 * data.inputs[:, 0] + noise)


def test_linear1d_single_point_sits_at_x_min():
    data = make_linear1d(num_points=1, x_min=3.0, x_max=4.0, source=_constant(0.5))
    assert data.inputs.tolist() == [[3.0]]
    assert data.targets.tolist() == [6.0]


def test_linear2d_draw_order_is_x1_x2_noise():
    draws = iter([0.2, 0.4, 0.5, 0.6, 0.8, 1.0])
    data = make_linear2d(
        num_points=2,
        x1_min=0.0,
        x1_max=10.0,
        x2_min=-5.0,
        x2_max=5.0,
        true_w1=1.0,
        true_w2=2.0,
        noise_level=1.0,
        source=lambda: next(draws),
    )
    assert np.allclose(data.inputs, [[2.0, -1.0], [6.0, 3.0]])
    # noise 0.0 for the first point, +1.0 for the second
    assert np.allclose(data.targets, [0.0, 13.0])


def test_neuron_inputs_within_ranges_and_target_shape():
    data = make_neuron(num_points=50, seed=100)
    assert data.inputs.shape == (50, 2)
    assert data.input_names == ("x1", "x2")
    assert np.all(np.abs(data.inputs) <= 1.0)
    zero_noise = make_neuron(num_points=1, noise_level=0.0, source=_constant(0.5))
    assert zero_noise.targets[0] == pytest.approx(0.3)


def test_same_seed_yields_identical_dataset():
    assert make_linear2d(seed=9) == make_linear2d(seed=9)
    assert make_linear2d(seed=9) != make_linear2d(seed=10)


def test_dataset_is_read_only():
    data = make_linear1d(seed=1)
    with pytest.raises(ValueError):
        data.targets[0] = 0.0


@pytest.mark.parametrize(
    "kwargs, field",
    [
        ({"num_points": 0}, "num_points"),
        ({"x_min": 5.0, "x_max": 5.0}, "x_max"),
        ({"noise_level": -0.1}, "noise_level"),
    ],
)
def test_linear1d_rejects_bad_configuration(kwargs, field):
    with pytest.raises(InvalidConfiguration) as excinfo:
        make_linear1d(seed=1, **kwargs)
    assert excinfo.value.field == field
    assert field in str(excinfo.value)


def test_linear2d_rejects_inverted_second_axis():
    with pytest.raises(InvalidConfiguration) as excinfo:
        make_linear2d(x2_min=2.0, x2_max=1.0, seed=1)
    assert excinfo.value.field == "x2_max"
    assert excinfo.value.value == 1.0


def test_registry_builds_spec_with_provenance():
    spec = get_dataset("linear2d", num_points=5, seed=3)
    assert spec.variant == "linear2d"
    assert spec.provenance["seed"] == 3
    assert len(spec.dataset) == 5


def test_registry_unknown_dataset_lists_available():
    with pytest.raises(KeyError) as excinfo:
        get_dataset("mnist")
    assert "linear1d" in str(excinfo.value)
