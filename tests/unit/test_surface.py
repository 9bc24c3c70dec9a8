import numpy as np
import pytest

from descentlab.core.errors import InvalidConfiguration
from descentlab.data import make_linear2d, make_neuron
from descentlab.training.surface import compute_loss_grid
from descentlab.training.variants import Linear1D, Linear2D, Neuron


def test_grid_cardinality_order_and_corners():
    data = make_linear2d(num_points=20, seed=42)
    variant = Linear2D()
    grid = compute_loss_grid(data, variant, bounds=[[-1.0, 4.0], [-1.0, 4.0]], resolution=5)
    assert len(grid) == 25
    assert grid.axes == ("w1", "w2")
    # axis-1 outer, axis-2 inner
    assert grid.points[0][:2] == (-1.0, -1.0)
    assert grid.points[1][:2] == (-1.0, 0.25)
    assert grid.points[5][:2] == (0.25, -1.0)

    def direct(w1, w2):
        return variant.loss(np.array([w1, w2]), data.inputs, data.targets)

    assert grid.points[0][2] == pytest.approx(direct(-1.0, -1.0))
    assert grid.points[4][2] == pytest.approx(direct(-1.0, 4.0))
    assert grid.points[20][2] == pytest.approx(direct(4.0, -1.0))
    assert grid.points[24][2] == pytest.approx(direct(4.0, 4.0))


def test_as_array_and_axis_values():
    data = make_linear2d(num_points=5, seed=1)
    grid = compute_loss_grid(data, Linear2D(), bounds=[[0.0, 2.0], [0.0, 1.0]], resolution=3)
    surface = grid.as_array()
    assert surface.shape == (3, 3)
    assert surface[1, 2] == grid.points[1 * 3 + 2][2]
    assert grid.axis_values(0).tolist() == [0.0, 1.0, 2.0]
    assert grid.axis_values(1).tolist() == [0.0, 0.5, 1.0]


def test_neuron_surface_holds_bias_fixed():
    data = make_neuron(num_points=10, seed=5)
    variant = Neuron("sigmoid")
    grid = compute_loss_grid(
        data, variant, bounds=[[-1.0, 1.0], [-1.0, 1.0]], resolution=2, params=[0.0, 0.0, 0.7]
    )
    expected = variant.loss(np.array([1.0, -1.0, 0.7]), data.inputs, data.targets)
    assert grid.points[2][2] == pytest.approx(expected)


def test_resolution_below_two_is_rejected():
    data = make_linear2d(num_points=5, seed=1)
    with pytest.raises(InvalidConfiguration) as excinfo:
        compute_loss_grid(data, Linear2D(), bounds=[[0, 1], [0, 1]], resolution=1)
    assert excinfo.value.field == "resolution"


def test_single_parameter_variant_has_no_surface():
    with pytest.raises(InvalidConfiguration):
        compute_loss_grid([], Linear1D(), bounds=[[0, 1], [0, 1]], resolution=2)


def test_empty_dataset_gives_nan_losses():
    grid = compute_loss_grid([], Linear2D(), bounds=[[0, 1], [0, 1]], resolution=2)
    assert np.isnan(grid.as_array()).all()
