import numpy as np
import pytest

from ephemkit import EphemerisConfig, InvalidArgument, TabulatedEphemeris
from ephemkit.models import seconds_between
from ephemkit.sampling import ephemeris_from_source, sample_grid, sample_states, states_to_array

from conftest import T0, at


def test_grid_always_ends_on_stop():
    grid = sample_grid(T0, at(150.0), 60.0)
    offsets = [seconds_between(t, T0) for t in grid]
    np.testing.assert_allclose(offsets, [0.0, 60.0, 120.0, 150.0])
    assert grid[-1] == at(150.0)

    exact = sample_grid(T0, at(120.0), 60.0)
    assert len(exact) == 3
    assert exact[-1] == at(120.0)


def test_grid_of_a_single_epoch():
    assert len(sample_grid(T0, T0, 10.0)) == 1


def test_grid_rejects_bad_arguments():
    with pytest.raises(InvalidArgument):
        sample_grid(T0, at(10.0), 0.0)
    with pytest.raises(InvalidArgument):
        sample_grid(at(10.0), T0, 1.0)


def test_states_to_array(kepler):
    states = sample_states(kepler, sample_grid(T0, at(120.0), 60.0))
    table = states_to_array(states)
    assert table.shape == (3, 6)
    np.testing.assert_array_equal(table[1], states[1].pv)
    assert states_to_array([]).shape == (0, 6)


def test_ephemeris_from_source_tracks_the_source(kepler):
    ephem = ephemeris_from_source(kepler, step_s=60.0, config=EphemerisConfig(interpolation_points=6))
    assert isinstance(ephem, TabulatedEphemeris)
    assert ephem.min_date == kepler.min_date
    assert ephem.max_date == kepler.max_date
    assert ephem.interpolation_points == 6
    assert len(ephem.samples) == 61
    for t in (45.0, 1234.5, 3599.0):
        np.testing.assert_allclose(ephem.propagate(at(t)).pv, kepler.propagate(at(t)).pv, atol=1e-6)


def test_ephemeris_from_source_subinterval(kepler):
    ephem = ephemeris_from_source(kepler, at(600.0), at(900.0), 30.0, 4, extrapolation_threshold_s=1.0)
    assert ephem.min_date == at(600.0)
    assert ephem.max_date == at(900.0)
    assert ephem.extrapolation_threshold_s == 1.0
