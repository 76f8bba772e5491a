import numpy as np
import pytest
from astropy import units as u
from scipy.spatial.transform import Rotation

from ephemkit import InvalidArgument, TimeInterval, TimeStampedState, UnmanagedAdditionalState

from conftest import LEO_R, LEO_V, T0, at, leo_state


def test_state_arrays_are_read_only_copies():
    position = LEO_R.copy()
    state = TimeStampedState(epoch=T0, position_km=position, velocity_km_s=LEO_V)
    position[0] = 0.0
    assert state.position_km[0] == 7000.0
    with pytest.raises(ValueError):
        state.position_km[0] = 1.0
    np.testing.assert_array_equal(state.pv, np.hstack([LEO_R, LEO_V]))


def test_state_validation():
    with pytest.raises(InvalidArgument):
        TimeStampedState(epoch=T0, position_km=[1.0, 2.0], velocity_km_s=LEO_V)
    with pytest.raises(InvalidArgument):
        TimeStampedState(epoch="2004-01-01", position_km=LEO_R, velocity_km_s=LEO_V)
    with pytest.raises(InvalidArgument):
        leo_state(additional={"x": []})
    with pytest.raises(InvalidArgument):
        leo_state(additional={"x": [1.0]}, additional_dot={"y": [0.0]})
    with pytest.raises(InvalidArgument):
        leo_state(additional={"x": [1.0, 2.0]}, additional_dot={"x": [0.0]})
    with pytest.raises(InvalidArgument):
        leo_state(attitude=Rotation.from_euler("z", [10.0, 20.0], degrees=True))


def test_additional_state_access():
    state = leo_state().add_additional_state("battery", [0.8], rate=[-1e-4])
    assert state.has_additional_state("battery")
    assert state.additional_names == ("battery",)
    np.testing.assert_array_equal(state.get_additional_state("battery"), [0.8])
    np.testing.assert_array_equal(state.get_additional_state_derivative("battery"), [-1e-4])
    with pytest.raises(UnmanagedAdditionalState) as excinfo:
        state.get_additional_state("fuel")
    assert excinfo.value.name == "fuel"
    assert "fuel" in str(excinfo.value)
    with pytest.raises(KeyError):
        state.get_additional_state_derivative("fuel")


def test_with_additional_overrides_and_drops_stale_rates():
    state = leo_state().add_additional_state("x", [1.0], rate=[2.0])
    updated = state.with_additional({"x": [5.0], "y": [3.0, 4.0]})
    np.testing.assert_array_equal(updated.get_additional_state("x"), [5.0])
    np.testing.assert_array_equal(updated.get_additional_state("y"), [3.0, 4.0])
    assert "x" not in updated.additional_dot
    np.testing.assert_array_equal(state.get_additional_state("x"), [1.0])
    assert state.with_additional({}) is state


def test_shifted_by_uses_available_derivatives():
    acc = np.array([-0.008, 0.0, 0.0])
    state = leo_state(acceleration_km_s2=acc).add_additional_state("q", [1.0], rate=[0.5])
    state = state.add_additional_state("fixed", [3.0])
    shifted = state.shifted_by(10.0)
    assert shifted.epoch == at(10.0)
    np.testing.assert_allclose(shifted.position_km, LEO_R + LEO_V * 10.0 + 0.5 * acc * 100.0)
    np.testing.assert_allclose(shifted.velocity_km_s, LEO_V + acc * 10.0)
    np.testing.assert_allclose(shifted.get_additional_state("q"), [6.0])
    np.testing.assert_allclose(shifted.get_additional_state("fixed"), [3.0])


def test_with_attitude_and_epoch():
    rotation = Rotation.from_euler("z", 30.0, degrees=True)
    state = leo_state().with_attitude(rotation).with_epoch(at(5.0))
    assert state.attitude is rotation
    assert state.epoch == at(5.0)
    np.testing.assert_array_equal(state.position_km, LEO_R)


def test_time_interval():
    interval = TimeInterval(T0, at(60.0))
    assert interval.duration_s == pytest.approx(60.0)
    assert interval.contains(T0)
    assert interval.contains(at(60.0))
    assert not interval.contains(at(60.0) + 1 * u.ms)
    with pytest.raises(InvalidArgument):
        TimeInterval(at(60.0), T0)
