import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from ephemkit import (
    AdditionalStateProvider,
    AttitudeProvider,
    ElapsedTimeProvider,
    FixedAttitudeProvider,
    FunctionStateProvider,
    InvalidArgument,
    KeplerPropagator,
    LofAttitudeProvider,
    LofType,
    NameAlreadyInUse,
    TabulatedEphemeris,
    TimeBoundedSource,
)
from ephemkit.providers import ProviderSet, lof_axes

from conftest import LEO_R, LEO_V, T0, at, leo_samples, leo_state


def test_sources_satisfy_protocol(kepler):
    assert isinstance(kepler, TimeBoundedSource)
    assert isinstance(TabulatedEphemeris(leo_samples(0.0, 120.0, 60.0), 2), TimeBoundedSource)
    assert isinstance(ElapsedTimeProvider("dt", T0), AdditionalStateProvider)
    assert isinstance(LofAttitudeProvider(), AttitudeProvider)


def test_function_provider_returns_vectors():
    provider = FunctionStateProvider("radius", lambda s: np.linalg.norm(s.position_km))
    value = provider.value_at(leo_state())
    assert value.shape == (1,)
    assert value[0] == pytest.approx(7000.0)
    with pytest.raises(InvalidArgument):
        FunctionStateProvider("", lambda s: 0.0)


def test_elapsed_time_provider():
    provider = ElapsedTimeProvider("since", at(100.0))
    np.testing.assert_allclose(provider.value_at(leo_state(epoch=at(40.0))), [-60.0])


def test_provider_set_order_and_names():
    providers = ProviderSet()
    seen = []

    def record(state):
        seen.append(state.attitude)
        return 1.0

    rotation = Rotation.from_euler("x", 15.0, degrees=True)
    providers.attitude_provider = FixedAttitudeProvider(rotation)
    providers.add(FunctionStateProvider("a", record))
    providers.add(FunctionStateProvider("b", lambda s: [2.0, 3.0]))
    assert providers.names == ("a", "b")
    assert "a" in providers and len(providers) == 2

    state = providers.apply(leo_state())
    assert len(seen) == 1 and seen[0] is rotation
    np.testing.assert_array_equal(state.get_additional_state("b"), [2.0, 3.0])

    with pytest.raises(NameAlreadyInUse):
        providers.add(FunctionStateProvider("a", record))
    with pytest.raises(NameAlreadyInUse):
        providers.add(FunctionStateProvider("c", record), reserved=("c",))


def test_empty_provider_set_returns_state_unchanged():
    state = leo_state()
    assert ProviderSet().apply(state) is state


@pytest.mark.parametrize("kind", list(LofType))
def test_lof_axes_are_orthonormal(kind):
    axes = lof_axes(LEO_R, LEO_V, kind)
    np.testing.assert_allclose(axes @ axes.T, np.eye(3), atol=1e-12)
    assert np.linalg.det(axes) == pytest.approx(1.0)


def test_lof_axis_conventions():
    qsw = lof_axes(LEO_R, LEO_V, LofType.QSW)
    vvlh = lof_axes(LEO_R, LEO_V, LofType.VVLH)
    np.testing.assert_allclose(qsw[0], LEO_R / np.linalg.norm(LEO_R))
    np.testing.assert_allclose(vvlh[2], -LEO_R / np.linalg.norm(LEO_R))
    np.testing.assert_allclose(vvlh[1], -qsw[2])
    with pytest.raises(InvalidArgument):
        lof_axes(LEO_R, LEO_R, LofType.QSW)


def test_lof_attitude_maps_radial_direction():
    provider = LofAttitudeProvider("qsw")
    assert provider.kind is LofType.QSW
    attitude = provider.attitude_at(leo_state(), T0, "GCRS")
    np.testing.assert_allclose(attitude.apply(LEO_R / 7000.0), [1.0, 0.0, 0.0], atol=1e-12)


def test_kepler_with_attitude_provider():
    prop = KeplerPropagator(leo_state(), T0, at(600.0), attitude_provider=LofAttitudeProvider())
    state = prop.propagate(at(300.0))
    down = -state.position_km / np.linalg.norm(state.position_km)
    np.testing.assert_allclose(state.attitude.apply(down), [0.0, 0.0, 1.0], atol=1e-12)
