from __future__ import annotations

import numpy as np
import pytest
from astropy import units as u
from astropy.time import Time

from ephemkit import KeplerPropagator, TimeStampedState

T0 = Time("2004-01-01T00:00:00", scale="tdb")

# Slightly eccentric, inclined low Earth orbit (km, km/s).
LEO_R = np.array([7000.0, 0.0, 0.0])
LEO_V = np.array([0.0, 6.8, 3.2])


def at(seconds: float) -> Time:
    return T0 + seconds * u.s


def leo_state(epoch: Time = T0, **kwargs) -> TimeStampedState:
    return TimeStampedState(epoch=epoch, position_km=LEO_R, velocity_km_s=LEO_V, **kwargs)


def leo_propagator(start: float = 0.0, stop: float = 3600.0, **kwargs) -> KeplerPropagator:
    return KeplerPropagator(leo_state(), at(start), at(stop), **kwargs)


def leo_samples(start: float, stop: float, step: float) -> list[TimeStampedState]:
    prop = leo_propagator(start, stop)
    return [prop.propagate(at(t)) for t in np.arange(start, stop + 0.5 * step, step)]


@pytest.fixture
def kepler():
    return leo_propagator()
