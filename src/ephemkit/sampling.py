from __future__ import annotations

import math
from typing import Iterable, Sequence

import numpy as np
from astropy import units as u
from astropy.time import Time

from .config import EphemerisConfig
from .ephemeris import TabulatedEphemeris
from .errors import InvalidArgument
from .interpolation import StateInterpolator
from .models import TimeStampedState, seconds_between
from .providers import TimeBoundedSource


def sample_grid(start: Time, stop: Time, step_s: float) -> list[Time]:
    """Epochs from ``start`` every ``step_s`` seconds; ``stop`` is always the last one."""
    if step_s <= 0.0:
        raise InvalidArgument(f"step_s must be positive, got {step_s}")
    span = seconds_between(stop, start)
    if span < 0.0:
        raise InvalidArgument("stop precedes start")
    n_steps = int(math.floor(span / step_s + 1e-9))
    epochs = [start + (i * step_s) * u.s for i in range(n_steps + 1)]
    if seconds_between(stop, epochs[-1]) > 1e-9:
        epochs.append(stop)
    else:
        epochs[-1] = stop
    return epochs


def sample_states(source: TimeBoundedSource, epochs: Iterable[Time]) -> list[TimeStampedState]:
    return [source.propagate(t) for t in epochs]


def states_to_array(states: Sequence[TimeStampedState]) -> np.ndarray:
    """Stack states into an (N, 6) array of [x, y, z, vx, vy, vz]."""
    if not states:
        return np.empty((0, 6), dtype=float)
    return np.vstack([s.pv for s in states])


def ephemeris_from_source(
    source: TimeBoundedSource,
    start: Time | None = None,
    stop: Time | None = None,
    step_s: float = 60.0,
    interpolation_points: int | None = None,
    *,
    extrapolation_threshold_s: float | None = None,
    interpolator: StateInterpolator | None = None,
    config: EphemerisConfig | None = None,
) -> TabulatedEphemeris:
    """Tabulate ``source`` on a regular grid and wrap the table as an ephemeris.

    ``start``/``stop`` default to the source's own interval.
    """
    start = source.min_date if start is None else start
    stop = source.max_date if stop is None else stop
    states = sample_states(source, sample_grid(start, stop, step_s))
    return TabulatedEphemeris(
        states,
        interpolation_points,
        extrapolation_threshold_s=extrapolation_threshold_s,
        interpolator=interpolator,
        config=config,
    )
