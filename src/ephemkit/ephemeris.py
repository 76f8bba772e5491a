from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
from astropy.time import Time

from .cache import SampleCache
from .config import EphemerisConfig
from .errors import InconsistentAdditionalStates, InvalidArgument, NonResettableState
from .interpolation import StateInterpolator
from .models import TimeStampedState, seconds_between
from .providers import AdditionalStateProvider, AttitudeProvider, ProviderSet

_log = logging.getLogger(__name__)


def _check_additional_consistency(states: Sequence[TimeStampedState]) -> tuple[str, ...]:
    first = states[0]
    names = set(first.additional)
    for state in states[1:]:
        if set(state.additional) != names:
            missing = names.symmetric_difference(state.additional)
            raise InconsistentAdditionalStates(
                f"additional states {sorted(missing)} are not present in every sample "
                f"(first mismatch at {state.epoch.isot})"
            )
        for name in names:
            if state.additional[name].shape != first.additional[name].shape:
                raise InconsistentAdditionalStates(
                    f"additional state {name!r} changes size at {state.epoch.isot}"
                )
    return first.additional_names


class TabulatedEphemeris:
    """Bounded source replaying a fixed table of states.

    States between samples come from a ``StateInterpolator`` applied to the
    ``SampleCache`` window around the query. Queries up to
    ``extrapolation_threshold_s`` outside the table are extrapolated from the
    boundary window; farther ones raise ``TimeOutOfRange``.

    The table has no governing equations, so reset requests always raise
    ``NonResettableState``.
    """

    def __init__(
        self,
        states: Sequence[TimeStampedState],
        interpolation_points: int | None = None,
        *,
        extrapolation_threshold_s: float | None = None,
        interpolator: StateInterpolator | None = None,
        attitude_provider: AttitudeProvider | None = None,
        config: EphemerisConfig | None = None,
    ) -> None:
        config = config or EphemerisConfig()
        states = tuple(states)
        if len(states) < 2:
            raise InvalidArgument(f"an ephemeris needs at least 2 samples, got {len(states)}")
        k = config.interpolation_points if interpolation_points is None else int(interpolation_points)
        if k < 2:
            raise InvalidArgument(f"interpolation_points must be >= 2, got {k}")
        if k > len(states):
            raise InvalidArgument(
                f"interpolation_points {k} exceeds the {len(states)} supplied samples"
            )
        with_attitude = [s.attitude is not None for s in states]
        if any(with_attitude) and not all(with_attitude):
            raise InvalidArgument("attitude must be defined on every sample or on none")
        self._sample_names = _check_additional_consistency(states)

        if extrapolation_threshold_s is None:
            # The cache rejects unsorted input, so a reversed span fails there.
            span = seconds_between(states[-1].epoch, states[0].epoch)
            extrapolation_threshold_s = config.extrapolation_fraction * max(span, 0.0) / (len(states) - 1)
        self._cache = SampleCache(states, k, extrapolation_threshold_s)
        self._interpolator = interpolator or StateInterpolator(
            config.derivative_filter, interpolate_mass=config.interpolate_mass
        )
        self._providers = ProviderSet(attitude_provider)
        _log.debug(
            "ephemeris over [%s, %s]: %d samples, %d points, tolerance %.6g s",
            self.min_date.isot,
            self.max_date.isot,
            len(states),
            k,
            self._cache.extrapolation_threshold_s,
        )

    @property
    def min_date(self) -> Time:
        return self._cache.earliest.epoch

    @property
    def max_date(self) -> Time:
        return self._cache.latest.epoch

    def get_min_date(self) -> Time:
        return self.min_date

    def get_max_date(self) -> Time:
        return self.max_date

    @property
    def extrapolation_threshold_s(self) -> float:
        return self._cache.extrapolation_threshold_s

    def get_extrapolation_threshold(self) -> float:
        return self.extrapolation_threshold_s

    @property
    def interpolation_points(self) -> int:
        return self._cache.neighbors_size

    @property
    def samples(self) -> tuple[TimeStampedState, ...]:
        return self._cache.samples

    @property
    def interpolator(self) -> StateInterpolator:
        return self._interpolator

    def _basic_state(self, epoch: Time) -> TimeStampedState:
        return self._interpolator.interpolate(epoch, self._cache.window_for(epoch))

    def propagate(self, epoch: Time) -> TimeStampedState:
        return self._providers.apply(self._basic_state(epoch))

    state_at = propagate

    def get_pv(self, epoch: Time) -> np.ndarray:
        return self._basic_state(epoch).pv

    def get_mass(self, epoch: Time) -> float:
        return self._basic_state(epoch).mass_kg

    def get_initial_state(self) -> TimeStampedState:
        return self.propagate(self.min_date)

    def reset_initial_state(self, state: TimeStampedState) -> None:
        raise NonResettableState("a tabulated ephemeris cannot reset its initial state")

    def reset_intermediate_state(self, state: TimeStampedState, forward: bool = True) -> None:
        raise NonResettableState("a tabulated ephemeris cannot reset an intermediate state")

    def set_attitude_provider(self, provider: AttitudeProvider | None) -> None:
        self._providers.attitude_provider = provider

    def add_additional_state_provider(self, provider: AdditionalStateProvider) -> None:
        self._providers.add(provider, reserved=self._sample_names)

    def get_managed_additional_states(self) -> tuple[str, ...]:
        return self._sample_names + self._providers.names

    def is_additional_state_managed(self, name: str) -> bool:
        return name in self._sample_names or name in self._providers
