from __future__ import annotations

import logging
from typing import Iterable

from astropy.time import Time

from .errors import InvalidArgument, NonResettableState
from .models import TimeInterval, TimeStampedState
from .providers import AdditionalStateProvider, AttitudeProvider, ProviderSet, TimeBoundedSource

_log = logging.getLogger(__name__)


class AggregateBoundedPropagator:
    """One bounded source stitched from several, consulted in the order given.

    Selection for an epoch ``t``:

    - the first constituent (construction order) whose inclusive interval
      contains ``t`` answers, so on shared boundaries and overlaps the earlier
      listed source wins;
    - inside a gap, the constituent preceding the gap (greatest
      ``min_date <= t``) is asked and its own out-of-interval policy applies:
      tabulated sources raise ``TimeOutOfRange``, analytical ones extrapolate;
    - before or after the whole span, the boundary constituent is asked.

    Constituents are shared, never copied or mutated. Attitude and
    additional-state providers registered here are layered over whatever the
    selected constituent returns.
    """

    def __init__(
        self,
        sources: Iterable[TimeBoundedSource],
        *,
        attitude_provider: AttitudeProvider | None = None,
    ) -> None:
        constituents = tuple(
            (source, TimeInterval(source.min_date, source.max_date)) for source in sources
        )
        if not constituents:
            raise InvalidArgument("an aggregate needs at least one constituent")
        self._constituents = constituents
        self._min_date = constituents[self._boundary_index(before=True)][1].min_date
        self._max_date = constituents[self._boundary_index(before=False)][1].max_date
        self._providers = ProviderSet(attitude_provider)
        starts = [interval.min_date for _, interval in constituents]
        if any(later < earlier for earlier, later in zip(starts, starts[1:])):
            _log.debug("constituents are not ascending by min_date; construction order still decides ties")

    def _boundary_index(self, before: bool) -> int:
        best = 0
        for i, (_, interval) in enumerate(self._constituents):
            if before and interval.min_date < self._constituents[best][1].min_date:
                best = i
            elif not before and interval.max_date > self._constituents[best][1].max_date:
                best = i
        return best

    @property
    def constituents(self) -> tuple[tuple[TimeBoundedSource, TimeInterval], ...]:
        return self._constituents

    @property
    def propagators(self) -> tuple[TimeBoundedSource, ...]:
        return tuple(c[0] for c in self._constituents)

    @property
    def min_date(self) -> Time:
        return self._min_date

    @property
    def max_date(self) -> Time:
        return self._max_date

    def get_min_date(self) -> Time:
        return self._min_date

    def get_max_date(self) -> Time:
        return self._max_date

    def select(self, epoch: Time) -> TimeBoundedSource:
        """Return the constituent that answers queries at ``epoch``."""
        for source, interval in self._constituents:
            if interval.contains(epoch):
                return source
        if epoch < self._min_date:
            _log.debug("%s precedes the aggregate span; asking the first constituent", epoch.isot)
            return self._constituents[self._boundary_index(before=True)][0]
        if epoch > self._max_date:
            _log.debug("%s follows the aggregate span; asking the last constituent", epoch.isot)
            return self._constituents[self._boundary_index(before=False)][0]
        preceding = None
        for source, interval in self._constituents:
            lo = interval.min_date
            if lo <= epoch and (preceding is None or lo > preceding[1]):
                preceding = (source, lo)
        _log.debug("%s falls in a gap; delegating to the preceding constituent", epoch.isot)
        return preceding[0]

    def propagate(self, epoch: Time) -> TimeStampedState:
        return self._providers.apply(self.select(epoch).propagate(epoch))

    state_at = propagate

    def get_initial_state(self) -> TimeStampedState:
        return self.propagate(self._min_date)

    def reset_initial_state(self, state: TimeStampedState) -> None:
        raise NonResettableState("an aggregate propagator cannot reset its initial state")

    def reset_intermediate_state(self, state: TimeStampedState, forward: bool = True) -> None:
        raise NonResettableState("an aggregate propagator cannot reset an intermediate state")

    def set_attitude_provider(self, provider: AttitudeProvider | None) -> None:
        self._providers.attitude_provider = provider

    def add_additional_state_provider(self, provider: AdditionalStateProvider) -> None:
        self._providers.add(provider)

    def get_managed_additional_states(self) -> tuple[str, ...]:
        shared: list[str] = []
        for name in _managed_by(self._constituents[0][0]):
            if name not in self._providers and all(
                name in _managed_by(c[0]) for c in self._constituents[1:]
            ):
                shared.append(name)
        return tuple(shared) + self._providers.names

    def is_additional_state_managed(self, name: str) -> bool:
        return name in self.get_managed_additional_states()


def _managed_by(source: TimeBoundedSource) -> tuple[str, ...]:
    getter = getattr(source, "get_managed_additional_states", None)
    return tuple(getter()) if getter is not None else ()
