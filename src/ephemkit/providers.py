from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Iterable, Protocol, runtime_checkable

import numpy as np
from astropy.time import Time
from scipy.spatial.transform import Rotation

from .errors import InvalidArgument, NameAlreadyInUse
from .models import TimeStampedState, seconds_between

_log = logging.getLogger(__name__)


@runtime_checkable
class TimeBoundedSource(Protocol):
    """Anything with a finite validity span that can produce a state at an epoch."""

    @property
    def min_date(self) -> Time: ...

    @property
    def max_date(self) -> Time: ...

    def propagate(self, epoch: Time) -> TimeStampedState: ...


@runtime_checkable
class AdditionalStateProvider(Protocol):
    @property
    def name(self) -> str: ...

    def value_at(self, state: TimeStampedState) -> np.ndarray: ...


@runtime_checkable
class AttitudeProvider(Protocol):
    def attitude_at(self, state: TimeStampedState, epoch: Time, frame: str) -> Rotation: ...


class ProviderSet:
    """Attitude override and additional-state providers layered on computed states.

    Registration is a setup step; it is not synchronized against concurrent
    ``apply`` calls.
    """

    def __init__(self, attitude_provider: AttitudeProvider | None = None) -> None:
        self.attitude_provider = attitude_provider
        self._providers: dict[str, AdditionalStateProvider] = {}

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._providers)

    def add(self, provider: AdditionalStateProvider, reserved: Iterable[str] = ()) -> None:
        name = provider.name
        if name in self._providers or name in set(reserved):
            raise NameAlreadyInUse(name)
        self._providers[name] = provider
        _log.debug("registered additional state provider %r", name)

    def apply(self, state: TimeStampedState) -> TimeStampedState:
        if self.attitude_provider is not None:
            attitude = self.attitude_provider.attitude_at(state, state.epoch, state.frame)
            state = state.with_attitude(attitude)
        if self._providers:
            # Providers see the attitude-decorated state.
            values = {name: p.value_at(state) for name, p in self._providers.items()}
            state = state.with_additional(values)
        return state


class FunctionStateProvider:
    def __init__(self, name: str, func: Callable[[TimeStampedState], object]) -> None:
        if not name:
            raise InvalidArgument("provider name must be non-empty")
        self._name = name
        self._func = func

    @property
    def name(self) -> str:
        return self._name

    def value_at(self, state: TimeStampedState) -> np.ndarray:
        return np.atleast_1d(np.asarray(self._func(state), dtype=float))


class ElapsedTimeProvider(FunctionStateProvider):
    """Seconds elapsed since ``reference`` (negative before it)."""

    def __init__(self, name: str, reference: Time) -> None:
        super().__init__(name, lambda state: seconds_between(state.epoch, reference))
        self.reference = reference


class FixedAttitudeProvider:
    def __init__(self, rotation: Rotation) -> None:
        self.rotation = rotation

    def attitude_at(self, state: TimeStampedState, epoch: Time, frame: str) -> Rotation:
        return self.rotation


class LofType(str, Enum):
    QSW = "qsw"
    VVLH = "vvlh"


def lof_axes(position_km: np.ndarray, velocity_km_s: np.ndarray, kind: LofType) -> np.ndarray:
    """Rows are the local-orbital-frame axes expressed in the inertial frame."""
    r = np.asarray(position_km, dtype=float)
    h = np.cross(r, np.asarray(velocity_km_s, dtype=float))
    r_norm = np.linalg.norm(r)
    h_norm = np.linalg.norm(h)
    if r_norm == 0.0 or h_norm == 0.0:
        raise InvalidArgument("local orbital frame undefined for degenerate position/velocity")
    if kind == LofType.QSW:
        x = r / r_norm
        z = h / h_norm
        y = np.cross(z, x)
    else:
        z = -r / r_norm
        y = -h / h_norm
        x = np.cross(y, z)
    return np.vstack([x, y, z])


class LofAttitudeProvider:
    """Body axes aligned with a local orbital frame (QSW or VVLH)."""

    def __init__(self, kind: LofType | str = LofType.VVLH) -> None:
        self.kind = LofType(kind)

    def attitude_at(self, state: TimeStampedState, epoch: Time, frame: str) -> Rotation:
        return Rotation.from_matrix(lof_axes(state.position_km, state.velocity_km_s, self.kind))
