from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping

import numpy as np
from astropy import units as u
from astropy.time import Time
from scipy.spatial.transform import Rotation

from .constants import DEFAULT_FRAME, DEFAULT_MASS_KG
from .errors import InvalidArgument, UnmanagedAdditionalState


def seconds_between(later: Time, earlier: Time) -> float:
    return float((later - earlier).to(u.s).value)


def _frozen_vector(values, name: str, size: int | None = 3) -> np.ndarray:
    arr = np.array(values, dtype=float).reshape(-1)
    if size is not None and arr.shape != (size,):
        raise InvalidArgument(f"{name} must have shape ({size},), got {arr.shape}")
    arr.setflags(write=False)
    return arr


def _frozen_mapping(values: Mapping[str, object] | None, name: str) -> Mapping[str, np.ndarray]:
    out: dict[str, np.ndarray] = {}
    for key, value in (values or {}).items():
        vec = _frozen_vector(value, f"{name}[{key!r}]", size=None)
        if vec.size == 0:
            raise InvalidArgument(f"{name}[{key!r}] must not be empty")
        out[str(key)] = vec
    return MappingProxyType(out)


@dataclass(frozen=True, eq=False)
class TimeStampedState:
    """Immutable spacecraft state at one epoch.

    Position and velocity are km and km/s in ``frame``. ``attitude`` rotates
    inertial vectors into the body frame. ``additional`` maps names to
    fixed-length vectors; ``additional_dot`` optionally holds their rates.
    """

    epoch: Time
    position_km: np.ndarray
    velocity_km_s: np.ndarray
    acceleration_km_s2: np.ndarray | None = None
    attitude: Rotation | None = None
    mass_kg: float = DEFAULT_MASS_KG
    frame: str = DEFAULT_FRAME
    additional: Mapping[str, np.ndarray] = field(default_factory=dict)
    additional_dot: Mapping[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.epoch, Time) or not self.epoch.isscalar:
            raise InvalidArgument("epoch must be a scalar astropy Time")
        object.__setattr__(self, "position_km", _frozen_vector(self.position_km, "position_km"))
        object.__setattr__(self, "velocity_km_s", _frozen_vector(self.velocity_km_s, "velocity_km_s"))
        if self.acceleration_km_s2 is not None:
            object.__setattr__(
                self,
                "acceleration_km_s2",
                _frozen_vector(self.acceleration_km_s2, "acceleration_km_s2"),
            )
        if self.attitude is not None and not self.attitude.single:
            raise InvalidArgument("attitude must be a single rotation")
        object.__setattr__(self, "mass_kg", float(self.mass_kg))
        additional = _frozen_mapping(self.additional, "additional")
        additional_dot = _frozen_mapping(self.additional_dot, "additional_dot")
        for key, rate in additional_dot.items():
            if key not in additional:
                raise InvalidArgument(f"additional_dot[{key!r}] has no matching additional state")
            if rate.shape != additional[key].shape:
                raise InvalidArgument(f"additional_dot[{key!r}] does not match its state size")
        object.__setattr__(self, "additional", additional)
        object.__setattr__(self, "additional_dot", additional_dot)

    @property
    def pv(self) -> np.ndarray:
        return np.hstack([self.position_km, self.velocity_km_s])

    @property
    def additional_names(self) -> tuple[str, ...]:
        return tuple(self.additional)

    def has_additional_state(self, name: str) -> bool:
        return name in self.additional

    def get_additional_state(self, name: str) -> np.ndarray:
        try:
            return self.additional[name]
        except KeyError:
            raise UnmanagedAdditionalState(name) from None

    def get_additional_state_derivative(self, name: str) -> np.ndarray:
        try:
            return self.additional_dot[name]
        except KeyError:
            raise UnmanagedAdditionalState(name) from None

    def add_additional_state(self, name: str, value, rate=None) -> "TimeStampedState":
        additional = dict(self.additional)
        additional[name] = value
        additional_dot = dict(self.additional_dot)
        if rate is not None:
            additional_dot[name] = rate
        else:
            additional_dot.pop(name, None)
        return replace(self, additional=additional, additional_dot=additional_dot)

    def with_additional(self, values: Mapping[str, np.ndarray]) -> "TimeStampedState":
        """Return a copy with ``values`` layered over the existing additional states."""
        if not values:
            return self
        additional = dict(self.additional)
        additional.update(values)
        additional_dot = {k: v for k, v in self.additional_dot.items() if k not in values}
        return replace(self, additional=additional, additional_dot=additional_dot)

    def with_attitude(self, attitude: Rotation | None) -> "TimeStampedState":
        return replace(self, attitude=attitude)

    def with_epoch(self, epoch: Time) -> "TimeStampedState":
        return replace(self, epoch=epoch)

    def shifted_by(self, dt_s: float) -> "TimeStampedState":
        """Taylor-shift the state by ``dt_s`` seconds (no dynamics model)."""
        dt = float(dt_s)
        acc = self.acceleration_km_s2 if self.acceleration_km_s2 is not None else np.zeros(3)
        position = self.position_km + self.velocity_km_s * dt + 0.5 * acc * dt * dt
        velocity = self.velocity_km_s + acc * dt
        additional = {
            name: value + self.additional_dot[name] * dt if name in self.additional_dot else value
            for name, value in self.additional.items()
        }
        return replace(
            self,
            epoch=self.epoch + dt * u.s,
            position_km=position,
            velocity_km_s=velocity,
            additional=additional,
        )


@dataclass(frozen=True)
class TimeInterval:
    min_date: Time
    max_date: Time

    def __post_init__(self) -> None:
        if self.max_date < self.min_date:
            raise InvalidArgument(
                f"interval end {self.max_date.isot} precedes start {self.min_date.isot}"
            )

    @property
    def duration_s(self) -> float:
        return seconds_between(self.max_date, self.min_date)

    def contains(self, epoch: Time) -> bool:
        return bool(self.min_date <= epoch <= self.max_date)
