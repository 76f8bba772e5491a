"""Local Hermite interpolation of time-stamped states.

Each channel is fitted with one polynomial through the window nodes using
``scipy.interpolate.KroghInterpolator``. Repeated nodes carry derivatives, so
position and velocity come from the same polynomial (a true Hermite scheme)
rather than from two independent fits. Node offsets are seconds relative to
the query epoch and nodes are fed nearest first.

Attitude is never fitted per component: it is slerped between the two nodes
bracketing the query, or extended along the boundary geodesic when the query
lies in the extrapolation band.
"""
from __future__ import annotations

from enum import Enum
from typing import Mapping, Sequence

import numpy as np
from astropy.time import Time
from scipy.interpolate import KroghInterpolator
from scipy.spatial.transform import Rotation, Slerp

from .constants import DUPLICATE_EPOCH_TOL_S
from .errors import InconsistentAdditionalStates, InvalidArgument
from .models import TimeStampedState, seconds_between


class DerivativeFilter(str, Enum):
    USE_P = "p"
    USE_PV = "pv"
    USE_PVA = "pva"

    @property
    def layers(self) -> int:
        return len(self.value)


def wrap_angle(value, reference, period: float):
    """Bring ``value`` within half a period of ``reference``."""
    half = 0.5 * period
    return reference + np.mod(np.asarray(value) - reference + half, period) - half


def unwrap_angles(values: np.ndarray, period: float) -> np.ndarray:
    """Make a chronological sequence of cyclic values continuous.

    ``values`` has nodes along axis 0; each node is unwrapped relative to its
    predecessor.
    """
    values = np.asarray(values, dtype=float)
    out = values.copy()
    for i in range(1, out.shape[0]):
        out[i] = wrap_angle(values[i], out[i - 1], period)
    return out


def hermite_derivatives(offsets: np.ndarray, layers: Sequence[np.ndarray], der: int) -> np.ndarray:
    """Evaluate a Hermite fit at offset 0.

    ``layers[j]`` holds the j-th derivative at every node, shape (m, r).
    Returns ``der`` rows: value, first derivative, ...
    """
    n_layers = len(layers)
    m, r = layers[0].shape
    xi = np.repeat(np.asarray(offsets, dtype=float), n_layers)
    yi = np.empty((m * n_layers, r), dtype=float)
    for j, layer in enumerate(layers):
        yi[j::n_layers] = layer
    return KroghInterpolator(xi, yi).derivatives(0.0, der=der)


class StateInterpolator:
    def __init__(
        self,
        derivative_filter: DerivativeFilter | str = DerivativeFilter.USE_PV,
        angular_states: Mapping[str, float] | None = None,
        interpolate_mass: bool = True,
    ) -> None:
        self.derivative_filter = DerivativeFilter(derivative_filter)
        self.angular_states = dict(angular_states or {})
        for name, period in self.angular_states.items():
            if not period > 0.0:
                raise InvalidArgument(f"period for angular state {name!r} must be positive")
        self.interpolate_mass = bool(interpolate_mass)

    @staticmethod
    def _collapse(epoch: Time, window: Sequence[TimeStampedState]) -> list[tuple[float, TimeStampedState]]:
        nodes: list[tuple[float, TimeStampedState]] = []
        for sample in window:
            dt = seconds_between(sample.epoch, epoch)
            if nodes and abs(dt - nodes[-1][0]) <= DUPLICATE_EPOCH_TOL_S:
                # duplicate epoch: the later sample wins
                nodes[-1] = (dt, sample)
            else:
                nodes.append((dt, sample))
        return nodes

    def interpolate(self, epoch: Time, window: Sequence[TimeStampedState]) -> TimeStampedState:
        if not window:
            raise InvalidArgument("interpolation window is empty")
        nodes = self._collapse(epoch, window)
        if len(nodes) == 1:
            dt, sample = nodes[0]
            return sample.shifted_by(-dt).with_epoch(epoch)

        offsets = np.array([dt for dt, _ in nodes])
        states = [s for _, s in nodes]
        order = np.argsort(np.abs(offsets), kind="stable")
        nearest = states[order[0]]

        position, velocity, acceleration = self._kinematics(offsets, states, order)
        additional, additional_dot = self._additional(offsets, states, order)
        return TimeStampedState(
            epoch=epoch,
            position_km=position,
            velocity_km_s=velocity,
            acceleration_km_s2=acceleration,
            attitude=self._attitude(offsets, states),
            mass_kg=self._mass(offsets, states, order, nearest),
            frame=nearest.frame,
            additional=additional,
            additional_dot=additional_dot,
        )

    def _kinematics(self, offsets, states, order):
        layers = [np.array([s.position_km for s in states])]
        if self.derivative_filter.layers >= 2:
            layers.append(np.array([s.velocity_km_s for s in states]))
        if self.derivative_filter.layers >= 3:
            if any(s.acceleration_km_s2 is None for s in states):
                raise InvalidArgument("USE_PVA interpolation needs acceleration on every sample")
            layers.append(np.array([s.acceleration_km_s2 for s in states]))
        d = hermite_derivatives(offsets[order], [layer[order] for layer in layers], der=3)
        acceleration = d[2] if self.derivative_filter == DerivativeFilter.USE_PVA else None
        return d[0], d[1], acceleration

    def _additional(self, offsets, states, order):
        names = states[0].additional_names
        additional: dict[str, np.ndarray] = {}
        additional_dot: dict[str, np.ndarray] = {}
        for name in names:
            try:
                values = np.array([s.get_additional_state(name) for s in states])
            except (KeyError, ValueError) as exc:
                raise InconsistentAdditionalStates(
                    f"additional state {name!r} is not defined consistently across the window"
                ) from exc
            layers = [values]
            with_rates = all(name in s.additional_dot for s in states)
            if with_rates:
                layers.append(np.array([s.additional_dot[name] for s in states]))
            period = self.angular_states.get(name)
            if period is not None:
                layers[0] = unwrap_angles(values, period)
            d = hermite_derivatives(offsets[order], [layer[order] for layer in layers], der=2)
            value = d[0]
            if period is not None:
                value = wrap_angle(value, values[order[0]], period)
            additional[name] = value
            if with_rates:
                additional_dot[name] = d[1]
        return additional, additional_dot

    def _mass(self, offsets, states, order, nearest) -> float:
        if not self.interpolate_mass:
            return nearest.mass_kg
        masses = np.array([[s.mass_kg] for s in states])
        return float(hermite_derivatives(offsets[order], [masses[order]], der=1)[0][0])

    @staticmethod
    def _attitude(offsets, states) -> Rotation | None:
        attitudes = [s.attitude for s in states]
        defined = [a is not None for a in attitudes]
        if not any(defined):
            return None
        if not all(defined):
            raise InvalidArgument("attitude is defined on some samples only")
        if offsets[0] <= 0.0 <= offsets[-1]:
            slerp = Slerp(offsets, Rotation.concatenate(attitudes))
            return slerp([0.0])[0]
        i, j = (0, 1) if offsets[0] > 0.0 else (len(offsets) - 2, len(offsets) - 1)
        fraction = -offsets[i] / (offsets[j] - offsets[i])
        delta = (attitudes[i].inv() * attitudes[j]).as_rotvec()
        return attitudes[i] * Rotation.from_rotvec(fraction * delta)
