from __future__ import annotations

import logging
from dataclasses import replace

import numpy as np
from astropy.time import Time

from .constants import GM_EARTH
from .errors import InvalidArgument
from .models import TimeStampedState, seconds_between
from .providers import AdditionalStateProvider, AttitudeProvider, ProviderSet

_log = logging.getLogger(__name__)

_STUMPFF_EPS = 1e-8


def stumpff_c2(z: float) -> float:
    if z > _STUMPFF_EPS:
        s = np.sqrt(z)
        return float((1.0 - np.cos(s)) / z)
    if z < -_STUMPFF_EPS:
        s = np.sqrt(-z)
        return float((np.cosh(s) - 1.0) / (-z))
    # series limit at z = 0
    return 0.5


def stumpff_c3(z: float) -> float:
    if z > _STUMPFF_EPS:
        s = np.sqrt(z)
        return float((s - np.sin(s)) / (s**3))
    if z < -_STUMPFF_EPS:
        s = np.sqrt(-z)
        return float((np.sinh(s) - s) / (s**3))
    return 1.0 / 6.0


def kepler_step(
    r0: np.ndarray,
    v0: np.ndarray,
    dt: float,
    mu_km3_s2: float = GM_EARTH,
    max_iter: int = 50,
    tol: float = 1e-8,
) -> tuple[np.ndarray, np.ndarray]:
    """Two-body position/velocity after ``dt`` seconds (universal variables)."""
    r0 = np.asarray(r0, dtype=float)
    v0 = np.asarray(v0, dtype=float)
    if abs(dt) < 1e-12:
        return r0.copy(), v0.copy()

    r0_norm = float(np.linalg.norm(r0))
    if r0_norm <= 0.0:
        raise ValueError("Kepler propagation needs a non-zero initial radius")
    vr0 = float(np.dot(r0, v0)) / r0_norm
    alpha = 2.0 / r0_norm - float(np.dot(v0, v0)) / mu_km3_s2
    sqrt_mu = np.sqrt(mu_km3_s2)

    if alpha > 1e-12:
        chi = sqrt_mu * dt * alpha
    else:
        chi = np.sign(dt) * sqrt_mu * abs(dt) / r0_norm

    for _ in range(max_iter):
        z = alpha * chi * chi
        if not np.isfinite(z) or abs(z) > 1.0e6:
            raise ValueError(f"Kepler solver produced pathological z={z:.3e} for dt={dt}")
        c2 = stumpff_c2(z)
        c3 = stumpff_c3(z)
        residual = (
            (r0_norm * vr0 / sqrt_mu) * chi * chi * c2
            + (1.0 - alpha * r0_norm) * chi**3 * c3
            + r0_norm * chi
            - sqrt_mu * dt
        )
        slope = (
            (r0_norm * vr0 / sqrt_mu) * chi * (1.0 - z * c3)
            + (1.0 - alpha * r0_norm) * chi * chi * c2
            + r0_norm
        )
        step = residual / slope
        if not np.isfinite(step):
            raise ValueError(f"Kepler update became non-finite for dt={dt}")
        chi -= step
        if abs(step) < tol:
            break
    else:
        raise ValueError(f"Kepler solver did not converge for dt={dt}")

    z = alpha * chi * chi
    c2 = stumpff_c2(z)
    c3 = stumpff_c3(z)
    f = 1.0 - (chi * chi / r0_norm) * c2
    g = dt - (chi**3 / sqrt_mu) * c3
    r = f * r0 + g * v0
    r_norm = float(np.linalg.norm(r))
    if not np.isfinite(r_norm) or r_norm <= 0.0:
        raise ValueError(f"Kepler propagation produced invalid radius for dt={dt}")
    gdot = 1.0 - (chi * chi / r_norm) * c2
    fdot = (sqrt_mu / (r_norm * r0_norm)) * chi * (z * c3 - 1.0)
    return r, fdot * r0 + gdot * v0


class KeplerPropagator:
    """Analytical two-body source with a nominal validity interval.

    Queries outside ``[min_date, max_date]`` are answered by analytical
    extrapolation rather than rejected.
    """

    def __init__(
        self,
        initial_state: TimeStampedState,
        min_date: Time,
        max_date: Time,
        *,
        mu_km3_s2: float = GM_EARTH,
        max_iter: int = 50,
        tol: float = 1e-8,
        attitude_provider: AttitudeProvider | None = None,
    ) -> None:
        if max_date < min_date:
            raise InvalidArgument(
                f"max_date {max_date.isot} precedes min_date {min_date.isot}"
            )
        if mu_km3_s2 <= 0.0:
            raise InvalidArgument("mu_km3_s2 must be positive")
        self._min_date = min_date
        self._max_date = max_date
        self.mu_km3_s2 = float(mu_km3_s2)
        self.max_iter = int(max_iter)
        self.tol = float(tol)
        self._providers = ProviderSet(attitude_provider)
        self._initial = initial_state

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

    def _two_body(self, epoch: Time) -> TimeStampedState:
        dt = seconds_between(epoch, self._initial.epoch)
        r, v = kepler_step(
            self._initial.position_km,
            self._initial.velocity_km_s,
            dt,
            self.mu_km3_s2,
            self.max_iter,
            self.tol,
        )
        acc = -self.mu_km3_s2 * r / np.linalg.norm(r) ** 3
        return replace(
            self._initial,
            epoch=epoch,
            position_km=r,
            velocity_km_s=v,
            acceleration_km_s2=acc,
        )

    def propagate(self, epoch: Time) -> TimeStampedState:
        if epoch < self._min_date or epoch > self._max_date:
            _log.debug(
                "Kepler extrapolation to %s outside [%s, %s]",
                epoch.isot,
                self._min_date.isot,
                self._max_date.isot,
            )
        return self._providers.apply(self._two_body(epoch))

    state_at = propagate

    def get_initial_state(self) -> TimeStampedState:
        return self._providers.apply(self._initial)

    def reset_initial_state(self, state: TimeStampedState) -> None:
        self._initial = state

    def reset_intermediate_state(self, state: TimeStampedState, forward: bool = True) -> None:
        # A closed-form solution has no history to keep on either side.
        self._initial = state

    def set_attitude_provider(self, provider: AttitudeProvider | None) -> None:
        self._providers.attitude_provider = provider

    def add_additional_state_provider(self, provider: AdditionalStateProvider) -> None:
        self._providers.add(provider, reserved=self._initial.additional_names)

    def get_managed_additional_states(self) -> tuple[str, ...]:
        return self._initial.additional_names + self._providers.names

    def is_additional_state_managed(self, name: str) -> bool:
        return name in self.get_managed_additional_states()
