from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .constants import DEFAULT_EXTRAPOLATION_FRACTION, DEFAULT_INTERPOLATION_POINTS
from .errors import InvalidArgument

_ENV_PREFIX = "EPHEMKIT_"
_FALSE_VALUES = {"0", "false", "no", "off"}
_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class EphemerisConfig:
    interpolation_points: int = DEFAULT_INTERPOLATION_POINTS
    extrapolation_fraction: float = DEFAULT_EXTRAPOLATION_FRACTION
    derivative_filter: str = "pv"
    interpolate_mass: bool = True

    def __post_init__(self) -> None:
        if int(self.interpolation_points) < 2:
            raise InvalidArgument(
                f"interpolation_points must be >= 2, got {self.interpolation_points}"
            )
        if not (self.extrapolation_fraction >= 0.0):
            raise InvalidArgument(
                f"extrapolation_fraction must be >= 0, got {self.extrapolation_fraction}"
            )
        if self.derivative_filter not in {"p", "pv", "pva"}:
            raise InvalidArgument(f"Unknown derivative_filter: {self.derivative_filter!r}")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "EphemerisConfig":
        """Build a config from EPHEMKIT_* variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()
        try:
            points = int(env.get(_ENV_PREFIX + "INTERPOLATION_POINTS", defaults.interpolation_points))
            fraction = float(
                env.get(_ENV_PREFIX + "EXTRAPOLATION_FRACTION", defaults.extrapolation_fraction)
            )
        except ValueError as exc:
            raise InvalidArgument(f"Invalid EPHEMKIT_* setting: {exc}") from exc
        derivative_filter = env.get(_ENV_PREFIX + "DERIVATIVE_FILTER", defaults.derivative_filter)
        interpolate_mass = env.get(_ENV_PREFIX + "INTERPOLATE_MASS", "1").lower() not in _FALSE_VALUES
        return cls(
            interpolation_points=points,
            extrapolation_fraction=fraction,
            derivative_filter=derivative_filter.strip().lower(),
            interpolate_mass=interpolate_mass,
        )


def configure_logging(level: str | int | None = None) -> None:
    """Attach a stream handler to the ``ephemkit`` logger.

    ``level`` defaults to EPHEMKIT_LOG_LEVEL, then WARNING. Only the CLI calls
    this; importing the library never touches logging configuration.
    """
    if level is None:
        level = os.environ.get(_ENV_PREFIX + "LOG_LEVEL", "WARNING")
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise InvalidArgument(f"Unknown log level: {level!r}")
        level = resolved
    logger = logging.getLogger("ephemkit")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
