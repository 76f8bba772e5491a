from __future__ import annotations

from astropy import units as u
from astropy.time import Time


class EphemerisError(Exception):
    """Base class for every error raised by ephemkit."""


class InvalidArgument(EphemerisError, ValueError):
    pass


class TimeOutOfRange(EphemerisError, ValueError):
    """Query epoch outside the servable span of a source."""

    def __init__(
        self,
        epoch: Time,
        min_date: Time,
        max_date: Time,
        tolerance_s: float = 0.0,
    ) -> None:
        self.epoch = epoch
        self.min_date = min_date
        self.max_date = max_date
        self.tolerance_s = float(tolerance_s)
        if epoch < min_date:
            side = "before"
            gap_s = float((min_date - epoch).to(u.s).value)
        else:
            side = "after"
            gap_s = float((epoch - max_date).to(u.s).value)
        super().__init__(
            f"epoch {epoch.isot} is {gap_s:.6g} s {side} the span "
            f"[{min_date.isot}, {max_date.isot}] (tolerance {self.tolerance_s:.6g} s)"
        )


class NonResettableState(EphemerisError, RuntimeError):
    pass


class NameAlreadyInUse(EphemerisError, ValueError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"additional state name {name!r} is already in use")


class InconsistentAdditionalStates(EphemerisError, ValueError):
    pass


class UnmanagedAdditionalState(EphemerisError, KeyError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"additional state {name!r} is not managed")

    def __str__(self) -> str:
        return self.args[0]
