from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
from astropy.time import Time

from .constants import DUPLICATE_EPOCH_TOL_S
from .errors import InvalidArgument, TimeOutOfRange
from .models import TimeStampedState, seconds_between

_log = logging.getLogger(__name__)


class SampleCache:
    """Fixed-size neighbour windows over a sorted sample sequence.

    ``window_for`` returns the ``neighbors_size`` contiguous samples that best
    bracket a query epoch: ``k // 2`` samples before the insertion point when
    possible, shifted entirely to the first or last ``k`` samples near either
    end. Queries farther than ``extrapolation_threshold_s`` outside the sample
    span raise ``TimeOutOfRange``.
    """

    def __init__(
        self,
        samples: Sequence[TimeStampedState],
        neighbors_size: int,
        extrapolation_threshold_s: float = 0.0,
    ) -> None:
        samples = tuple(samples)
        k = int(neighbors_size)
        if k < 2:
            raise InvalidArgument(f"neighbors_size must be >= 2, got {neighbors_size}")
        if k > len(samples):
            raise InvalidArgument(
                f"neighbors_size {k} exceeds the {len(samples)} available samples"
            )
        if extrapolation_threshold_s < 0.0:
            raise InvalidArgument("extrapolation_threshold_s must be >= 0")
        reference = samples[0].epoch
        offsets = np.array([seconds_between(s.epoch, reference) for s in samples], dtype=float)
        if np.any(np.diff(offsets) < 0.0):
            raise InvalidArgument("samples must be sorted by ascending epoch")
        offsets.setflags(write=False)
        self._samples = samples
        self._offsets = offsets
        self._reference = reference
        self._k = k
        self._tolerance = float(extrapolation_threshold_s)

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def samples(self) -> tuple[TimeStampedState, ...]:
        return self._samples

    @property
    def offsets_s(self) -> np.ndarray:
        return self._offsets

    @property
    def neighbors_size(self) -> int:
        return self._k

    @property
    def extrapolation_threshold_s(self) -> float:
        return self._tolerance

    @property
    def earliest(self) -> TimeStampedState:
        return self._samples[0]

    @property
    def latest(self) -> TimeStampedState:
        return self._samples[-1]

    def offset_of(self, epoch: Time) -> float:
        return seconds_between(epoch, self._reference)

    def check_bounds(self, epoch: Time) -> float:
        """Return the offset of ``epoch`` after enforcing the extrapolation band."""
        dt = self.offset_of(epoch)
        # Two-double epoch arithmetic rounds at the sub-nanosecond level.
        band = self._tolerance + DUPLICATE_EPOCH_TOL_S
        if dt < -band or dt > self._offsets[-1] + band:
            raise TimeOutOfRange(
                epoch, self.earliest.epoch, self.latest.epoch, self._tolerance
            )
        if dt < 0.0:
            _log.debug("extrapolating %.6g s before the first sample", -dt)
        elif dt > self._offsets[-1]:
            _log.debug("extrapolating %.6g s after the last sample", dt - self._offsets[-1])
        return dt

    def first_index(self, dt: float) -> int:
        n = len(self._samples)
        insertion = int(np.searchsorted(self._offsets, dt, side="right"))
        first = insertion - self._k // 2
        return max(0, min(first, n - self._k))

    def window_for(self, epoch: Time) -> list[TimeStampedState]:
        first = self.first_index(self.check_bounds(epoch))
        return list(self._samples[first : first + self._k])
