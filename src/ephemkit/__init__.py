from .aggregate import AggregateBoundedPropagator
from .cache import SampleCache
from .config import EphemerisConfig
from .constants import GM_EARTH
from .ephemeris import TabulatedEphemeris
from .errors import (
    EphemerisError,
    InconsistentAdditionalStates,
    InvalidArgument,
    NameAlreadyInUse,
    NonResettableState,
    TimeOutOfRange,
    UnmanagedAdditionalState,
)
from .interpolation import DerivativeFilter, StateInterpolator
from .kepler import KeplerPropagator
from .models import TimeInterval, TimeStampedState
from .providers import (
    AdditionalStateProvider,
    AttitudeProvider,
    ElapsedTimeProvider,
    FixedAttitudeProvider,
    FunctionStateProvider,
    LofAttitudeProvider,
    LofType,
    TimeBoundedSource,
)

__all__ = [
    "AdditionalStateProvider",
    "AggregateBoundedPropagator",
    "AttitudeProvider",
    "DerivativeFilter",
    "ElapsedTimeProvider",
    "EphemerisConfig",
    "EphemerisError",
    "FixedAttitudeProvider",
    "FunctionStateProvider",
    "GM_EARTH",
    "InconsistentAdditionalStates",
    "InvalidArgument",
    "KeplerPropagator",
    "LofAttitudeProvider",
    "LofType",
    "NameAlreadyInUse",
    "NonResettableState",
    "SampleCache",
    "StateInterpolator",
    "TabulatedEphemeris",
    "TimeBoundedSource",
    "TimeInterval",
    "TimeOutOfRange",
    "TimeStampedState",
    "UnmanagedAdditionalState",
]
