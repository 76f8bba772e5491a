from __future__ import annotations

import argparse
import csv
import logging
from dataclasses import replace
from pathlib import Path

from astropy import units as u
from astropy.time import Time

from .aggregate import AggregateBoundedPropagator
from .config import EphemerisConfig, configure_logging
from .constants import GM_EARTH
from .kepler import KeplerPropagator
from .models import TimeStampedState
from .sampling import ephemeris_from_source, sample_grid

_log = logging.getLogger(__name__)


def build_segments(
    epoch: Time,
    state: list[float],
    segments: int,
    segment_duration_s: float,
    sample_step_s: float,
    *,
    mu_km3_s2: float = GM_EARTH,
    config: EphemerisConfig | None = None,
) -> AggregateBoundedPropagator:
    """Tabulate consecutive Kepler arcs and stitch the tables together.

    Each arc restarts from the previous arc's end state so the replay is
    continuous across segment boundaries.
    """
    current = TimeStampedState(epoch=epoch, position_km=state[:3], velocity_km_s=state[3:])
    ephemerides = []
    for index in range(segments):
        start = current.epoch
        stop = start + segment_duration_s * u.s
        arc = KeplerPropagator(current, start, stop, mu_km3_s2=mu_km3_s2)
        ephemerides.append(ephemeris_from_source(arc, step_s=sample_step_s, config=config))
        current = arc.propagate(stop)
        _log.info("segment %d tabulated over [%s, %s]", index, start.isot, stop.isot)
    return AggregateBoundedPropagator(ephemerides)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Replay stitched Kepler ephemeris segments at a fixed cadence."
    )
    parser.add_argument("--epoch", type=str, required=True, help="Initial epoch (ISO, TDB).")
    parser.add_argument(
        "--state",
        type=float,
        nargs=6,
        required=True,
        metavar=("X", "Y", "Z", "VX", "VY", "VZ"),
        help="Initial position (km) and velocity (km/s).",
    )
    parser.add_argument("--segments", type=int, default=2, help="Number of tabulated segments.")
    parser.add_argument("--segment-duration", type=float, default=3600.0, help="Segment length (s).")
    parser.add_argument("--sample-step", type=float, default=60.0, help="Tabulation step (s).")
    parser.add_argument("--replay-step", type=float, default=30.0, help="Replay cadence (s).")
    parser.add_argument(
        "--interpolation-points",
        type=int,
        default=None,
        help="Samples per interpolation window (default EPHEMKIT_INTERPOLATION_POINTS or 2).",
    )
    parser.add_argument("--mu", type=float, default=GM_EARTH, help="Gravitational parameter (km^3/s^2).")
    parser.add_argument("--output", type=Path, default=Path("replay.csv"), help="Output CSV path.")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (default EPHEMKIT_LOG_LEVEL).")
    args = parser.parse_args()

    configure_logging(args.log_level)
    if args.segments < 1:
        parser.error("--segments must be >= 1")

    config = EphemerisConfig.from_env()
    if args.interpolation_points is not None:
        config = replace(config, interpolation_points=args.interpolation_points)

    epoch = Time(args.epoch, scale="tdb")
    aggregate = build_segments(
        epoch,
        list(args.state),
        args.segments,
        args.segment_duration,
        args.sample_step,
        mu_km3_s2=args.mu,
        config=config,
    )
    ephemerides = aggregate.propagators

    args.output.parent.mkdir(parents=True, exist_ok=True)
    with args.output.open("w", newline="") as fh:
        writer = csv.writer(fh)
        writer.writerow(["time_tdb", "x_km", "y_km", "z_km", "vx_km_s", "vy_km_s", "vz_km_s", "segment"])
        for t in sample_grid(aggregate.min_date, aggregate.max_date, args.replay_step):
            state = aggregate.propagate(t)
            segment = ephemerides.index(aggregate.select(t))
            writer.writerow([t.isot, *(f"{v:.9f}" for v in state.pv), segment])

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
