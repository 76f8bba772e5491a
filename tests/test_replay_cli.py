import csv
import sys

import numpy as np
import pytest

from ephemkit import AggregateBoundedPropagator, EphemerisConfig, KeplerPropagator, TabulatedEphemeris
from ephemkit.replay_cli import build_segments, main

from conftest import LEO_R, LEO_V, T0, at, leo_state

STATE = list(LEO_R) + list(LEO_V)


def test_build_segments_is_continuous_and_accurate():
    aggregate = build_segments(T0, STATE, 3, 600.0, 60.0, config=EphemerisConfig(interpolation_points=4))
    assert isinstance(aggregate, AggregateBoundedPropagator)
    assert len(aggregate.propagators) == 3
    assert all(isinstance(p, TabulatedEphemeris) for p in aggregate.propagators)
    assert aggregate.min_date == T0
    assert abs((aggregate.max_date - at(1800.0)).sec) < 1e-6

    reference = KeplerPropagator(leo_state(), T0, at(1800.0))
    for t in (0.0, 300.0, 600.0, 601.0, 1199.0, 1750.0):
        np.testing.assert_allclose(aggregate.propagate(at(t)).pv, reference.propagate(at(t)).pv, atol=1e-5)


def _run(monkeypatch, argv):
    monkeypatch.setattr(sys, "argv", ["ephemkit-replay", *argv])
    return main()


def test_main_writes_replay_csv(monkeypatch, tmp_path):
    monkeypatch.delenv("EPHEMKIT_INTERPOLATION_POINTS", raising=False)
    output = tmp_path / "out" / "replay.csv"
    args = [
        "--epoch", "2004-01-01T00:00:00",
        "--state", *map(str, STATE),
        "--segments", "2",
        "--segment-duration", "600",
        "--sample-step", "60",
        "--replay-step", "100",
        "--interpolation-points", "4",
        "--output", str(output),
        "--log-level", "WARNING",
    ]
    assert _run(monkeypatch, args) == 0

    with output.open() as fh:
        rows = list(csv.DictReader(fh))
    # 0, 100, ..., 1100 plus the closing epoch at 1200.
    assert len(rows) == 13
    assert rows[0]["time_tdb"].startswith("2004-01-01T00:00:00")
    segments = [int(r["segment"]) for r in rows]
    assert segments[:7] == [0] * 7
    assert segments[7:] == [1] * 6
    np.testing.assert_allclose(
        [float(rows[0][k]) for k in ("x_km", "y_km", "z_km", "vx_km_s", "vy_km_s", "vz_km_s")],
        STATE,
        atol=1e-9,
    )


def test_main_rejects_zero_segments(monkeypatch, tmp_path):
    args = ["--epoch", "2004-01-01T00:00:00", "--state", *map(str, STATE), "--segments", "0",
            "--output", str(tmp_path / "x.csv")]
    with pytest.raises(SystemExit):
        _run(monkeypatch, args)
