"""Cosmographia ``.xyzv`` trajectory export.

Each record is one line ``jd x y z vx vy vz``: the Julian Date of the
sample followed by the ECI position in *km* and velocity in *km/s*.
Lines starting with ``#`` are comments.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
from jax.typing import ArrayLike

from odjax.epoch import Epoch

logger = logging.getLogger(__name__)


class TrajectoryWriter:
    """Append-only ``.xyzv`` writer.

    Open errors surface as :class:`OSError` from the constructor.  Use as
    a context manager, or call :meth:`close`.

    Args:
        filepath: Output path.  An existing file is truncated.
    """

    def __init__(self, filepath: str | Path) -> None:
        self.filepath = Path(filepath)
        self._fh = open(self.filepath, "w", encoding="utf-8")
        self._fh.write("# jd x y z vx vy vz (ECI, km, km/s)\n")
        self.records = 0

    def write(self, epoch: Epoch, state: ArrayLike) -> None:
        """Append one sample (state in *m*, *m/s*)."""
        state_km = np.asarray(state, dtype=np.float64)[:6] / 1e3
        values = " ".join(f"{v:.12e}" for v in state_km)
        self._fh.write(f"{float(epoch.jd()):.10f} {values}\n")
        self.records += 1

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()
            logger.info("Wrote %d trajectory records to %s", self.records, self.filepath)

    def __enter__(self) -> TrajectoryWriter:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
