"""CSV export of filter estimates with Polars.

One row per reported estimate, in processing order:

- ``epoch``: ISO 8601 epoch string
- ``state_0`` .. ``state_5``: state deviation
- ``covar_i_j``: covariance, row-major
- ``stm_i_j``: state transition matrix, row-major
- ``predicted``: ``true`` for a time update, ``false`` after a measurement

Rows are buffered and appended to the file in chunks.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import polars as pl

from odjax.epoch import Epoch
from odjax.estimation import Estimate

logger = logging.getLogger(__name__)

_N = 6

STATE_COLUMNS = [f"state_{i}" for i in range(_N)]
COVAR_COLUMNS = [f"covar_{i}_{j}" for i in range(_N) for j in range(_N)]
STM_COLUMNS = [f"stm_{i}_{j}" for i in range(_N) for j in range(_N)]
COLUMNS = ["epoch", *STATE_COLUMNS, *COVAR_COLUMNS, *STM_COLUMNS, "predicted"]

SCHEMA = {
    "epoch": pl.Utf8,
    **{c: pl.Float64 for c in STATE_COLUMNS + COVAR_COLUMNS + STM_COLUMNS},
    "predicted": pl.Boolean,
}


class EstimateWriter:
    """Buffered estimate CSV writer.

    Args:
        filepath: Output path.  An existing file is truncated.
        chunk_size: Rows buffered before they are appended to the file.
    """

    def __init__(self, filepath: str | Path, chunk_size: int = 1000) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.filepath = Path(filepath)
        self.chunk_size = chunk_size
        self._fh = open(self.filepath, "w", encoding="utf-8", newline="")
        self._rows: dict[str, list] = {c: [] for c in COLUMNS}
        self._header_written = False
        self.records = 0

    def write(self, epoch: Epoch, estimate: Estimate) -> None:
        """Buffer one estimate, flushing when the chunk is full."""
        self._rows["epoch"].append(str(epoch))
        for cols, values in (
            (STATE_COLUMNS, np.asarray(estimate.state, dtype=np.float64).ravel()),
            (COVAR_COLUMNS, np.asarray(estimate.covar, dtype=np.float64).ravel()),
            (STM_COLUMNS, np.asarray(estimate.stm, dtype=np.float64).ravel()),
        ):
            for c, v in zip(cols, values):
                self._rows[c].append(float(v))
        self._rows["predicted"].append(bool(estimate.predicted))
        self.records += 1

        if len(self._rows["epoch"]) >= self.chunk_size:
            self.flush()

    def flush(self) -> None:
        """Append buffered rows to the file."""
        if not self._rows["epoch"]:
            return
        df = pl.DataFrame(self._rows, schema=SCHEMA)
        df.write_csv(self._fh, include_header=not self._header_written)
        self._fh.flush()
        self._header_written = True
        self._rows = {c: [] for c in COLUMNS}

    def close(self) -> None:
        if self._fh.closed:
            return
        self.flush()
        if not self._header_written:
            self._fh.write(",".join(COLUMNS) + "\n")
        self._fh.close()
        logger.info("Wrote %d estimates to %s", self.records, self.filepath)

    def __enter__(self) -> EstimateWriter:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def read_estimates(filepath: str | Path) -> pl.DataFrame:
    """Load an estimate CSV written by :class:`EstimateWriter`."""
    return pl.read_csv(filepath, schema=SCHEMA)
