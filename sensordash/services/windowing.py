from __future__ import annotations

import logging
from typing import Iterable

from sensordash.models.dashboard import Window
from sensordash.models.measurement import Channel, MeasurementRecord
from sensordash.services.classifier import classify

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 20


def select_windows(
    batch: Iterable[MeasurementRecord], *, size: int = DEFAULT_WINDOW_SIZE
) -> dict[Channel, Window]:
    """Reduce one fetched batch to the `size` newest records of each channel.

    The batch is walked newest-first so stale records can never crowd out
    recent ones, then each channel is handed back oldest-first. Records that
    share a timestamp keep their input order in both passes.
    """
    if size < 1:
        raise ValueError("window size must be >= 1")

    newest_first = sorted(batch, key=lambda r: r.timestamp, reverse=True)

    accumulators: dict[Channel, list[MeasurementRecord]] = {c: [] for c in Channel}
    unassigned = 0
    for record in newest_first:
        channel = classify(record)
        if channel is None:
            unassigned += 1
            continue
        bucket = accumulators[channel]
        if len(bucket) < size:
            bucket.append(record)

    if unassigned:
        logger.debug("Dropped %d record(s) from unknown sensors", unassigned)

    # Re-sort instead of reversing so ties stay in input order.
    return {
        channel: tuple(sorted(bucket, key=lambda r: r.timestamp))
        for channel, bucket in accumulators.items()
    }
