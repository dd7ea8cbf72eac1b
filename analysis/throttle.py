"""Token-bucket limiter for read throughput."""
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

MEGABYTE = 1024 * 1024


class ThroughputLimiter:
    """
    Bound the average rate of acquired bytes.

    The bucket starts empty, refills at the ceiling and holds at most one
    second worth of bytes. acquire() takes its bytes up front and sleeps
    until the bucket is no longer in deficit, so acquiring B bytes at a
    ceiling of C bytes/sec never completes in less than B / C seconds.

    A ceiling of None or 0 disables limiting; acquire() then never blocks.
    """

    def __init__(
        self,
        bytes_per_second: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if bytes_per_second is not None and bytes_per_second < 0:
            raise ValueError(f"Throughput ceiling must be >= 0, got {bytes_per_second}")

        self.bytes_per_second = float(bytes_per_second) if bytes_per_second else None
        self._clock = clock
        self._sleep = sleep
        self._available = 0.0
        self._last_refill = clock()

    @classmethod
    def from_megabytes(cls, megabytes_per_second: float, **kwargs) -> "ThroughputLimiter":
        """Build a limiter from a ceiling in MB/s (0 = unlimited)."""
        if megabytes_per_second < 0:
            raise ValueError(f"Throughput ceiling must be >= 0, got {megabytes_per_second}")
        return cls(megabytes_per_second * MEGABYTE, **kwargs)

    @property
    def unlimited(self) -> bool:
        return self.bytes_per_second is None

    def acquire(self, byte_count: int) -> float:
        """
        Take byte_count bytes from the bucket, blocking while in deficit.

        Returns:
            Seconds spent sleeping
        """
        if self.unlimited or byte_count <= 0:
            return 0.0

        now = self._clock()
        refill = (now - self._last_refill) * self.bytes_per_second
        self._available = min(self.bytes_per_second, self._available + refill)
        self._last_refill = now

        self._available -= byte_count
        if self._available >= 0:
            return 0.0

        wait = -self._available / self.bytes_per_second
        logger.debug(f"[ThroughputLimiter] Throttling {byte_count} bytes for {wait:.3f}s")
        self._sleep(wait)
        return wait
