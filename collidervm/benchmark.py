from __future__ import annotations
from .errors import tert, vert
from .oracle import expected_attempts, flow_message
from blake3 import blake3
from dataclasses import dataclass
from time import perf_counter
import logging


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalibrationResult:
    """Number of hashes computed over a measured wall-clock window."""
    hashes: int
    seconds: float

    @property
    def rate(self) -> float:
        """Hashes per second."""
        return self.hashes / self.seconds if self.seconds > 0 else 0.0

    def expected_seconds(self, b_bits: int, l_bits: int) -> float:
        """Estimate the time a nonce search for (b_bits, l_bits) takes
            at this rate.
        """
        rate = self.rate
        if rate <= 0:
            return float('inf')
        return expected_attempts(b_bits, l_bits) / rate


def benchmark_hash_rate(duration_secs: float, input: int = 123) -> CalibrationResult:
    """A basic hash rate calibration: hash input||nonce for increasing
        nonces until duration_secs have passed.
    """
    tert(type(duration_secs) in (int, float), 'duration_secs must be int or float')
    vert(duration_secs >= 0, 'duration_secs must not be negative')
    logger.info('Calibrating for %s seconds...', duration_secs)

    start = perf_counter()
    end = start + duration_secs
    count = 0

    while perf_counter() < end:
        blake3(flow_message(input, count)).digest()
        count += 1

    result = CalibrationResult(count, perf_counter() - start)
    logger.info('~%.2f H/s', result.rate)
    return result
