from __future__ import annotations
from .classes import FlowIdResult
from .errors import (
    OutOfRangeError,
    SearchExhaustedError,
    SearchTimeoutError,
    tert,
    vert,
)
from blake3 import blake3
from concurrent.futures import ThreadPoolExecutor, wait
from threading import Event, Lock
from time import perf_counter
import logging
import struct


logger = logging.getLogger(__name__)

MAX_NONCE = 2**64 - 1
DEFAULT_ATTEMPT_FACTOR = 100


def flow_message(input: int, nonce: int) -> bytes:
    """Return the 12-byte message: input as 4-byte little-endian, then
        nonce as 8-byte little-endian.
    """
    tert(type(input) is int, 'input must be int')
    tert(type(nonce) is int, 'nonce must be int')
    vert(0 <= input < 2**32, 'input must fit in 32 bits')
    vert(0 <= nonce <= MAX_NONCE, 'nonce must fit in 64 bits')
    return struct.pack('<IQ', input, nonce)

def flow_hash(input: int, nonce: int) -> bytes:
    """Return the 32-byte BLAKE3 digest of the flow message."""
    return blake3(flow_message(input, nonce)).digest()

def prefix_mask(b_bits: int) -> int:
    """Return the mask for the low b_bits of a 32-bit word."""
    vert(b_bits >= 0, 'b_bits must not be negative')
    return 0xffffffff if b_bits >= 32 else (1 << b_bits) - 1

def expected_attempts(b_bits: int, l_bits: int) -> int:
    """Return the expected number of nonces tried: 2^(b_bits - l_bits),
        saturating at 1 when l_bits >= b_bits.
    """
    return 1 << max(b_bits - l_bits, 0)

def calculate_flow_id(
        input: int, nonce: int, b_bits: int, l_bits: int) -> FlowIdResult:
    """Calculate H(input||nonce)|_B. Returns the FlowIdResult if the
        prefix is below 2^l_bits; raises OutOfRangeError otherwise.
    """
    vert(l_bits >= 0, 'l_bits must not be negative')
    digest = flow_hash(input, nonce)
    candidate = int.from_bytes(digest[:4], 'little')
    prefix = candidate & prefix_mask(b_bits)
    max_flow_id = 1 << l_bits

    if prefix >= max_flow_id:
        raise OutOfRangeError(
            f'hash prefix {prefix} (from H={digest.hex()}) >= {max_flow_id} '
            '(out of range)'
        )

    return FlowIdResult(nonce, digest, prefix)

def find_valid_nonce(
        input: int, b_bits: int, l_bits: int, start_nonce: int = 0,
        attempt_factor: int = DEFAULT_ATTEMPT_FACTOR) -> FlowIdResult:
    """Search nonces upward from start_nonce for one that yields a valid
        flow id. Raises SearchExhaustedError if more than attempt_factor
        times the expected number of attempts fail or if the nonce would
        overflow 64 bits.
    """
    tert(type(attempt_factor) is int, 'attempt_factor must be int')
    vert(attempt_factor >= 0, 'attempt_factor must not be negative')
    expected = expected_attempts(b_bits, l_bits)
    max_attempts = expected * attempt_factor

    logger.info(
        'find_valid_nonce => expected ~2^%d = %d tries',
        max(b_bits - l_bits, 0), expected
    )

    start = perf_counter()
    nonce = start_nonce
    attempts = 0

    while True:
        try:
            result = calculate_flow_id(input, nonce, b_bits, l_bits)
        except OutOfRangeError:
            attempts += 1
            if nonce >= MAX_NONCE:
                raise SearchExhaustedError('nonce overflow')
            nonce += 1
            if attempts > max_attempts:
                raise SearchExhaustedError(
                    f'could not find valid flow_id within {attempt_factor}x '
                    'expected attempts'
                )
            continue

        elapsed = perf_counter() - start
        rate = (attempts + 1) / elapsed if elapsed > 0 else 0.0
        logger.info(
            'found flow_id=%d at nonce=%d, ~%.2f H/s',
            result.flow_id, result.nonce, rate
        )
        return result

def find_valid_nonce_parallel(
        input: int, b_bits: int, l_bits: int, workers: int = 4,
        timeout: float|None = None,
        attempt_factor: int = DEFAULT_ATTEMPT_FACTOR) -> FlowIdResult:
    """Search the nonce space with `workers` threads, each trying every
        workers-th nonce. Workers stop once a smaller valid nonce is
        known, so the result is the smallest valid nonce and matches
        `find_valid_nonce`. Raises SearchTimeoutError if timeout seconds
        pass first and SearchExhaustedError if no nonce within the
        attempt budget is valid.
    """
    tert(type(workers) is int, 'workers must be int')
    vert(workers > 0, 'workers must be positive')
    vert(attempt_factor >= 0, 'attempt_factor must not be negative')
    last_nonce = min(expected_attempts(b_bits, l_bits) * attempt_factor, MAX_NONCE)
    cancel = Event()
    lock = Lock()
    best: list[FlowIdResult] = []

    def search(offset: int) -> None:
        nonce = offset
        while nonce <= last_nonce and not cancel.is_set():
            if best and nonce > best[0].nonce:
                return
            try:
                result = calculate_flow_id(input, nonce, b_bits, l_bits)
            except OutOfRangeError:
                nonce += workers
                continue
            with lock:
                if not best or result.nonce < best[0].nonce:
                    best[:] = [result]
            return

    logger.info(
        'find_valid_nonce_parallel => %d workers, nonces 0..%d',
        workers, last_nonce
    )

    executor = ThreadPoolExecutor(max_workers=workers)
    futures = [executor.submit(search, offset) for offset in range(workers)]
    _, pending = wait(futures, timeout=timeout)
    cancel.set()
    executor.shutdown(wait=True)

    for future in futures:
        # re-raise anything a worker raised
        future.result()

    if pending:
        raise SearchTimeoutError(f'nonce search timed out after {timeout}s')

    if not best:
        raise SearchExhaustedError(
            f'could not find valid flow_id within {attempt_factor}x '
            'expected attempts'
        )

    logger.info(
        'found flow_id=%d at nonce=%d', best[0].flow_id, best[0].nonce
    )
    return best[0]
