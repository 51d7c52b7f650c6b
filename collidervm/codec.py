from __future__ import annotations
from .errors import pert, tert, vert


def check_prefix_bits(b_bits: int) -> None:
    """Raise EncodingPreconditionError unless b_bits is a multiple of 8
        between 0 and 32.
    """
    tert(type(b_bits) is int, 'b_bits must be int')
    pert(0 <= b_bits <= 32, 'b_bits must be between 0 and 32')
    pert(b_bits % 8 == 0, 'b_bits must be multiple of 8')

def flow_id_to_prefix_bytes(flow_id: int, b_bits: int) -> bytes:
    """Return the leading b_bits/8 bytes of the little-endian encoding
        of the 32-bit flow id.
    """
    check_prefix_bits(b_bits)
    tert(type(flow_id) is int, 'flow_id must be int')
    pert(0 <= flow_id < 2**32, 'flow_id must fit in 32 bits')
    return flow_id.to_bytes(4, 'little')[:b_bits // 8]

def bytes_to_nibbles(data: bytes) -> list[int]:
    """Expand each byte into its high nibble then its low nibble,
        preserving byte order: [0x12, 0x34] => [1, 2, 3, 4].
    """
    tert(type(data) is bytes, 'data must be bytes')
    nibbles = []
    for byte in data:
        nibbles.append((byte >> 4) & 0x0f)
        nibbles.append(byte & 0x0f)
    return nibbles

def nibbles_to_bytes(nibbles: list[int]) -> bytes:
    """Pair nibbles back into bytes, high nibble first."""
    vert(len(nibbles) % 2 == 0, 'nibbles must have even length')
    for nibble in nibbles:
        tert(type(nibble) is int, 'each nibble must be int')
        vert(0 <= nibble <= 15, 'each nibble must be in [0, 15]')
    return bytes(
        (nibbles[i] << 4) | nibbles[i+1]
        for i in range(0, len(nibbles), 2)
    )

def flow_id_to_prefix_nibbles(flow_id: int, b_bits: int) -> list[int]:
    """Convert a flow id into the b_bits/4 nibbles of its little-endian
        prefix: 0x0d00 with b_bits=16 => [0x0, 0x0, 0x0, 0xd].
    """
    return bytes_to_nibbles(flow_id_to_prefix_bytes(flow_id, b_bits))

def digest_prefix_nibbles(digest: bytes, b_bits: int) -> list[int]:
    """Return the leading b_bits/4 nibbles of a digest."""
    check_prefix_bits(b_bits)
    tert(type(digest) is bytes, 'digest must be bytes')
    vert(len(digest) >= b_bits // 8, 'digest too short')
    return bytes_to_nibbles(digest[:b_bits // 8])
