from __future__ import annotations
from .classes import Tape, Stack
from .codec import bytes_to_nibbles
from .errors import sert, tert, vert
from .functions import (
    add_opcode,
    encode_push_data,
    encode_push_int,
    int_to_script_num,
    opcodes,
    script_num_to_int,
)
from .interfaces import NibbleOrder
from blake3 import blake3
from dataclasses import dataclass, field
from math import ceil


BLAKE3_OPCODE = 0xbb
BLAKE3_DIGEST_NIBBLES = 64

_order_flags = {
    NibbleOrder.FIRST_DEEPEST: 0,
    NibbleOrder.FIRST_ON_TOP: 1,
}


def OP_BLAKE3(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull the nibble order flag, the limb length, then the message
        length from the stack; pull ceil(message_len/limb_len) limbs
        (last limb on top); put the 64 nibbles of the BLAKE3 digest of
        their concatenation onto the stack. Order flag 0 leaves the
        first nibble deepest, 1 leaves it on top.
    """
    order = script_num_to_int(stack.get())
    limb_len = script_num_to_int(stack.get())
    message_len = script_num_to_int(stack.get())
    sert(order in (0, 1), 'OP_BLAKE3 invalid order flag')
    sert(limb_len > 0, 'OP_BLAKE3 limb length must be positive')
    sert(message_len > 0, 'OP_BLAKE3 message length must be positive')

    limbs = [stack.get() for _ in range(ceil(message_len / limb_len))]
    limbs.reverse()
    message = b''.join(limbs)
    sert(len(message) == message_len, 'OP_BLAKE3 message length mismatch')

    nibbles = bytes_to_nibbles(blake3(message).digest())
    if order == 1:
        nibbles.reverse()

    for nibble in nibbles:
        stack.put(int_to_script_num(nibble))

def register_blake3_opcode() -> None:
    """Register OP_BLAKE3 with the evaluator if not yet registered."""
    if opcodes.get(BLAKE3_OPCODE, ('',))[0] != 'OP_BLAKE3':
        add_opcode(BLAKE3_OPCODE, 'OP_BLAKE3', OP_BLAKE3)


@dataclass(frozen=True)
class Blake3LimbFragment:
    """Limb-based BLAKE3 fragment generator implementing
        CanComputeDigestFragment.
    """
    nibble_order: NibbleOrder = field(default=NibbleOrder.FIRST_DEEPEST)
    digest_nibbles: int = field(default=BLAKE3_DIGEST_NIBBLES)

    def compute_script(self, message_len: int, limb_len: int) -> bytes:
        """Return `<message_len> <limb_len> <order> OP_BLAKE3`."""
        tert(type(message_len) is int, 'message_len must be int')
        tert(type(limb_len) is int, 'limb_len must be int')
        vert(message_len > 0, 'message_len must be positive')
        vert(limb_len > 0, 'limb_len must be positive')
        register_blake3_opcode()
        return b''.join([
            encode_push_int(message_len),
            encode_push_int(limb_len),
            encode_push_int(_order_flags[self.nibble_order]),
            bytes([BLAKE3_OPCODE]),
        ])

    def push_message_script(self, message: bytes, limb_len: int) -> bytes:
        """Return pushes of the message split into limbs, in message
            order, so the last limb ends on top.
        """
        tert(type(message) is bytes, 'message must be bytes')
        vert(limb_len > 0, 'limb_len must be positive')
        return b''.join(
            encode_push_data(message[i:i+limb_len])
            for i in range(0, len(message), limb_len)
        )

    def digest(self, message: bytes) -> bytes:
        return blake3(message).digest()


register_blake3_opcode()
