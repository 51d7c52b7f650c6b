from __future__ import annotations
from enum import Enum
from typing import Protocol, runtime_checkable


class NibbleOrder(Enum):
    """Where a hash fragment leaves the digest nibbles on the stack.
        FIRST_DEEPEST: the high nibble of digest byte 0 is the deepest
        item and the low nibble of the last byte is on top.
        FIRST_ON_TOP: the reverse.
    """
    FIRST_DEEPEST = 'first_deepest'
    FIRST_ON_TOP = 'first_on_top'


@runtime_checkable
class TapeProtocol(Protocol):
    def read(self, size: int, move_pointer: bool = True) -> bytes:
        """Read symbols from the data."""
        ...

    def has_terminated(self) -> bool:
        """Return whether or not the tape has terminated."""
        ...


@runtime_checkable
class ScriptProtocol(Protocol):
    """Represent a script as a pairing of source and byte code."""
    src: str
    bytes: bytes

    @classmethod
    def from_src(cls, src: str) -> ScriptProtocol:
        """Create an instance from assembly source."""
        ...

    @classmethod
    def from_bytes(cls, code: bytes) -> ScriptProtocol:
        """Create an instance from byte code."""
        ...

    def commitment(self) -> bytes:
        """Return a cryptographic commitment for the Script."""
        ...

    def __bytes__(self) -> bytes:
        """Return the byte code."""
        ...

    def __str__(self) -> str:
        """Return the assembly source."""
        ...

    def __add__(self, other: ScriptProtocol) -> ScriptProtocol:
        """Add two instances together."""
        ...


@runtime_checkable
class CanComputeDigestFragment(Protocol):
    """A generator of script fragments that compute a digest on-chain.
        After a message of `message_len` bytes has been pushed as limbs
        of `limb_len` bytes (first limb deepest), the fragment returned
        by `compute_script` consumes the limbs and leaves
        `digest_nibbles` nibbles on the stack in `nibble_order`.
    """
    nibble_order: NibbleOrder
    digest_nibbles: int

    def compute_script(self, message_len: int, limb_len: int) -> bytes:
        """Return the byte code that computes the digest of the pushed
            message.
        """
        ...

    def push_message_script(self, message: bytes, limb_len: int) -> bytes:
        """Return the byte code that pushes the message as limbs."""
        ...

    def digest(self, message: bytes) -> bytes:
        """Return the host-side digest the fragment reproduces."""
        ...
