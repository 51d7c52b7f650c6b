from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey
from secrets import token_bytes
from .errors import pert, sert, tert, vert


@dataclass
class Tape:
    """Class for reading the byte code of the script."""
    data: bytes
    pointer: int = field(default=0)

    def read(self, size: int, move_pointer: bool = True) -> bytes:
        """Read symbols from the data."""
        sert(self.pointer + size <= len(self.data),
            'cannot read that many bytes')
        data = self.data[self.pointer:self.pointer+size]

        if move_pointer:
            self.move_pointer(size)

        return data

    def move_pointer(self, n: int) -> int:
        """Move the pointer the given number of places."""
        sert(self.pointer + n <= len(self.data), 'cannot move pointer that far')
        self.pointer += n
        return self.pointer

    def reset_pointer(self) -> None:
        """Reset the pointer to 0."""
        self.pointer = 0

    def has_terminated(self) -> bool:
        """Return whether or not the tape has terminated."""
        return self.pointer >= len(self.data)

    def remaining(self) -> int:
        """Return the remaining number of symbols left in the tape."""
        return len(self.data) - self.pointer


class Stack:
    """Class to implement a Stack of bytes items."""
    deque: deque[bytes]
    max_items: int
    max_item_size: int

    def __init__(self, max_items: int = 1000, max_item_size: int = 520) -> None:
        """Initialize an empty Stack."""
        self.max_items = max_items
        self.max_item_size = max_item_size
        self.deque = deque(maxlen=self.max_items)

    def get(self) -> bytes:
        """Get the top item of the Stack. Raises ScriptExecutionError if
            the Stack is empty.
        """
        sert(len(self.deque) > 0, 'cannot get from empty Stack')
        return self.deque.pop()

    def put(self, item: bytes) -> None:
        """Put an item onto the Stack. Raises ScriptExecutionError if
            the item is too large or if the Stack is full; raises
            TypeError if the item is not bytes.
        """
        tert(type(item) is bytes, 'Stack item must be bytes')
        sert(len(item) <= self.max_item_size, 'Stack item size too large')
        sert(len(self.deque) < self.max_items, 'cannot put onto full Stack')
        self.deque.append(item)

    def size(self) -> int:
        """Return the number of bytes currently stored on the Stack."""
        return sum([len(item) for item in self.deque])

    def __len__(self) -> int:
        """Return the current number of items in the Stack."""
        return len(self.deque)

    def list(self) -> list:
        """Returns a list containing the Stack items, deepest first."""
        return list(self.deque)

    def empty(self) -> bool:
        """Return True if there are no items on the Stack. Otherwise,
            return False.
        """
        return len(self) == 0

    def peek(self, index: int = 0) -> bytes:
        """Returns the item of the stack at the given index without
            removing it.
        """
        sert(index < len(self), 'cannot peek past the bottom of the Stack')
        index = len(self) - index - 1
        return self.deque[index]


@dataclass(frozen=True)
class ColliderVmConfig:
    """ColliderVM protocol parameters: n participants, m flows, log2 of
        the flow id space l, prefix bit width b, and k required flows.
        Construction does not validate; call `validate` before use.
    """
    n: int
    m: int
    l: int
    b: int
    k: int

    def validate(self) -> ColliderVmConfig:
        """Raise EncodingPreconditionError if b is not a multiple of 8
            no larger than 32; raise ValueError if l > b or any count is
            negative. Returns self.
        """
        pert(self.b <= 32, 'b must be <= 32')
        pert(self.b % 8 == 0, 'b must be a multiple of 8')
        vert(self.l <= self.b, 'l must be <= b')
        vert(min(self.n, self.m, self.l, self.b, self.k) >= 0,
             'parameters must not be negative')
        return self

    def expected_attempts(self) -> int:
        """Return the expected number of nonces tried per search."""
        return 1 << max(self.b - self.l, 0)


@dataclass(frozen=True)
class FlowIdResult:
    """A nonce, the full digest it produced, and the flow id derived
        from that digest.
    """
    nonce: int
    digest: bytes
    flow_id: int


@dataclass
class SignerInfo:
    """Key material for one signer."""
    id: int
    signing_key: SigningKey = field(repr=False)

    @property
    def verify_key(self) -> VerifyKey:
        return self.signing_key.verify_key

    @property
    def pubkey(self) -> bytes:
        return bytes(self.signing_key.verify_key)

    def sign(self, message: bytes) -> bytes:
        """Return the 64-byte signature over message."""
        return self.signing_key.sign(message).signature

    @classmethod
    def generate(cls, id: int, seed: bytes|None = None) -> SignerInfo:
        """Create an instance from a 32-byte seed or a random one."""
        seed = seed if seed is not None else token_bytes(32)
        tert(type(seed) is bytes, 'seed must be bytes')
        vert(len(seed) == 32, 'seed must be 32 bytes')
        return cls(id, SigningKey(seed))


@dataclass
class OperatorInfo(SignerInfo):
    """Key material for one operator."""
    ...


@dataclass(frozen=True)
class TxTemplate:
    """Toy transaction template: a locking script and a value."""
    locking_script: bytes
    value: int


@dataclass
class PresignedStep:
    """A single step in a presigned flow. Signatures map signer pubkey
        to signature.
    """
    tx_template: TxTemplate
    sighash_message: bytes
    signatures: dict[bytes, bytes] = field(default_factory=dict)
    locking_script: bytes = field(default=b'')

    def add_signature(self, pubkey: bytes, signature: bytes) -> None:
        """Verify the signature over the sighash message and store it.
            Raises ValueError if it does not verify.
        """
        tert(type(pubkey) is bytes, 'pubkey must be bytes')
        tert(type(signature) is bytes, 'signature must be bytes')
        vert(verify_signature(pubkey, self.sighash_message, signature),
             'invalid signature for step')
        self.signatures[pubkey] = signature

    def is_complete(self, signers: list[SignerInfo]) -> bool:
        """Return True if every signer has a valid signature stored."""
        for signer in signers:
            sig = self.signatures.get(signer.pubkey)
            if sig is None:
                return False
            if not verify_signature(signer.pubkey, self.sighash_message, sig):
                return False
        return True


@dataclass
class PresignedFlow:
    """The ordered steps presigned for a specific flow id."""
    flow_id: int
    steps: list[PresignedStep] = field(default_factory=list)

    def add_step(self, step: PresignedStep) -> None:
        tert(isinstance(step, PresignedStep), 'step must be PresignedStep')
        self.steps.append(step)

    def is_active(self, signers: list[SignerInfo]) -> bool:
        """A flow is active once it has steps and every step carries a
            valid signature from every signer.
        """
        return len(self.steps) > 0 and all(
            step.is_complete(signers) for step in self.steps
        )


def verify_signature(pubkey: bytes, message: bytes, signature: bytes) -> bool:
    """Return True if signature is a valid Ed25519 signature of message
        by pubkey; otherwise, return False.
    """
    if len(pubkey) != 32 or len(signature) != 64:
        return False
    try:
        VerifyKey(pubkey).verify(message, signature)
        return True
    except (BadSignatureError, ValueError, TypeError):
        return False
