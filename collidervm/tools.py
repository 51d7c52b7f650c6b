from __future__ import annotations
from .benchmark import benchmark_hash_rate
from .blake3_fragment import Blake3LimbFragment
from .classes import SignerInfo
from .codec import flow_id_to_prefix_nibbles
from .errors import SearchExhaustedError, tert, vert
from .functions import run_auth_script, run_script
from .interfaces import CanComputeDigestFragment, NibbleOrder, ScriptProtocol
from .oracle import find_valid_nonce, flow_message
from .parsing import compile_script, decompile_script, is_hex
from collections.abc import Hashable
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from hashlib import sha256
from sys import argv
import logging
import struct


F1_THRESHOLD = 100
F2_THRESHOLD = 200
MAX_SCRIPT_NUM = 2**31 - 1
MESSAGE_LEN = 12
LIMB_LEN = 4

_default_fragment = Blake3LimbFragment()


@dataclass(frozen=True)
class Script:
    """Represent a script as a pairing of source and byte code."""
    src: str = field()
    bytes: bytes = field()

    @classmethod
    def from_src(cls, src: str) -> Script:
        """Create an instance from assembly source."""
        return cls(src, compile_script(src))

    @classmethod
    def from_bytes(cls, code: bytes) -> Script:
        """Create an instance from byte code."""
        return cls('\n'.join(decompile_script(code)), code)

    def commitment(self) -> bytes:
        """Return a cryptographic commitment for the Script."""
        return sha256(self.bytes).digest()

    def __bytes__(self) -> bytes:
        """Return the byte code."""
        return self.bytes

    def __str__(self) -> str:
        """Return the assembly source."""
        return self.src

    def __add__(self, other: Script) -> Script:
        """Add two instances together."""
        tert(isinstance(other, Script), 'cannot add Script to non-Script')
        if not self.bytes:
            return other
        if not other.bytes:
            return self
        return Script(f'{self.src}\n{other.src}', self.bytes + other.bytes)


class GateRole(Enum):
    """The two toy gate roles: F1 requires x > 100, F2 requires x < 200."""
    F1 = 'F1'
    F2 = 'F2'

    @property
    def threshold(self) -> int:
        return F1_THRESHOLD if self is GateRole.F1 else F2_THRESHOLD

    @property
    def comparison(self) -> str:
        return 'OP_GREATERTHAN' if self is GateRole.F1 else 'OP_LESSTHAN'

    def accepts(self, input: int) -> bool:
        """Host-side equivalent of the threshold check. Inputs outside
            the 4-byte script number range fail the script, so they are
            rejected here too.
        """
        if not -MAX_SCRIPT_NUM <= input <= MAX_SCRIPT_NUM:
            return False
        if self is GateRole.F1:
            return input > self.threshold
        return input < self.threshold


def _role(role: GateRole|str) -> GateRole:
    if isinstance(role, GateRole):
        return role
    tert(type(role) is str, 'role must be GateRole or str')
    return GateRole(role.upper())

def combine_scripts(fragments: list[Script]) -> Script:
    """Combine scripts by concatenating their byte code."""
    combined = Script('', b'')
    for fragment in fragments:
        combined = combined + fragment
    return combined

def make_sig_check(pubkey: bytes) -> Script:
    """Make a fragment that verifies the signature on top of the stack
        against the embedded public key, failing the script otherwise.
    """
    tert(type(pubkey) is bytes, 'pubkey must be bytes')
    vert(len(pubkey) == 32, 'pubkey must be 32 bytes')
    return Script.from_src(f'x{pubkey.hex()} OP_CHECKSIGVERIFY')

def make_threshold_check(role: GateRole|str) -> Script:
    """Make a fragment that duplicates the input number and fails the
        script unless it passes the role's threshold comparison.
    """
    role = _role(role)
    return Script.from_src(f'OP_DUP {role.threshold} {role.comparison} OP_VERIFY')

def make_drop_input() -> Script:
    """Make a fragment that drops the input number, leaving the message
        limbs for the hash fragment.
    """
    return Script.from_src('OP_DROP')

def make_hash_fragment(
        hash_fragment: CanComputeDigestFragment,
        message_len: int = MESSAGE_LEN, limb_len: int = LIMB_LEN) -> Script:
    """Wrap the byte code of an injected hash fragment in a Script."""
    tert(isinstance(hash_fragment, CanComputeDigestFragment),
         'hash_fragment must implement CanComputeDigestFragment')
    return Script.from_bytes(hash_fragment.compute_script(message_len, limb_len))

def make_truncate(
        needed: int, order: NibbleOrder = NibbleOrder.FIRST_DEEPEST,
        digest_nibbles: int = 64) -> Script:
    """Make a fragment that keeps only the leading `needed` digest
        nibbles. With the first nibble deepest, the trailing nibbles are
        on top and get dropped. With the first nibble on top, the
        leading nibbles are parked on the alt stack while the rest are
        dropped.
    """
    vert(0 <= needed <= digest_nibbles, 'needed must be within the digest')
    to_drop = digest_nibbles - needed

    if order is NibbleOrder.FIRST_DEEPEST:
        return Script.from_src(' '.join(['OP_DROP'] * to_drop))

    return Script.from_src(' '.join(
        ['OP_TOALTSTACK'] * needed +
        ['OP_DROP'] * to_drop +
        ['OP_FROMALTSTACK'] * needed
    ))

def make_prefix_equalverify(
        prefix: list[int], order: NibbleOrder = NibbleOrder.FIRST_DEEPEST) -> Script:
    """Make a fragment that pops one nibble per expected nibble and
        fails the script on the first mismatch. The nibble compared
        first is the one on top of the stack: the last prefix nibble
        when the first digest nibble is deepest, the first one
        otherwise.
    """
    for nibble in prefix:
        tert(type(nibble) is int, 'each nibble must be int')
        vert(0 <= nibble <= 15, 'each nibble must be in [0, 15]')

    ordered = list(reversed(prefix)) if order is NibbleOrder.FIRST_DEEPEST \
        else list(prefix)

    return Script.from_src(' '.join(
        f'{nibble} OP_EQUALVERIFY' for nibble in ordered
    ))

def make_success() -> Script:
    """Make a fragment that pushes the success marker."""
    return Script.from_src('OP_TRUE')

def _assemble_locking_script(
        role: GateRole, pubkey: bytes, prefix: tuple[int, ...],
        hash_fragment: CanComputeDigestFragment, order: NibbleOrder,
        digest_nibbles: int) -> Script:
    return combine_scripts([
        make_sig_check(pubkey),
        make_threshold_check(role),
        make_drop_input(),
        make_hash_fragment(hash_fragment),
        make_truncate(len(prefix), order, digest_nibbles),
        make_prefix_equalverify(list(prefix), order),
        make_success(),
    ])

_assemble_locking_script_cached = lru_cache(maxsize=256)(_assemble_locking_script)

def build_locking_script(
        role: GateRole|str, pubkey: bytes, prefix: list[int],
        hash_fragment: CanComputeDigestFragment|None = None) -> Script:
    """Build the locking script for a gate role: check the signature,
        check the threshold, drop the input number, compute the digest
        of the 12-byte message, keep the prefix nibbles, compare them to
        the prefix, and push the success marker. Equal arguments always
        give byte-identical scripts. Results are cached per fragment and
        its current nibble order and digest width; a fragment whose
        compute_script output changes otherwise must not be hashable.
    """
    role = _role(role)
    hash_fragment = hash_fragment if hash_fragment is not None else _default_fragment
    prefix = tuple(prefix)

    args = (
        role, pubkey, prefix, hash_fragment,
        hash_fragment.nibble_order, hash_fragment.digest_nibbles,
    )

    if isinstance(hash_fragment, Hashable):
        return _assemble_locking_script_cached(*args)
    return _assemble_locking_script(*args)

def build_script_f1_blake3_locked(
        signer_pubkey: bytes, flow_id_prefix: list[int],
        hash_fragment: CanComputeDigestFragment|None = None) -> Script:
    """Build an F1 script with on-chain BLAKE3, checking x > 100 and the
        flow id prefix.
    """
    return build_locking_script(GateRole.F1, signer_pubkey, flow_id_prefix, hash_fragment)

def build_script_f2_blake3_locked(
        signer_pubkey: bytes, flow_id_prefix: list[int],
        hash_fragment: CanComputeDigestFragment|None = None) -> Script:
    """Build an F2 script with on-chain BLAKE3, checking x < 200 and the
        flow id prefix.
    """
    return build_locking_script(GateRole.F2, signer_pubkey, flow_id_prefix, hash_fragment)

def make_flow_witness(
        input: int, nonce: int, signature: bytes,
        hash_fragment: CanComputeDigestFragment|None = None,
        limb_len: int = LIMB_LEN) -> Script:
    """Make the unlocking script for a gate: the message limbs (input,
        then the nonce), the input as a number, and the signature on
        top.
    """
    tert(type(signature) is bytes, 'signature must be bytes')
    hash_fragment = hash_fragment if hash_fragment is not None else _default_fragment
    limbs = Script.from_bytes(
        hash_fragment.push_message_script(flow_message(input, nonce), limb_len)
    )
    return limbs + Script.from_src(f'{input} x{signature.hex()}')

def create_toy_sighash_message(
        locking_script: bytes|ScriptProtocol, value: int) -> bytes:
    """Create a minimal sighash for demonstration: sha256 of the locking
        script followed by the value as 8-byte little-endian.
    """
    tert(type(locking_script) is bytes or isinstance(locking_script, ScriptProtocol),
         'locking_script must be bytes or ScriptProtocol')
    tert(type(value) is int, 'value must be int')
    vert(0 <= value < 2**64, 'value must fit in 64 bits')
    return sha256(bytes(locking_script) + struct.pack('<Q', value)).digest()

def create_dummy_sighash_message(seed_bytes: bytes) -> bytes:
    """Create a 32-byte message to sign from arbitrary seed bytes."""
    tert(type(seed_bytes) is bytes, 'seed_bytes must be bytes')
    return sha256(seed_bytes).digest()

def check_flow_spend(
        locking_script: bytes|ScriptProtocol, witness: bytes|ScriptProtocol,
        sighash: bytes) -> bool:
    """Run witness + locking script with the sighash in the cache.
        Returns True iff the predicate is satisfied.
    """
    return run_auth_script(bytes(witness) + bytes(locking_script), {'sighash': sighash})


def cli_help() -> str:
    """Return CLI help text."""
    name = argv[0]
    return '\n'.join([
        f'Usage: {name} [method] [options]',
        '\tcalibrate [seconds] -- measure the local BLAKE3 hash rate',
        '\tfind b l input -- find the first nonce giving a valid flow id',
        '\tlock f1|f2 b l input [seed_hex] -- find a nonce and print the '
        'locking script for the gate role',
        '\tdecompile hex -- decompile hex byte code and print it',
        '\tdemo -- run the F1 gate end to end for input 123, b=16, l=4',
        '\thelp -- print this message',
    ])

def _clert(condition: bool, message: str = ''):
    """CLI assert: print error message and exit if condition fails."""
    if not condition:
        message = f'{message}\n{cli_help()}' if message else cli_help()
        print(message)
        exit(1)

def _parse_ints(args: list[str], count: int) -> list[int]:
    _clert(len(args) >= count, f'Must supply {count} integer parameters.')
    _clert(all(arg.isdigit() for arg in args[:count]), 'Parameters must be integers.')
    return [int(arg) for arg in args[:count]]

def _find_or_exit(input: int, b_bits: int, l_bits: int):
    _clert(b_bits <= 32 and b_bits % 8 == 0, 'b must be a multiple of 8 <= 32.')
    _clert(l_bits <= b_bits, 'l must be <= b.')
    try:
        return find_valid_nonce(input, b_bits, l_bits)
    except SearchExhaustedError as e:
        _clert(False, str(e))

def _run_demo() -> None:
    b_bits, l_bits, input = 16, 4, 123
    signer = SignerInfo.generate(0)
    result = _find_or_exit(input, b_bits, l_bits)
    prefix = flow_id_to_prefix_nibbles(result.flow_id, b_bits)
    locking_script = build_script_f1_blake3_locked(signer.pubkey, prefix)
    sighash = create_dummy_sighash_message(bytes(prefix))
    witness = make_flow_witness(input, result.nonce, signer.sign(sighash))
    _, stack, _ = run_script(bytes(witness) + bytes(locking_script), {'sighash': sighash})
    print(f'flow_id: {result.flow_id}')
    print(f'flow_id prefix nibbles: {prefix}')
    print(f'nonce: {result.nonce}')
    print(f'hash: {result.digest.hex()}')
    print(f'locking script: {len(locking_script.bytes)} bytes')
    print(f'final stack: {[item.hex() for item in stack.list()]}')
    print(f'F1 => success={check_flow_spend(locking_script, witness, sighash)}')

def run_cli() -> None:
    """Run the simple CLI tool. More advanced functionality requires
        programmatic access.
    """
    logging.basicConfig(level=logging.INFO)
    method = argv[1] if len(argv) > 1 else 'help'
    match method:
        case 'help' | '--help' | '?' | '-?' | '-h':
            print(cli_help())
        case 'calibrate':
            seconds = float(argv[2]) if len(argv) > 2 else 5.0
            result = benchmark_hash_rate(seconds)
            print(f'~{result.rate:.2f} H/s')
        case 'find':
            b_bits, l_bits, input = _parse_ints(argv[2:], 3)
            result = _find_or_exit(input, b_bits, l_bits)
            print(f'nonce: {result.nonce}')
            print(f'flow_id: {result.flow_id}')
            print(f'hash: {result.digest.hex()}')
        case 'lock':
            _clert(len(argv) >= 3 and argv[2].upper() in ('F1', 'F2'),
                'Must supply gate role f1 or f2.')
            b_bits, l_bits, input = _parse_ints(argv[3:], 3)
            seed = None
            if len(argv) > 6:
                _clert(is_hex(argv[6]) and len(argv[6]) == 64,
                    'seed_hex must be 32 bytes of hexadecimal.')
                seed = bytes.fromhex(argv[6])
            signer = SignerInfo.generate(0, seed)
            result = _find_or_exit(input, b_bits, l_bits)
            prefix = flow_id_to_prefix_nibbles(result.flow_id, b_bits)
            script = build_locking_script(argv[2], signer.pubkey, prefix)
            print(f'pubkey: {signer.pubkey.hex()}')
            print(f'nonce: {result.nonce}')
            print(script.bytes.hex())
        case 'decompile':
            _clert(len(argv) >= 3 and is_hex(argv[2]), 'Missing hex parameter.')
            print('\n'.join(decompile_script(bytes.fromhex(argv[2]))))
        case 'demo':
            _run_demo()
        case _:
            _clert(False, f'Unknown method: {method}')
