from __future__ import annotations
from .classes import Tape, Stack, verify_signature
from .errors import ScriptExecutionError, tert, vert, sert
from .interfaces import ScriptProtocol
from typing import Callable


def int_to_script_num(number: int) -> bytes:
    """Convert from signed int to the minimal little-endian
        sign-magnitude encoding used for stack numbers.
    """
    tert(type(number) is int, 'number must be int')
    if number == 0:
        return b''

    negative = number < 0
    magnitude = abs(number)
    result = bytearray()

    while magnitude:
        result.append(magnitude & 0xff)
        magnitude >>= 8

    if result[-1] & 0x80:
        result.append(0x80 if negative else 0x00)
    elif negative:
        result[-1] |= 0x80

    return bytes(result)

def script_num_to_int(number: bytes, max_size: int = 4) -> int:
    """Convert from a minimally encoded stack number to a signed int.
        Raises ScriptExecutionError for oversized or non-minimal
        encodings.
    """
    tert(type(number) is bytes, 'number must be bytes')
    sert(len(number) <= max_size, 'script number overflow')
    if len(number) == 0:
        return 0

    if number[-1] & 0x7f == 0:
        sert(len(number) > 1 and number[-2] & 0x80,
            'non-minimally encoded script number')

    value = int.from_bytes(number, 'little')
    sign_bit = 0x80 << (8 * (len(number) - 1))

    if value & sign_bit:
        return -(value ^ sign_bit)
    return value

def bytes_to_bool(val: bytes) -> bool:
    """Return True if any bit is set, except for negative zero."""
    for i, byte in enumerate(val):
        if byte != 0:
            return not (i == len(val) - 1 and byte == 0x80)
    return False

def bool_to_bytes(val: bool) -> bytes:
    return b'\x01' if val else b''

def encode_push_data(data: bytes) -> bytes:
    """Encode a minimal push of arbitrary data."""
    tert(type(data) is bytes, 'data must be bytes')
    size = len(data)
    if size == 0:
        return b'\x00'
    if size <= 75:
        return bytes([size]) + data
    if size <= 0xff:
        return b'\x4c' + size.to_bytes(1, 'little') + data
    if size <= 0xffff:
        return b'\x4d' + size.to_bytes(2, 'little') + data
    vert(size <= 0xffffffff, 'data too large to push')
    return b'\x4e' + size.to_bytes(4, 'little') + data

def encode_push_int(number: int) -> bytes:
    """Encode a minimal push of a signed int: OP_0, OP_1NEGATE and
        OP_1-OP_16 for small values, a number push otherwise.
    """
    tert(type(number) is int, 'number must be int')
    if number == 0:
        return b'\x00'
    if number == -1:
        return b'\x4f'
    if 1 <= number <= 16:
        return bytes([0x50 + number])
    return encode_push_data(int_to_script_num(number))


def OP_0(tape: Tape, stack: Stack, cache: dict) -> None:
    """Puts an empty item (false, the number 0) onto the stack."""
    stack.put(b'')

def _make_push_bytes(size: int) -> Callable[[Tape, Stack, dict], None]:
    def OP_PUSHBYTES(tape: Tape, stack: Stack, cache: dict) -> None:
        stack.put(tape.read(size))
    OP_PUSHBYTES.__doc__ = f'Read the next {size} bytes from the tape; ' + \
        'put them onto the stack.'
    return OP_PUSHBYTES

def OP_PUSHDATA1(tape: Tape, stack: Stack, cache: dict) -> None:
    """Read the next byte from the tape, interpreting as an unsigned int;
        take that many bytes from the tape; put them onto the stack.
    """
    size = int.from_bytes(tape.read(1), 'little')
    stack.put(tape.read(size))

def OP_PUSHDATA2(tape: Tape, stack: Stack, cache: dict) -> None:
    """Read the next 2 bytes from the tape, interpreting as a
        little-endian unsigned int; take that many bytes from the tape;
        put them onto the stack.
    """
    size = int.from_bytes(tape.read(2), 'little')
    stack.put(tape.read(size))

def OP_PUSHDATA4(tape: Tape, stack: Stack, cache: dict) -> None:
    """Read the next 4 bytes from the tape, interpreting as a
        little-endian unsigned int; take that many bytes from the tape;
        put them onto the stack.
    """
    size = int.from_bytes(tape.read(4), 'little')
    stack.put(tape.read(size))

def OP_1NEGATE(tape: Tape, stack: Stack, cache: dict) -> None:
    """Puts the number -1 onto the stack."""
    stack.put(int_to_script_num(-1))

def _make_push_number(number: int) -> Callable[[Tape, Stack, dict], None]:
    def OP_N(tape: Tape, stack: Stack, cache: dict) -> None:
        stack.put(int_to_script_num(number))
    OP_N.__doc__ = f'Puts the number {number} onto the stack.'
    return OP_N

def OP_NOP(tape: Tape, stack: Stack, cache: dict) -> None:
    """Does nothing."""
    ...

def OP_VERIFY(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull a value from the stack; evaluate it as a bool; and raise a
        ScriptExecutionError if it is False.
    """
    sert(bytes_to_bool(stack.get()), 'OP_VERIFY check failed')

def OP_RETURN(tape: Tape, stack: Stack, cache: dict) -> None:
    """Ends the script in failure."""
    sert(False, 'OP_RETURN called')

def _altstack(cache: dict) -> Stack:
    if 'altstack' not in cache:
        cache['altstack'] = Stack()
    return cache['altstack']

def OP_TOALTSTACK(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull a value from the stack; put it onto the alt stack."""
    _altstack(cache).put(stack.get())

def OP_FROMALTSTACK(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull a value from the alt stack; put it onto the stack."""
    altstack = _altstack(cache)
    sert(not altstack.empty(), 'OP_FROMALTSTACK alt stack is empty')
    stack.put(altstack.get())

def OP_DEPTH(tape: Tape, stack: Stack, cache: dict) -> None:
    """Put the number of items on the stack onto the stack."""
    stack.put(int_to_script_num(len(stack)))

def OP_DROP(tape: Tape, stack: Stack, cache: dict) -> None:
    """Remove the top item from the stack."""
    stack.get()

def OP_DUP(tape: Tape, stack: Stack, cache: dict) -> None:
    """Duplicate the top item of the stack."""
    item = stack.get()
    stack.put(item)
    stack.put(item)

def OP_SWAP(tape: Tape, stack: Stack, cache: dict) -> None:
    """Swap the top two items of the stack."""
    first, second = stack.get(), stack.get()
    stack.put(first)
    stack.put(second)

def OP_EQUAL(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull 2 items from the stack; compare them; put the bool result
        onto the stack.
    """
    item1, item2 = stack.get(), stack.get()
    stack.put(bool_to_bytes(item1 == item2))

def OP_EQUALVERIFY(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull 2 items from the stack; raise a ScriptExecutionError if they
        differ.
    """
    item1, item2 = stack.get(), stack.get()
    sert(item1 == item2, 'OP_EQUALVERIFY check failed')

def OP_LESSTHAN(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull b then a from the stack, interpreting as numbers; put the
        bool result of a < b onto the stack.
    """
    b = script_num_to_int(stack.get())
    a = script_num_to_int(stack.get())
    stack.put(bool_to_bytes(a < b))

def OP_GREATERTHAN(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull b then a from the stack, interpreting as numbers; put the
        bool result of a > b onto the stack.
    """
    b = script_num_to_int(stack.get())
    a = script_num_to_int(stack.get())
    stack.put(bool_to_bytes(a > b))

def OP_CHECKSIG(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull a public key, then a signature from the stack; check the
        signature against the key and the message at cache['sighash'];
        put the bool result onto the stack.
    """
    pubkey = stack.get()
    sig = stack.get()
    sert(len(pubkey) == 32, 'OP_CHECKSIG invalid pubkey encountered')
    sert('sighash' in cache, 'OP_CHECKSIG no sighash in cache')
    stack.put(bool_to_bytes(verify_signature(pubkey, cache['sighash'], sig)))

def OP_CHECKSIGVERIFY(tape: Tape, stack: Stack, cache: dict) -> None:
    """Runs OP_CHECKSIG, then raises a ScriptExecutionError if the
        signature did not verify.
    """
    OP_CHECKSIG(tape, stack, cache)
    sert(bytes_to_bool(stack.get()), 'OP_CHECKSIGVERIFY check failed')

def _make_invalid(code: int) -> Callable[[Tape, Stack, dict], None]:
    def OP_INVALID(tape: Tape, stack: Stack, cache: dict) -> None:
        sert(False, f'unassigned opcode {code}')
    return OP_INVALID


opcodes: dict[int, tuple[str, Callable]] = {
    0x00: ('OP_0', OP_0),
    **{
        size: (f'OP_PUSHBYTES_{size}', _make_push_bytes(size))
        for size in range(1, 76)
    },
    0x4c: ('OP_PUSHDATA1', OP_PUSHDATA1),
    0x4d: ('OP_PUSHDATA2', OP_PUSHDATA2),
    0x4e: ('OP_PUSHDATA4', OP_PUSHDATA4),
    0x4f: ('OP_1NEGATE', OP_1NEGATE),
    **{
        0x50 + n: (f'OP_{n}', _make_push_number(n))
        for n in range(1, 17)
    },
    0x61: ('OP_NOP', OP_NOP),
    0x69: ('OP_VERIFY', OP_VERIFY),
    0x6a: ('OP_RETURN', OP_RETURN),
    0x6b: ('OP_TOALTSTACK', OP_TOALTSTACK),
    0x6c: ('OP_FROMALTSTACK', OP_FROMALTSTACK),
    0x74: ('OP_DEPTH', OP_DEPTH),
    0x75: ('OP_DROP', OP_DROP),
    0x76: ('OP_DUP', OP_DUP),
    0x7c: ('OP_SWAP', OP_SWAP),
    0x87: ('OP_EQUAL', OP_EQUAL),
    0x88: ('OP_EQUALVERIFY', OP_EQUALVERIFY),
    0x9f: ('OP_LESSTHAN', OP_LESSTHAN),
    0xa0: ('OP_GREATERTHAN', OP_GREATERTHAN),
    0xac: ('OP_CHECKSIG', OP_CHECKSIG),
    0xad: ('OP_CHECKSIGVERIFY', OP_CHECKSIGVERIFY),
}

invalid_opcodes = {
    code: (f'OP_INVALID_{code}', _make_invalid(code))
    for code in range(256) if code not in opcodes
}

opcodes_inverse = {
    opcodes[key][0]: (key, opcodes[key][1]) for key in opcodes
}

invalid_opcodes_inverse = {
    invalid_opcodes[key][0]: (key, invalid_opcodes[key][1])
    for key in invalid_opcodes
}

opcode_aliases = {
    k[3:]: k for k, _ in opcodes_inverse.items()
}

opcode_aliases['OP_FALSE'] = 'OP_0'
opcode_aliases['FALSE'] = 'OP_0'
opcode_aliases['OP_TRUE'] = 'OP_1'
opcode_aliases['TRUE'] = 'OP_1'
opcode_aliases['OP_CSV'] = 'OP_CHECKSIGVERIFY'
opcode_aliases['CSV'] = 'OP_CHECKSIGVERIFY'


def add_opcode(code: int, name: str, function: Callable) -> None:
    """Adds an OP implementation with the code, name, and function."""
    tert(type(code) is int, 'code must be int')
    tert(type(name) is str, 'name must be str')
    tert(callable(function), 'function must be callable')
    vert(code not in opcodes, f'{code} already assigned to {opcodes.get(code, ("",))[0]}')
    vert(0 <= code < 256, 'code must be <256')
    vert(name[:3].upper() == 'OP_', 'name must start with OP_')
    name = name.upper()
    opcodes[code] = (name, function)
    opcodes_inverse[name] = (code, function)
    opcode_aliases[name[3:]] = name

    if code in invalid_opcodes:
        invalid_name = invalid_opcodes[code][0]
        del invalid_opcodes[code]
        del invalid_opcodes_inverse[invalid_name]

def run_tape(tape: Tape, stack: Stack, cache: dict) -> None:
    """Run the given tape using the stack and cache."""
    while not tape.has_terminated():
        op_code = int.from_bytes(tape.read(1), 'big')
        if op_code in opcodes:
            op = opcodes[op_code][1]
        else:
            op = invalid_opcodes[op_code][1]
        op(tape, stack, cache)

def run_script(script: bytes|ScriptProtocol, cache_vals: dict = {},
               stack: Stack|None = None) -> tuple[Tape, Stack, dict]:
    """Run the given script byte code. Returns a tape, stack, and dict.
        Raises ScriptExecutionError if execution fails.
    """
    tert(type(script) is bytes or isinstance(script, ScriptProtocol),
         'script must be bytes or ScriptProtocol implementation')
    script = bytes(script)
    tape = Tape(script)
    stack = stack if stack is not None else Stack()
    cache = {**cache_vals}
    run_tape(tape, stack, cache)
    return (tape, stack, cache)

def run_auth_script(script: bytes|ScriptProtocol, cache_vals: dict = {}) -> bool:
    """Run the given auth script byte code. Returns True iff the stack
        has a single true value after script execution and no errors
        were raised; otherwise, returns False.
    """
    try:
        tape, stack, cache = run_script(script, cache_vals)
    except (ScriptExecutionError, ValueError, TypeError):
        return False

    return tape.has_terminated() and len(stack) == 1 and \
        bytes_to_bool(stack.get())
