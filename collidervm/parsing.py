from __future__ import annotations
from .classes import Tape
from .errors import yert, vert, SyntaxError
from .functions import (
    opcodes,
    opcodes_inverse,
    opcode_aliases,
    invalid_opcodes,
    invalid_opcodes_inverse,
    encode_push_data,
    encode_push_int,
)
import re


_push_data_ops = {
    'OP_PUSHDATA1': (0x4c, 1),
    'OP_PUSHDATA2': (0x4d, 2),
    'OP_PUSHDATA4': (0x4e, 4),
}


def is_hex(s: str) -> bool:
    """Check if a str is hexadecimal."""
    return len(s) % 2 == 0 and re.fullmatch(r'[0-9a-fA-F]*', s) is not None

def is_int(s: str) -> bool:
    """Check if a str is a decimal integer."""
    return re.fullmatch(r'-?[0-9]+', s) is not None

def get_symbols(script: str) -> list[str]:
    """Split the script source into symbols, dropping `# comments #`."""
    vert(type(script) is str, 'script must be str')
    yert(script.count('#') % 2 == 0, 'unterminated comment')
    script = re.sub(r'#[^#]*#', ' ', script)
    return script.split()

def _resolve_name(symbol: str) -> str|None:
    name = symbol.upper()
    name = opcode_aliases.get(name, name)
    if name in opcodes_inverse or name in invalid_opcodes_inverse:
        return name
    return None

def _assemble_push(name: str, argument: str) -> bytes:
    """Assemble an explicit push op and its hex argument, keeping the
        requested encoding even when it is not minimal.
    """
    argument = argument[1:] if argument[:1] in ('x', 'X') else argument
    yert(is_hex(argument), f'{name} argument must be hexadecimal')
    data = bytes.fromhex(argument)

    if name in _push_data_ops:
        code, size = _push_data_ops[name]
        yert(len(data) < 2**(8*size), f'{name} data too large')
        return bytes([code]) + len(data).to_bytes(size, 'little') + data

    code = opcodes_inverse[name][0]
    yert(len(data) == code, f'{name} requires exactly {code} bytes')
    return bytes([code]) + data

def assemble(symbols: list[str]) -> bytes:
    """Assemble a list of symbols into byte code."""
    code = []
    index = 0

    while index < len(symbols):
        symbol = symbols[index]
        name = _resolve_name(symbol)

        if name is not None and (
                name in _push_data_ops or name.startswith('OP_PUSHBYTES_')
            ):
            yert(index + 1 < len(symbols), f'{name} requires a hex argument')
            code.append(_assemble_push(name, symbols[index + 1]))
            index += 2
            continue

        if name is not None:
            if name in opcodes_inverse:
                code.append(bytes([opcodes_inverse[name][0]]))
            else:
                code.append(bytes([invalid_opcodes_inverse[name][0]]))
        elif is_int(symbol):
            code.append(encode_push_int(int(symbol)))
        elif symbol[:1] in ('x', 'X') and is_hex(symbol[1:]):
            code.append(encode_push_data(bytes.fromhex(symbol[1:])))
        else:
            raise SyntaxError(f'unrecognized symbol: {symbol}')

        index += 1

    return b''.join(code)

def compile_script(script: str) -> bytes:
    """Compile the given human-readable script into byte code."""
    return assemble(get_symbols(script))

def decompile_script(script: bytes) -> list[str]:
    """Decompile the byte code into human-readable script, one op per
        line.
    """
    vert(type(script) is bytes, 'input script must be bytes')
    tape = Tape(script)
    code_lines = []

    while not tape.has_terminated():
        op_code = tape.read(1)[0]
        if op_code in opcodes:
            op_name = opcodes[op_code][0]
        else:
            op_name = invalid_opcodes[op_code][0]

        if 0 < op_code <= 75:
            code_lines.append(f'{op_name} {tape.read(op_code).hex()}')
        elif op_name in _push_data_ops:
            _, size = _push_data_ops[op_name]
            length = int.from_bytes(tape.read(size), 'little')
            code_lines.append(f'{op_name} x{tape.read(length).hex()}')
        else:
            code_lines.append(op_name)

    return code_lines
