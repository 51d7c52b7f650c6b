from __future__ import annotations
from context import classes, errors, functions
from hashlib import sha256
from nacl.signing import SigningKey
import unittest


class TestNumberEncoding(unittest.TestCase):
    def test_int_to_script_num_uses_minimal_sign_magnitude(self):
        assert functions.int_to_script_num(0) == b''
        assert functions.int_to_script_num(1) == b'\x01'
        assert functions.int_to_script_num(-1) == b'\x81'
        assert functions.int_to_script_num(100) == b'\x64'
        assert functions.int_to_script_num(127) == b'\x7f'
        assert functions.int_to_script_num(128) == b'\x80\x00'
        assert functions.int_to_script_num(-128) == b'\x80\x80'
        assert functions.int_to_script_num(200) == b'\xc8\x00'
        assert functions.int_to_script_num(256) == b'\x00\x01'

    def test_script_num_to_int_inverts_int_to_script_num(self):
        for number in (0, 1, -1, 15, 100, 127, 128, -128, 200, 255, 256,
                       -32768, 2**31 - 1, -(2**31 - 1)):
            encoded = functions.int_to_script_num(number)
            assert functions.script_num_to_int(encoded) == number, number

    def test_script_num_to_int_rejects_non_minimal_encodings(self):
        with self.assertRaises(errors.ScriptExecutionError) as e:
            functions.script_num_to_int(b'\x00')
        assert str(e.exception) == 'non-minimally encoded script number'

        with self.assertRaises(errors.ScriptExecutionError):
            functions.script_num_to_int(b'\x01\x00')

        with self.assertRaises(errors.ScriptExecutionError):
            functions.script_num_to_int(b'\x80')

    def test_script_num_to_int_rejects_oversized_numbers(self):
        with self.assertRaises(errors.ScriptExecutionError) as e:
            functions.script_num_to_int(b'\x01\x02\x03\x04\x05')
        assert str(e.exception) == 'script number overflow'

    def test_bytes_to_bool(self):
        assert functions.bytes_to_bool(b'\x01')
        assert functions.bytes_to_bool(b'\x00\x01')
        assert functions.bytes_to_bool(b'\x80\x00')
        assert not functions.bytes_to_bool(b'')
        assert not functions.bytes_to_bool(b'\x00\x00')
        assert not functions.bytes_to_bool(b'\x80')
        assert not functions.bytes_to_bool(b'\x00\x80')

    def test_encode_push_int(self):
        assert functions.encode_push_int(0) == b'\x00'
        assert functions.encode_push_int(-1) == b'\x4f'
        assert functions.encode_push_int(1) == b'\x51'
        assert functions.encode_push_int(15) == b'\x5f'
        assert functions.encode_push_int(16) == b'\x60'
        assert functions.encode_push_int(17) == b'\x01\x11'
        assert functions.encode_push_int(100) == b'\x01\x64'
        assert functions.encode_push_int(200) == b'\x02\xc8\x00'

    def test_encode_push_data(self):
        assert functions.encode_push_data(b'') == b'\x00'
        assert functions.encode_push_data(b'\xab') == b'\x01\xab'
        assert functions.encode_push_data(b'\x11' * 75)[:1] == b'\x4b'
        assert functions.encode_push_data(b'\x11' * 76)[:2] == b'\x4c\x4c'
        assert functions.encode_push_data(b'\x11' * 300)[:3] == b'\x4d\x2c\x01'


class TestOps(unittest.TestCase):
    tape: classes.Tape
    stack: classes.Stack
    cache: dict

    def setUp(self) -> None:
        self.tape = classes.Tape(b'')
        self.stack = classes.Stack()
        self.cache = {}
        return super().setUp()

    def test_push_ops_read_from_tape(self):
        self.tape = classes.Tape(b'\xab\xcd')
        functions.opcodes[2][1](self.tape, self.stack, self.cache)
        assert self.stack.get() == b'\xab\xcd'

        self.tape = classes.Tape(b'\x02\xab\xcd')
        functions.OP_PUSHDATA1(self.tape, self.stack, self.cache)
        assert self.stack.get() == b'\xab\xcd'

        self.tape = classes.Tape(b'\x02\x00\xab\xcd')
        functions.OP_PUSHDATA2(self.tape, self.stack, self.cache)
        assert self.stack.get() == b'\xab\xcd'

        self.tape = classes.Tape(b'\x02\x00\x00\x00\xab\xcd')
        functions.OP_PUSHDATA4(self.tape, self.stack, self.cache)
        assert self.stack.get() == b'\xab\xcd'

    def test_number_ops_put_numbers_onto_stack(self):
        functions.OP_0(self.tape, self.stack, self.cache)
        assert self.stack.get() == b''
        functions.OP_1NEGATE(self.tape, self.stack, self.cache)
        assert self.stack.get() == b'\x81'
        for n in range(1, 17):
            functions.opcodes[0x50 + n][1](self.tape, self.stack, self.cache)
            assert self.stack.get() == bytes([n])
        assert self.stack.empty()

    def test_OP_VERIFY_raises_error_for_false(self):
        self.stack.put(b'\x01')
        functions.OP_VERIFY(self.tape, self.stack, self.cache)
        assert self.stack.empty()

        self.stack.put(b'')
        with self.assertRaises(errors.ScriptExecutionError) as e:
            functions.OP_VERIFY(self.tape, self.stack, self.cache)
        assert str(e.exception) == 'OP_VERIFY check failed'

    def test_OP_RETURN_always_fails(self):
        with self.assertRaises(errors.ScriptExecutionError):
            functions.OP_RETURN(self.tape, self.stack, self.cache)

    def test_altstack_ops_move_items(self):
        self.stack.put(b'1')
        self.stack.put(b'2')
        functions.OP_TOALTSTACK(self.tape, self.stack, self.cache)
        functions.OP_TOALTSTACK(self.tape, self.stack, self.cache)
        assert self.stack.empty()
        functions.OP_FROMALTSTACK(self.tape, self.stack, self.cache)
        functions.OP_FROMALTSTACK(self.tape, self.stack, self.cache)
        assert self.stack.list() == [b'1', b'2']

        with self.assertRaises(errors.ScriptExecutionError) as e:
            functions.OP_FROMALTSTACK(self.tape, self.stack, self.cache)
        assert str(e.exception) == 'OP_FROMALTSTACK alt stack is empty'

    def test_stack_shuffling_ops(self):
        self.stack.put(b'1')
        self.stack.put(b'2')
        functions.OP_DEPTH(self.tape, self.stack, self.cache)
        assert self.stack.get() == b'\x02'
        functions.OP_SWAP(self.tape, self.stack, self.cache)
        assert self.stack.list() == [b'2', b'1']
        functions.OP_DUP(self.tape, self.stack, self.cache)
        assert self.stack.list() == [b'2', b'1', b'1']
        functions.OP_DROP(self.tape, self.stack, self.cache)
        functions.OP_DROP(self.tape, self.stack, self.cache)
        assert self.stack.list() == [b'2']

    def test_OP_EQUAL_and_OP_EQUALVERIFY(self):
        self.stack.put(b'123')
        self.stack.put(b'123')
        functions.OP_EQUAL(self.tape, self.stack, self.cache)
        assert self.stack.get() == b'\x01'

        self.stack.put(b'')
        self.stack.put(b'\x00')
        functions.OP_EQUAL(self.tape, self.stack, self.cache)
        assert self.stack.get() == b''

        self.stack.put(b'\x05')
        self.stack.put(b'\x05')
        functions.OP_EQUALVERIFY(self.tape, self.stack, self.cache)
        assert self.stack.empty()

        self.stack.put(b'\x05')
        self.stack.put(b'\x06')
        with self.assertRaises(errors.ScriptExecutionError) as e:
            functions.OP_EQUALVERIFY(self.tape, self.stack, self.cache)
        assert str(e.exception) == 'OP_EQUALVERIFY check failed'
        assert self.stack.empty()

    def test_comparison_ops_compare_second_item_to_top_item(self):
        self.stack.put(functions.int_to_script_num(123))
        self.stack.put(functions.int_to_script_num(100))
        functions.OP_GREATERTHAN(self.tape, self.stack, self.cache)
        assert self.stack.get() == b'\x01'

        self.stack.put(functions.int_to_script_num(50))
        self.stack.put(functions.int_to_script_num(100))
        functions.OP_GREATERTHAN(self.tape, self.stack, self.cache)
        assert self.stack.get() == b''

        self.stack.put(functions.int_to_script_num(150))
        self.stack.put(functions.int_to_script_num(200))
        functions.OP_LESSTHAN(self.tape, self.stack, self.cache)
        assert self.stack.get() == b'\x01'

        self.stack.put(functions.int_to_script_num(200))
        self.stack.put(functions.int_to_script_num(200))
        functions.OP_LESSTHAN(self.tape, self.stack, self.cache)
        assert self.stack.get() == b''

    def test_OP_CHECKSIG_checks_signature_against_cached_sighash(self):
        skey = SigningKey(b'yellow submarine is extra yellow')
        sighash = sha256(b'hello world').digest()
        sig = skey.sign(sighash).signature
        self.cache['sighash'] = sighash

        self.stack.put(sig)
        self.stack.put(bytes(skey.verify_key))
        functions.OP_CHECKSIG(self.tape, self.stack, self.cache)
        assert self.stack.get() == b'\x01'

        self.stack.put(sig)
        self.stack.put(bytes(SigningKey(b'submarine such yellow extra very').verify_key))
        functions.OP_CHECKSIG(self.tape, self.stack, self.cache)
        assert self.stack.get() == b''

        self.stack.put(b'')
        self.stack.put(bytes(skey.verify_key))
        functions.OP_CHECKSIG(self.tape, self.stack, self.cache)
        assert self.stack.get() == b''

    def test_OP_CHECKSIGVERIFY_raises_error_for_bad_signature(self):
        skey = SigningKey(b'yellow submarine is extra yellow')
        self.cache['sighash'] = sha256(b'hello world').digest()
        sig = skey.sign(sha256(b'other').digest()).signature
        self.stack.put(sig)
        self.stack.put(bytes(skey.verify_key))

        with self.assertRaises(errors.ScriptExecutionError) as e:
            functions.OP_CHECKSIGVERIFY(self.tape, self.stack, self.cache)
        assert str(e.exception) == 'OP_CHECKSIGVERIFY check failed'

    def test_OP_CHECKSIG_requires_sighash_and_32_byte_key(self):
        self.stack.put(b'\x00' * 64)
        self.stack.put(b'\x00' * 32)
        with self.assertRaises(errors.ScriptExecutionError) as e:
            functions.OP_CHECKSIG(self.tape, self.stack, self.cache)
        assert str(e.exception) == 'OP_CHECKSIG no sighash in cache'

        self.cache['sighash'] = b'\x00' * 32
        self.stack.put(b'\x00' * 64)
        self.stack.put(b'\x00' * 33)
        with self.assertRaises(errors.ScriptExecutionError):
            functions.OP_CHECKSIG(self.tape, self.stack, self.cache)


class TestRunScript(unittest.TestCase):
    def setUp(self) -> None:
        self.saved_opcodes = {**functions.opcodes}
        self.saved_opcodes_inverse = {**functions.opcodes_inverse}
        self.saved_invalid_opcodes = {**functions.invalid_opcodes}
        self.saved_invalid_opcodes_inverse = {**functions.invalid_opcodes_inverse}
        self.saved_opcode_aliases = {**functions.opcode_aliases}
        return super().setUp()

    def tearDown(self) -> None:
        functions.opcodes.clear()
        functions.opcodes.update(self.saved_opcodes)
        functions.opcodes_inverse.clear()
        functions.opcodes_inverse.update(self.saved_opcodes_inverse)
        functions.invalid_opcodes.clear()
        functions.invalid_opcodes.update(self.saved_invalid_opcodes)
        functions.invalid_opcodes_inverse.clear()
        functions.invalid_opcodes_inverse.update(self.saved_invalid_opcodes_inverse)
        functions.opcode_aliases.clear()
        functions.opcode_aliases.update(self.saved_opcode_aliases)
        return super().tearDown()

    def test_run_script_returns_tape_stack_and_cache(self):
        tape, stack, cache = functions.run_script(b'\x5a\x5b\x7c', {'x': 1})
        assert tape.has_terminated()
        assert stack.list() == [b'\x0b', b'\x0a']
        assert cache['x'] == 1

    def test_run_script_raises_error_on_unassigned_opcode(self):
        with self.assertRaises(errors.ScriptExecutionError) as e:
            functions.run_script(b'\x51\xfe')
        assert str(e.exception) == 'unassigned opcode 254'

    def test_run_auth_script_requires_single_true_item(self):
        assert functions.run_auth_script(b'\x51')
        assert not functions.run_auth_script(b'')
        assert not functions.run_auth_script(b'\x00')
        assert not functions.run_auth_script(b'\x51\x51')
        assert not functions.run_auth_script(b'\x51\x6a')
        assert not functions.run_auth_script(b'\x01')

    def test_run_auth_script_is_fail_closed_for_failed_checks(self):
        # 5 5 OP_EQUALVERIFY OP_TRUE, then 5 6 OP_EQUALVERIFY OP_TRUE
        assert functions.run_auth_script(b'\x55\x55\x88\x51')
        assert not functions.run_auth_script(b'\x55\x56\x88\x51')

    def test_add_opcode_registers_new_op(self):
        def OP_NINE(tape, stack, cache):
            stack.put(b'\x09')

        assert 0xfd in functions.invalid_opcodes
        functions.add_opcode(0xfd, 'op_nine', OP_NINE)
        assert functions.opcodes[0xfd][0] == 'OP_NINE'
        assert 'OP_NINE' in functions.opcodes_inverse
        assert 0xfd not in functions.invalid_opcodes
        _, stack, _ = functions.run_script(b'\xfd')
        assert stack.get() == b'\x09'

    def test_add_opcode_rejects_assigned_codes_and_bad_names(self):
        with self.assertRaises(ValueError):
            functions.add_opcode(0x76, 'OP_OTHER_DUP', functions.OP_DUP)
        with self.assertRaises(ValueError):
            functions.add_opcode(0xfd, 'NINE', functions.OP_DUP)
        with self.assertRaises(TypeError):
            functions.add_opcode(0xfd, 'OP_NINE', 'not callable')


if __name__ == '__main__':
    unittest.main()
