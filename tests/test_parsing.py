from context import errors, functions, parsing
import unittest


class TestParsing(unittest.TestCase):
    def test_get_symbols_splits_on_whitespace_and_drops_comments(self):
        symbols = parsing.get_symbols(
            'OP_DUP # check the input # 100\n  OP_GREATERTHAN OP_VERIFY'
        )
        assert symbols == ['OP_DUP', '100', 'OP_GREATERTHAN', 'OP_VERIFY']

    def test_get_symbols_raises_SyntaxError_for_unterminated_comment(self):
        with self.assertRaises(errors.SyntaxError) as e:
            parsing.get_symbols('OP_DUP # never closed')
        assert str(e.exception) == 'unterminated comment'

    def test_compile_script_resolves_names_and_aliases(self):
        assert parsing.compile_script('OP_DUP') == b'\x76'
        assert parsing.compile_script('dup') == b'\x76'
        assert parsing.compile_script('OP_TRUE') == b'\x51'
        assert parsing.compile_script('FALSE') == b'\x00'
        assert parsing.compile_script('CSV') == b'\xad'
        assert parsing.compile_script('OP_INVALID_254') == b'\xfe'

    def test_compile_script_encodes_numbers_minimally(self):
        assert parsing.compile_script('0 1 16') == b'\x00\x51\x60'
        assert parsing.compile_script('-1') == b'\x4f'
        assert parsing.compile_script('100') == b'\x01\x64'
        assert parsing.compile_script('200') == b'\x02\xc8\x00'

    def test_compile_script_encodes_hex_pushes(self):
        assert parsing.compile_script('xabcd') == b'\x02\xab\xcd'
        assert parsing.compile_script('x' + '11' * 80) == \
            b'\x4c\x50' + b'\x11' * 80
        assert parsing.compile_script('OP_PUSHBYTES_2 abcd') == b'\x02\xab\xcd'
        assert parsing.compile_script('OP_PUSHDATA1 xabcd') == b'\x4c\x02\xab\xcd'
        assert parsing.compile_script('OP_PUSHDATA2 abcd') == \
            b'\x4d\x02\x00\xab\xcd'

    def test_compile_script_raises_SyntaxError_for_bad_input(self):
        with self.assertRaises(errors.SyntaxError) as e:
            parsing.compile_script('OP_NOT_A_REAL_OP')
        assert str(e.exception) == 'unrecognized symbol: OP_NOT_A_REAL_OP'

        with self.assertRaises(errors.SyntaxError):
            parsing.compile_script('OP_PUSHBYTES_3 abcd')

        with self.assertRaises(errors.SyntaxError):
            parsing.compile_script('OP_PUSHDATA1')

        with self.assertRaises(errors.SyntaxError):
            parsing.compile_script('OP_PUSHBYTES_1 zz')

    def test_decompile_script_returns_one_op_per_line(self):
        code = b'\x02\xab\xcd\x4c\x02\xab\xcd\x76\x01\x64\xa0\x69\xfe'
        assert parsing.decompile_script(code) == [
            'OP_PUSHBYTES_2 abcd',
            'OP_PUSHDATA1 xabcd',
            'OP_DUP',
            'OP_PUSHBYTES_1 64',
            'OP_GREATERTHAN',
            'OP_VERIFY',
            'OP_INVALID_254',
        ]

    def test_decompile_then_compile_preserves_byte_code(self):
        src = 'x' + 'aa' * 32 + ' OP_CHECKSIGVERIFY OP_DUP 100 ' + \
            'OP_GREATERTHAN OP_VERIFY OP_DROP 5 OP_EQUALVERIFY OP_TRUE'
        code = parsing.compile_script(src)
        decompiled = parsing.decompile_script(code)
        assert parsing.compile_script(' '.join(decompiled)) == code

    def test_compiled_script_runs(self):
        code = parsing.compile_script('123 OP_DUP 100 OP_GREATERTHAN OP_VERIFY OP_DROP OP_TRUE')
        assert functions.run_auth_script(code)
        code = parsing.compile_script('50 OP_DUP 100 OP_GREATERTHAN OP_VERIFY OP_DROP OP_TRUE')
        assert not functions.run_auth_script(code)


if __name__ == '__main__':
    unittest.main()
