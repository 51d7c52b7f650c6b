class ScriptExecutionError(BaseException):
    """Error raised when an error is encountered during script execution."""
    ...

class SyntaxError(BaseException):
    """Error raised by the assembler when a syntax error is encountered."""
    ...

class OutOfRangeError(Exception):
    """Error raised when the hash prefix for a nonce is not a valid flow
        id. The nonce search recovers from it by trying the next nonce.
    """
    ...

class SearchExhaustedError(Exception):
    """Error raised when the nonce search gives up: the attempt budget
        was exceeded or the nonce counter would overflow.
    """
    ...

class SearchTimeoutError(SearchExhaustedError):
    """Error raised when a parallel nonce search runs past its timeout."""
    ...

class EncodingPreconditionError(ValueError):
    """Error raised when the prefix bit width is larger than 32 or not a
        multiple of 8, or when a flow id does not fit in 32 bits.
    """
    ...


def vert(condition: bool, message: str = '') -> None:
    """Replacement for assert preconditions. Raises ValueError with the
        given message if the condition check fails.
    """
    if condition:
        return
    raise ValueError(message)

def tert(condition: bool, message: str = '') -> None:
    """Replacement for assert preconditions. Raises TypeError with the
        given message if the condition check fails.
    """
    if condition:
        return
    raise TypeError(message)

def sert(condition: bool, message: str = '') -> None:
    """Replacement for assert preconditions. Raises ScriptExecutionError
        with the given message if the condition check fails.
    """
    if condition:
        return
    raise ScriptExecutionError(message)

def yert(condition: bool, message: str = '') -> None:
    """Replacement for assert preconditions. Raises SyntaxError with the
        given message if the condition check fails.
    """
    if condition:
        return
    raise SyntaxError(message)

def pert(condition: bool, message: str = '') -> None:
    """Replacement for assert preconditions. Raises
        EncodingPreconditionError with the given message if the
        condition check fails.
    """
    if condition:
        return
    raise EncodingPreconditionError(message)
