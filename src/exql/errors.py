"""Exception hierarchy for EXQL.

All errors raised by the lexer, parser, evaluator and the built-in
libraries derive from ExqlError:

- LexerError: unterminated string, unknown character
- ParseError: unexpected token (reuses the lexer's positioned rendering)
- EvaluationError: runtime failures, specialized as
  CoercionError, AccessError, DispatchError, OperatorError, FunctionError
"""


class ExqlError(Exception):
    """Base class for all EXQL errors."""
    pass


# -----------------------------------------------------------------------------
# Syntax errors
# -----------------------------------------------------------------------------


class LexerError(ExqlError):
    """Error during lexical analysis.

    Attributes:
        message: Short description of the problem
        token: The offending token text (or "<EOF>")
        position: Byte offset of the offending token in the UTF-8 source
        context: Up to 20 bytes of source on either side of the error
        pointer: Caret line aligned under the error inside ``context``
    """

    def __init__(
        self,
        message: str,
        token: str,
        position: int,
        context: str = "",
        pointer: str = "^",
    ):
        self.message = message
        self.token = token
        self.position = position
        self.context = context
        self.pointer = pointer
        super().__init__(
            f"{message} near token '{token}' at position {position}\n{context}\n{pointer}"
        )

    @classmethod
    def at(cls, message: str, source: str, offset: int) -> "LexerError":
        """Build an error for ``source`` detected at byte ``offset``.

        The offending token is the run of non-whitespace bytes starting at
        the offset ("<EOF>" past the end of input). The context window spans
        20 bytes either side and the pointer marks the offset. A window edge
        that splits a character shows as U+FFFD.
        """
        data = source.encode("utf-8", errors="surrogatepass")
        offset = min(max(offset, 0), len(data))

        end = offset
        while end < len(data) and data[end] not in _WHITESPACE:
            end += 1
        token = _decode(data[offset:end]) if end > offset else "<EOF>"

        context_start = max(offset - 20, 0)
        context_end = min(offset + 20, len(data))
        context = _decode(data[context_start:context_end])

        # Tabs are kept so the caret lines up in a terminal
        pad = "".join(
            "\t" if ch == "\t" else " " for ch in _decode(data[context_start:offset])
        )

        return cls(message, token, offset, context, pad + "^")


class ParseError(LexerError):
    """Error during parsing."""
    pass


# -----------------------------------------------------------------------------
# Runtime errors
# -----------------------------------------------------------------------------


class EvaluationError(ExqlError):
    """Error during expression evaluation."""
    pass


class CoercionError(EvaluationError):
    """A value could not be converted to the requested type."""
    pass


class AccessError(EvaluationError):
    """Field or index access on an unsupported value, or index out of range."""
    pass


class DispatchError(EvaluationError):
    """A namespace expression did not yield a namespace, or a strict lookup failed."""
    pass


class OperatorError(EvaluationError):
    """An operator symbol is not supported by the node it appears in."""
    pass


class FunctionError(EvaluationError):
    """Raised by library functions (bad arguments, failed conversions, ...)."""
    pass


_WHITESPACE = b" \t\n\r"


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")
