"""Lexer for summum generation units.

Produces token trees from Rust-flavoured source text: identifiers,
lifetimes, literals and single-character punctuation as leaves, and
parenthesis / bracket / brace delimited groups as nested ``Group`` nodes.
Whitespace is not kept, but every token records whether it was preceded by
nothing, a space or a line break so the printer can reproduce the layout.
"""

from __future__ import annotations

from summum.errors import CompileError, Diagnostic
from summum.source import Span
from summum.tokens import Delimiter, Group, Token, TokenKind, TokenTree

PUNCT_CHARS = frozenset("+-*/%^!&|=<>@.,;:#$?~\\")

_OPENERS = {d.open: d for d in Delimiter}
_CLOSERS = {d.close: d for d in Delimiter}


class _Frame:
    """An open delimiter waiting for its closer."""

    def __init__(self, delimiter: Delimiter, span: Span, ws: str) -> None:
        self.delimiter = delimiter
        self.span = span
        self.ws = ws
        self.children: list[TokenTree] = []


class Lexer:
    """Tokenizes source text into a list of token trees."""

    def __init__(self, source: str, filename: str = "<stdin>") -> None:
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.col = 1
        self.diagnostics: list[Diagnostic] = []
        self._root: list[TokenTree] = []
        self._stack: list[_Frame] = []
        self._ws = ""
        self._start = 0

    def lex(self) -> list[TokenTree]:
        """Tokenize the entire source and return the top-level trees."""
        while self.pos < len(self.source):
            self._start = self.pos
            ch = self.source[self.pos]
            if ch in " \t\r\n":
                self._skip_whitespace()
            elif ch == '/' and self._peek(1) == '/':
                self._lex_line_comment()
            elif ch == '/' and self._peek(1) == '*':
                self._skip_block_comment()
            elif ch in _OPENERS:
                self._open(_OPENERS[ch])
            elif ch in _CLOSERS:
                self._close(_CLOSERS[ch])
            elif ch == '"':
                self._lex_string(self.line, self.col)
            elif ch == "'":
                self._lex_quote()
            elif ch.isdigit():
                self._lex_number()
            elif ch.isalpha() or ch == '_':
                self._lex_identifier()
            elif ch in PUNCT_CHARS:
                self._lex_punct()
            else:
                self._error(f"unexpected character {ch!r}", self.line, self.col)
                self._advance()

        for frame in reversed(self._stack):
            self._error_span(f"unclosed delimiter `{frame.delimiter.open}`", frame.span)

        if self.diagnostics:
            raise CompileError(self.diagnostics)
        return self._root

    # ── Helpers ───────────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _is_ident_char(self, offset: int = 0) -> bool:
        ch = self._peek(offset)
        return ch.isalnum() or ch == '_'

    def _children(self) -> list[TokenTree]:
        return self._stack[-1].children if self._stack else self._root

    def _emit(self, kind: TokenKind, value: str, start_line: int, start_col: int,
              *, joint: bool = False) -> Token:
        end_col = self.col - 1 if self.col > 1 else 1
        span = Span(self.filename, start_line, start_col, self.line, end_col)
        tok = Token(kind, value, span, joint, self._ws)
        self._children().append(tok)
        self._ws = ""
        return tok

    def _error(self, message: str, line: int, col: int) -> None:
        self._error_span(message, Span.point(self.filename, line, col))

    def _error_span(self, message: str, span: Span) -> None:
        self.diagnostics.append(Diagnostic.error("E100", message, span))

    # ── Whitespace and comments ──────────────────────────────────

    def _skip_whitespace(self) -> None:
        while self.pos < len(self.source) and self.source[self.pos] in " \t\r\n":
            if self._advance() == '\n':
                self._ws = "\n"
            elif not self._ws:
                self._ws = " "

    def _lex_line_comment(self) -> None:
        start_line, start_col = self.line, self.col
        is_doc = self._peek(2) == '/' and self._peek(3) != '/'
        is_inner_doc = self._peek(2) == '!'
        self._advance()
        self._advance()
        if is_doc or is_inner_doc:
            self._advance()
        text = []
        while self.pos < len(self.source) and self.source[self.pos] != '\n':
            text.append(self._advance())
        if is_doc or is_inner_doc:
            self._emit_doc_attribute(''.join(text).rstrip('\r'), is_inner_doc,
                                     start_line, start_col)
        elif not self._ws:
            self._ws = " "

    def _emit_doc_attribute(self, text: str, inner: bool, line: int, col: int) -> None:
        """Desugar a doc comment into the ``#[doc = "..."]`` attribute it means."""
        span = Span(self.filename, line, col, self.line, max(self.col - 1, 1))
        ws = self._ws
        self._children().append(Token(TokenKind.PUNCT, '#', span, inner, ws))
        if inner:
            self._children().append(Token(TokenKind.PUNCT, '!', span, False, ""))
        escaped = text.replace('\\', '\\\\').replace('"', '\\"')
        body: list[TokenTree] = [
            Token(TokenKind.IDENT, "doc", span, ws=""),
            Token(TokenKind.PUNCT, '=', span),
            Token(TokenKind.LITERAL, f'"{escaped}"', span),
        ]
        self._children().append(Group(Delimiter.BRACKET, body, span, ""))
        self._ws = "\n"

    def _skip_block_comment(self) -> None:
        start_line, start_col = self.line, self.col
        self._advance()
        self._advance()
        depth = 1
        while self.pos < len(self.source):
            if self.source[self.pos] == '/' and self._peek(1) == '*':
                self._advance()
                self._advance()
                depth += 1
            elif self.source[self.pos] == '*' and self._peek(1) == '/':
                self._advance()
                self._advance()
                depth -= 1
                if depth == 0:
                    if not self._ws:
                        self._ws = " "
                    return
            else:
                self._advance()
        self._error("unterminated block comment", start_line, start_col)

    # ── Delimiters ───────────────────────────────────────────────

    def _open(self, delimiter: Delimiter) -> None:
        span = Span.point(self.filename, self.line, self.col)
        self._advance()
        self._stack.append(_Frame(delimiter, span, self._ws))
        self._ws = ""

    def _close(self, delimiter: Delimiter) -> None:
        line, col = self.line, self.col
        self._advance()
        if not self._stack:
            self._error(f"unexpected closing delimiter `{delimiter.close}`", line, col)
            return
        frame = self._stack[-1]
        if frame.delimiter != delimiter:
            self._error(
                f"mismatched closing delimiter: expected `{frame.delimiter.close}`,"
                f" found `{delimiter.close}`",
                line, col,
            )
            return
        self._stack.pop()
        span = Span(self.filename, frame.span.start_line, frame.span.start_col, line, col)
        self._children().append(Group(delimiter, frame.children, span, frame.ws, self._ws))
        self._ws = ""

    # ── Literals ─────────────────────────────────────────────────

    def _lex_string(self, start_line: int, start_col: int) -> None:
        """Lex a quoted string; any prefix (``b``, ``c``) is already consumed."""
        self._advance()  # opening quote
        while self.pos < len(self.source):
            ch = self._advance()
            if ch == '\\' and self.pos < len(self.source):
                self._advance()
            elif ch == '"':
                self._lex_suffix()
                self._emit(TokenKind.LITERAL, self._text(),
                           start_line, start_col)
                return
        self._error("unterminated string literal", start_line, start_col)

    def _lex_raw_string(self, start_line: int, start_col: int) -> None:
        """Lex ``r#"..."#``; the ``r`` prefix is already consumed."""
        hashes = 0
        while self._peek() == '#':
            self._advance()
            hashes += 1
        if self._peek() != '"':
            self._error("expected `\"` in raw string literal", self.line, self.col)
            return
        self._advance()
        terminator = '"' + '#' * hashes
        while self.pos < len(self.source):
            if self.source.startswith(terminator, self.pos):
                for _ in terminator:
                    self._advance()
                self._lex_suffix()
                self._emit(TokenKind.LITERAL, self._text(),
                           start_line, start_col)
                return
            self._advance()
        self._error("unterminated raw string literal", start_line, start_col)

    def _lex_quote(self) -> None:
        """A single quote starts either a char literal or a lifetime."""
        start_line, start_col = self.line, self.col
        if self._peek(1) == '\\' or (self._peek(2) == "'" and self._peek(1) != "'"):
            self._lex_char(start_line, start_col)
            return
        self._advance()
        if not (self._peek().isalpha() or self._peek() == '_'):
            self._error("expected lifetime name or char literal", start_line, start_col)
            return
        while self.pos < len(self.source) and self._is_ident_char():
            self._advance()
        self._emit(TokenKind.LIFETIME, self._text(),
                   start_line, start_col)

    def _lex_char(self, start_line: int, start_col: int) -> None:
        self._advance()  # opening quote
        while self.pos < len(self.source):
            ch = self._advance()
            if ch == '\\' and self.pos < len(self.source):
                self._advance()
            elif ch == "'":
                self._lex_suffix()
                self._emit(TokenKind.LITERAL, self._text(),
                           start_line, start_col)
                return
            elif ch == '\n':
                break
        self._error("unterminated character literal", start_line, start_col)

    def _lex_number(self) -> None:
        start_line, start_col = self.line, self.col
        is_hex = self._peek() == '0' and self._peek(1) in 'xX'
        self._lex_suffix()
        if self._peek() == '.' and self._peek(1).isdigit():
            self._advance()
            self._lex_suffix()
        text = self._text()
        if not is_hex and text[-1] in 'eE' and self._peek() in '+-' and self._peek(1).isdigit():
            self._advance()
            self._lex_suffix()
        self._emit(TokenKind.LITERAL, self._text(),
                   start_line, start_col)

    def _lex_suffix(self) -> None:
        while self.pos < len(self.source) and self._is_ident_char():
            self._advance()

    def _text(self) -> str:
        """Return the source text of the token being lexed."""
        return self.source[self._start:self.pos]

    # ── Identifiers and punctuation ──────────────────────────────

    def _lex_identifier(self) -> None:
        start_line, start_col = self.line, self.col
        start = self.pos
        while self.pos < len(self.source) and self._is_ident_char():
            self._advance()
        word = self.source[start:self.pos]

        if word in ("r", "br", "cr") and (self._peek() == '"' or (
                self._peek() == '#' and self._peek(1) in '#"')):
            self._lex_raw_string(start_line, start_col)
            return
        if word == "r" and self._peek() == '#' and (self._peek(1).isalpha() or self._peek(1) == '_'):
            self._advance()
            self._lex_suffix()
            self._emit(TokenKind.IDENT, self.source[start:self.pos], start_line, start_col)
            return
        if word in ("b", "c") and self._peek() == '"':
            self._lex_string(start_line, start_col)
            return
        if word == "b" and self._peek() == "'":
            self._lex_char(start_line, start_col)
            return

        self._emit(TokenKind.IDENT, word, start_line, start_col)

    def _lex_punct(self) -> None:
        start_line, start_col = self.line, self.col
        ch = self._advance()
        nxt = self._peek()
        joint = nxt in PUNCT_CHARS and not (nxt == '/' and self._peek(1) in '/*')
        self._emit(TokenKind.PUNCT, ch, start_line, start_col, joint=joint)


def tokens_of(text: str) -> list[TokenTree]:
    """Lex a generated snippet such as ``Name<'a, T>`` into token trees."""
    return Lexer(text, "<generated>").lex()
