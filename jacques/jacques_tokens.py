"""
Jacques tokenizer: turns source text into a flat list of `Token`s.

Literal tokens carry typed payloads (float for numbers, bool for booleans,
str for strings and identifiers). Keywords, operators and punctuation are
fixed kinds whose value is their source text. The list always ends with
a single EOF token.
"""
from dataclasses import dataclass
from typing import Any, List

from jacques.jacques_errors import JacquesSyntaxError

# Literal kinds
NUMBER = "NUMBER"
STRING = "STRING"
BOOLEAN = "BOOLEAN"
IDENTIFIER = "IDENTIFIER"
EOF = "EOF"

# Keyword kinds
FUNCTION = "FUNCTION"
CLASS = "CLASS"
EXTENDS = "EXTENDS"
IF = "IF"
ELSE = "ELSE"
END = "END"
RETURN = "RETURN"
CONSTRUCTOR = "CONSTRUCTOR"
PROPERTY = "PROPERTY"
GET = "GET"
SET = "SET"
STATIC = "STATIC"
PRIVATE = "PRIVATE"
PROTECTED = "PROTECTED"
CONST = "CONST"
SELF = "SELF"
RESULT = "RESULT"
IMPORT = "IMPORT"
EXPORT = "EXPORT"
FROM = "FROM"
WHILE = "WHILE"

# Operator and punctuation kinds
PLUS = "PLUS"
MINUS = "MINUS"
STAR = "STAR"
SLASH = "SLASH"
PERCENT = "PERCENT"
BANG = "BANG"
ASSIGN = "ASSIGN"
CONST_ASSIGN = "CONST_ASSIGN"
EQUAL = "EQUAL"
NOT_EQUAL = "NOT_EQUAL"
LESS = "LESS"
GREATER = "GREATER"
LESS_EQUAL = "LESS_EQUAL"
GREATER_EQUAL = "GREATER_EQUAL"
AND = "AND"
OR = "OR"
INCREMENT = "INCREMENT"
ARROW = "ARROW"
AT = "AT"
DOT = "DOT"
COMMA = "COMMA"
COLON = "COLON"
SEMICOLON = "SEMICOLON"
LPAREN = "LPAREN"
RPAREN = "RPAREN"
LBRACKET = "LBRACKET"
RBRACKET = "RBRACKET"
LBRACE = "LBRACE"
RBRACE = "RBRACE"

KEYWORDS = {
    "function": FUNCTION,
    "class": CLASS,
    "extends": EXTENDS,
    "if": IF,
    "else": ELSE,
    "end": END,
    "return": RETURN,
    "constructor": CONSTRUCTOR,
    "property": PROPERTY,
    "get": GET,
    "set": SET,
    "static": STATIC,
    "private": PRIVATE,
    "protected": PROTECTED,
    "const": CONST,
    "self": SELF,
    "Result": RESULT,
    "import": IMPORT,
    "export": EXPORT,
    "from": FROM,
    "while": WHILE,
}

# Two-character operators are matched before single characters.
DOUBLE_OPS = {
    "++": INCREMENT,
    "=>": ARROW,
    "->": ARROW,
    ":=": CONST_ASSIGN,
    "==": EQUAL,
    "!=": NOT_EQUAL,
    "<=": LESS_EQUAL,
    ">=": GREATER_EQUAL,
    "&&": AND,
    "||": OR,
}

SINGLE_OPS = {
    "+": PLUS,
    "-": MINUS,
    "*": STAR,
    "/": SLASH,
    "%": PERCENT,
    "!": BANG,
    "=": ASSIGN,
    "<": LESS,
    ">": GREATER,
    "@": AT,
    ".": DOT,
    ",": COMMA,
    ":": COLON,
    ";": SEMICOLON,
    "(": LPAREN,
    ")": RPAREN,
    "[": LBRACKET,
    "]": RBRACKET,
    "{": LBRACE,
    "}": RBRACE,
}

ESCAPE_MAP = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\0",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


@dataclass(frozen=True)
class Token:
    kind: str
    value: Any
    line: int
    col: int

    def __repr__(self) -> str:
        return f"Token({self.kind}, {self.value!r}, {self.line}:{self.col})"


def _is_digit(ch: str) -> bool:
    # str.isdigit also accepts superscripts and other non-decimal digits
    return ch.isascii() and ch.isdigit()


class Lexer:
    """Character scanner producing the token stream consumed by the parser."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.col = 1
        self.tokens: List[Token] = []

    def tokenize(self) -> List[Token]:
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch in " \t\r\n":
                self._advance()
            elif self.source.startswith("//", self.pos):
                self._skip_line_comment()
            elif self.source.startswith("/*", self.pos):
                self._skip_block_comment()
            elif ch in "\"'":
                self._read_string(ch)
            elif _is_digit(ch) or (ch == "." and _is_digit(self._peek_char(1))):
                self._read_number()
            elif ch.isalpha() or ch == "_":
                self._read_word()
            else:
                self._read_operator()
        self.tokens.append(Token(EOF, None, self.line, self.col))
        return self.tokens

    # --- scanning helpers ---

    def _peek_char(self, offset: int = 0) -> str:
        idx = self.pos + offset
        return self.source[idx] if idx < len(self.source) else ""

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _error(self, message: str, line: int, col: int):
        raise JacquesSyntaxError(message, line, col)

    def _skip_line_comment(self):
        while self.pos < len(self.source) and self.source[self.pos] != "\n":
            self._advance()

    def _skip_block_comment(self):
        line, col = self.line, self.col
        depth = 0
        while self.pos < len(self.source):
            if self.source.startswith("/*", self.pos):
                depth += 1
                self._advance()
                self._advance()
            elif self.source.startswith("*/", self.pos):
                depth -= 1
                self._advance()
                self._advance()
                if depth == 0:
                    return
            else:
                self._advance()
        self._error("Unterminated block comment", line, col)

    def _read_string(self, quote: str):
        line, col = self.line, self.col
        self._advance()
        chars = []
        while True:
            if self.pos >= len(self.source):
                self._error("Unterminated string literal", line, col)
            ch = self._advance()
            if ch == quote:
                break
            if ch == "\\":
                if self.pos >= len(self.source):
                    self._error("Unterminated string literal", line, col)
                esc = self._advance()
                chars.append(ESCAPE_MAP.get(esc, esc))
            else:
                chars.append(ch)
        self.tokens.append(Token(STRING, "".join(chars), line, col))

    def _read_number(self):
        line, col = self.line, self.col
        start = self.pos
        seen_dot = False
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if _is_digit(ch):
                self._advance()
            elif ch == "." and not seen_dot and _is_digit(self._peek_char(1)):
                seen_dot = True
                self._advance()
            else:
                break
        self.tokens.append(Token(NUMBER, float(self.source[start:self.pos]), line, col))

    def _read_word(self):
        line, col = self.line, self.col
        start = self.pos
        while self.pos < len(self.source) and (self.source[self.pos].isalnum() or self.source[self.pos] == "_"):
            self._advance()
        word = self.source[start:self.pos]
        if word in ("true", "false"):
            self.tokens.append(Token(BOOLEAN, word == "true", line, col))
        elif word in KEYWORDS:
            self.tokens.append(Token(KEYWORDS[word], word, line, col))
        else:
            self.tokens.append(Token(IDENTIFIER, word, line, col))

    def _read_operator(self):
        line, col = self.line, self.col
        pair = self.source[self.pos:self.pos + 2]
        if pair in DOUBLE_OPS:
            self._advance()
            self._advance()
            self.tokens.append(Token(DOUBLE_OPS[pair], pair, line, col))
            return
        ch = self.source[self.pos]
        if ch in SINGLE_OPS:
            self._advance()
            self.tokens.append(Token(SINGLE_OPS[ch], ch, line, col))
            return
        self._error(f"Unexpected character '{ch}'", line, col)


def tokenize(source: str) -> List[Token]:
    return Lexer(source).tokenize()
