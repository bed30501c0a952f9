"""
Restricted ``#{...}`` expression grammar.

Only the following forms are understood::

    systemProperties['python.version']
    systemEnvironment['HOME']
    systemProperties['missing'] ?: '3.0'
    'tom,jane,bob'.split(',')
    {A:80,B:90}
    {'tom','jane'}

There is no general evaluation: anything outside this grammar raises
``ExpressionSyntaxError``.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import ExpressionSyntaxError
from .snapshot import PropertySnapshot

logger = logging.getLogger(__name__)

LOOKUP_KINDS = {
    "systemProperties": "system_properties",
    "systemEnvironment": "environment",
}

_PUNCTUATION = "[](){},:."
_DIGITS = "0123456789"

Token = Tuple[str, Any]


def tokenize(expression: str) -> List[Token]:
    tokens: List[Token] = []
    index = 0
    length = len(expression)

    while index < length:
        char = expression[index]

        if char.isspace():
            index += 1
        elif char == "?" and expression.startswith("?:", index):
            tokens.append(("ELVIS", "?:"))
            index += 2
        elif char in _PUNCTUATION:
            tokens.append((char, char))
            index += 1
        elif char == "'":
            value, index = _read_string(expression, index)
            tokens.append(("STRING", value))
        elif char in _DIGITS or (char == "-" and index + 1 < length and expression[index + 1] in _DIGITS):
            end = index + 1
            while end < length and expression[end] in _DIGITS:
                end += 1
            tokens.append(("INT", int(expression[index:end])))
            index = end
        elif char.isalpha() or char == "_":
            end = index + 1
            while end < length and (expression[end].isalnum() or expression[end] in "_-"):
                end += 1
            tokens.append(("IDENT", expression[index:end]))
            index = end
        else:
            raise ExpressionSyntaxError(
                f"Unexpected character {char!r} at position {index} in expression",
                expression=expression
            )

    tokens.append(("EOF", None))
    return tokens


def _read_string(expression: str, start: int) -> Tuple[str, int]:
    """Read a single-quoted literal; a doubled quote ('') is a literal quote."""
    out = []
    index = start + 1
    while index < len(expression):
        char = expression[index]
        if char == "'":
            if expression.startswith("''", index):
                out.append("'")
                index += 2
                continue
            return "".join(out), index + 1
        out.append(char)
        index += 1
    raise ExpressionSyntaxError("Unterminated string literal in expression", expression=expression)


class ExpressionEvaluator:
    """Evaluates restricted expressions against a property snapshot."""

    def __init__(self, snapshot: PropertySnapshot):
        self.snapshot = snapshot

    def evaluate(self, expression: str) -> Any:
        return _Parser(expression, tokenize(expression), self._lookup).parse()

    def _lookup(self, root: str, name: str) -> Optional[str]:
        kind = LOOKUP_KINDS[root]
        for layer in reversed(self.snapshot.layers_of_kind(kind)):
            value = layer.get(name)
            if value is not None:
                return value
        return None


class _Parser:
    """Recursive descent over the token list."""

    def __init__(self, expression: str, tokens: List[Token], lookup):
        self.expression = expression
        self.tokens = tokens
        self.position = 0
        self.lookup = lookup

    def parse(self) -> Any:
        value = self._expression()
        self._expect("EOF")
        return value

    # expr := primary ( "?:" primary )*
    def _expression(self) -> Any:
        value = self._postfix()
        while self._peek()[0] == "ELVIS":
            self._advance()
            fallback = self._postfix()
            if value is None or value == "":
                value = fallback
        return value

    def _postfix(self) -> Any:
        value = self._primary()
        while self._peek()[0] == ".":
            self._advance()
            method = self._expect("IDENT")[1]
            if method != "split":
                self._fail(f"Unsupported method '{method}'")
            self._expect("(")
            separator = self._expect("STRING")[1]
            self._expect(")")
            if not isinstance(value, str):
                self._fail("split() can only be applied to a string")
            if not separator:
                self._fail("split() separator must not be empty")
            value = value.split(separator)
        return value

    def _primary(self) -> Any:
        kind, value = self._peek()

        if kind == "IDENT" and value in LOOKUP_KINDS:
            self._advance()
            self._expect("[")
            name = self._expect("STRING")[1]
            self._expect("]")
            return self.lookup(value, name)

        if kind == "{":
            return self._inline()

        return self._literal()

    def _literal(self) -> Any:
        kind, value = self._advance()
        if kind in ("STRING", "INT"):
            return value
        if kind == "IDENT" and value == "null":
            return None
        if kind == "IDENT" and value in ("true", "false"):
            return value == "true"
        self._fail(f"Unexpected token {value!r}")

    # inline := "{" "}" | "{" item ("," item)* "}"
    def _inline(self) -> Any:
        self._expect("{")
        if self._peek()[0] == "}":
            self._advance()
            return {}

        if self._tokens_ahead(1)[0] == ":":
            result = self._inline_map()
        else:
            result = self._inline_list()

        self._expect("}")
        return result

    def _inline_map(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        while True:
            kind, key = self._advance()
            if kind not in ("IDENT", "STRING", "INT"):
                self._fail(f"Invalid map key {key!r}")
            key = str(key)
            self._expect(":")
            value = self._literal()
            if key in result:
                logger.warning(f"Duplicate key '{key}' in inline map, last value wins")
            result[key] = value
            if self._peek()[0] != ",":
                return result
            self._advance()

    def _inline_list(self) -> List[Any]:
        items = [self._literal()]
        while self._peek()[0] == ",":
            self._advance()
            items.append(self._literal())
        return items

    def _peek(self) -> Token:
        return self.tokens[self.position]

    def _tokens_ahead(self, offset: int) -> Token:
        index = min(self.position + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def _advance(self) -> Token:
        token = self.tokens[self.position]
        if token[0] != "EOF":
            self.position += 1
        return token

    def _expect(self, kind: str) -> Token:
        token = self._peek()
        if token[0] != kind:
            found = "end of expression" if token[0] == "EOF" else repr(token[1])
            self._fail(f"Expected {kind} but found {found}")
        return self._advance()

    def _fail(self, message: str) -> None:
        raise ExpressionSyntaxError(f"{message} in expression '{self.expression}'", expression=self.expression)
