"""
Placeholder resolution for ``${key}``, ``${key:default}`` and ``#{expr}``.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from ..exceptions import CircularReferenceError, UnresolvedPlaceholderError
from .coercion import to_string
from .expressions import ExpressionEvaluator
from .snapshot import PropertySnapshot

logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIX = "${"
EXPRESSION_PREFIX = "#{"
PLACEHOLDER_SUFFIX = "}"
VALUE_SEPARATOR = ":"
MAX_DEPTH = 32

ResolvedValue = Union[str, int, bool, List[Any], Dict[str, Any], None]


def _find_closing(text: str, start: int, skip_quoted: bool = False) -> int:
    """
    Index of the brace closing the block whose body starts at ``start``, or -1.

    With ``skip_quoted`` braces inside single-quoted literals are not
    counted; a doubled quote ('') inside a literal is an escaped quote.
    """
    depth = 1
    index = start
    length = len(text)
    while index < length:
        char = text[index]
        if char == "'" and skip_quoted:
            index = _skip_quoted(text, index)
            if index == -1:
                return -1
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
        index += 1
    return -1


def _skip_quoted(text: str, quote: int) -> int:
    """Index just past the literal opened at ``quote``, or -1 when unterminated."""
    index = quote + 1
    while index < len(text):
        if text[index] == "'":
            if text.startswith("''", index):
                index += 2
                continue
            return index + 1
        index += 1
    return -1


def _split_default(body: str) -> Tuple[str, Optional[str]]:
    """Split ``key:default`` on the first separator outside nested braces."""
    depth = 0
    for index, char in enumerate(body):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        elif char == VALUE_SEPARATOR and depth == 0:
            return body[:index], body[index + 1:]
    return body, None


def render(value: Any) -> str:
    """String form of an expression result embedded in surrounding text."""
    return to_string(value)


class PlaceholderResolver:
    """
    Resolves placeholders against a snapshot.

    Looked-up values are resolved recursively. The chain of keys being
    resolved is threaded through every call so a cycle is reported instead of
    recursing forever; ``max_depth`` bounds the recursion regardless.
    """

    def __init__(self, snapshot: PropertySnapshot, max_depth: int = MAX_DEPTH):
        self.snapshot = snapshot
        self.max_depth = max_depth
        self.evaluator = ExpressionEvaluator(snapshot)

    def resolve(self, value: str) -> ResolvedValue:
        """Resolve all placeholders, then evaluate any ``#{...}`` expressions."""
        text = self.resolve_placeholders(value)
        if EXPRESSION_PREFIX not in text:
            return text
        return self._evaluate_expressions(text)

    def resolve_placeholders(self, value: str) -> str:
        """Resolve ``${...}`` placeholders only."""
        return self._substitute(value, (), 0)

    def _substitute(self, text: str, chain: Tuple[str, ...], depth: int) -> str:
        if PLACEHOLDER_PREFIX not in text:
            return text
        if depth > self.max_depth:
            raise CircularReferenceError(
                f"Placeholder nesting exceeded {self.max_depth} levels while resolving {' -> '.join(chain) or text!r}",
                chain=list(chain),
                key=chain[0] if chain else None
            )

        out: List[str] = []
        position = 0
        while True:
            start = text.find(PLACEHOLDER_PREFIX, position)
            if start == -1:
                out.append(text[position:])
                break

            end = _find_closing(text, start + len(PLACEHOLDER_PREFIX))
            if end == -1:
                # Unterminated placeholder is kept as literal text
                out.append(text[position:])
                break

            out.append(text[position:start])
            body = text[start + len(PLACEHOLDER_PREFIX):end]
            out.append(self._resolve_placeholder(body, text, chain, depth))
            position = end + 1

        return "".join(out)

    def _resolve_placeholder(self, body: str, text: str, chain: Tuple[str, ...], depth: int) -> str:
        key_part, default = _split_default(body)
        key = self._substitute(key_part, chain, depth + 1)

        if key in chain:
            cycle = list(chain) + [key]
            raise CircularReferenceError(
                f"Circular placeholder reference: {' -> '.join(cycle)}",
                chain=cycle,
                key=key
            )

        raw = self.snapshot.get_raw(key)
        if raw is not None:
            return self._substitute(raw, chain + (key,), depth + 1)

        if default is not None:
            logger.debug(f"Placeholder '{key}' not found, using default")
            return self._substitute(default, chain, depth + 1)

        raise UnresolvedPlaceholderError(
            f"Could not resolve placeholder '{key}' in value \"{text}\"",
            key=key
        )

    def _evaluate_expressions(self, text: str) -> ResolvedValue:
        out: List[str] = []
        position = 0
        while True:
            start = text.find(EXPRESSION_PREFIX, position)
            if start == -1:
                out.append(text[position:])
                break

            end = _find_closing(text, start + len(EXPRESSION_PREFIX), skip_quoted=True)
            if end == -1:
                out.append(text[position:])
                break

            result = self.evaluator.evaluate(text[start + len(EXPRESSION_PREFIX):end])
            if start == 0 and end == len(text) - 1:
                # The whole value is one expression: keep its native type
                return result

            out.append(text[position:start])
            out.append(render(result))
            position = end + 1

        return "".join(out)


def resolve(value: str, source: PropertySnapshot) -> ResolvedValue:
    """Resolve ``value`` against ``source``."""
    return PlaceholderResolver(source).resolve(value)
