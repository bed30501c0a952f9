"""
Conversion of raw configuration values into typed values.
"""

import logging
import re
from enum import Enum
from typing import Any, Dict, List, Optional

from ..exceptions import TypeCoercionError

logger = logging.getLogger(__name__)

LIST_DELIMITER = ","
MAP_ENTRY_SEPARATOR = ":"

_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
_TRUE_VALUES = {"true", "yes", "on", "1"}
_FALSE_VALUES = {"false", "no", "off", "0"}


class ValueType(str, Enum):
    """Semantic type of a configuration value."""
    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    LIST = "list"
    MAP = "map"
    RECORD = "record"


SCALAR_TYPES = (ValueType.STRING, ValueType.INTEGER, ValueType.BOOLEAN)


def coerce(
    raw: Any,
    target: ValueType,
    item_type: ValueType = ValueType.STRING,
    value_type: ValueType = ValueType.STRING,
    key: Optional[str] = None
) -> Any:
    """
    Convert ``raw`` to ``target``.

    ``raw`` is usually a string; lists and dicts produced by ``#{...}``
    expressions are accepted for LIST and MAP targets and coerced element-wise.
    ``item_type`` and ``value_type`` are the scalar types of list elements and
    map values.
    """
    if target == ValueType.STRING:
        return to_string(raw)
    if target == ValueType.INTEGER:
        return to_integer(raw, key)
    if target == ValueType.BOOLEAN:
        return to_boolean(raw, key)
    if target == ValueType.LIST:
        return to_list(raw, item_type, key)
    if target == ValueType.MAP:
        return to_map(raw, value_type, key)

    raise TypeCoercionError(
        f"Cannot coerce a raw value to {target.value}",
        raw_value=raw,
        target_type=target.value,
        key=key
    )


def to_string(raw: Any) -> str:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, (list, tuple)):
        return LIST_DELIMITER.join(to_string(item) for item in raw)
    if isinstance(raw, dict):
        entries = LIST_DELIMITER.join(f"{k}{MAP_ENTRY_SEPARATOR}{to_string(v)}" for k, v in raw.items())
        return "{" + entries + "}"
    if raw is None:
        return ""
    return str(raw)


def to_integer(raw: Any, key: Optional[str] = None) -> int:
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw

    text = raw.strip() if isinstance(raw, str) else None
    if text is None or not _INTEGER_PATTERN.fullmatch(text):
        raise TypeCoercionError(
            _describe(f"Cannot convert {raw!r} to integer", key),
            raw_value=raw,
            target_type=ValueType.INTEGER.value,
            key=key
        )
    return int(text, 10)


def to_boolean(raw: Any, key: Optional[str] = None) -> bool:
    if isinstance(raw, bool):
        return raw

    text = raw.strip().lower() if isinstance(raw, str) else None
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise TypeCoercionError(
        _describe(f"Cannot convert {raw!r} to boolean", key),
        raw_value=raw,
        target_type=ValueType.BOOLEAN.value,
        key=key
    )


def to_list(raw: Any, item_type: ValueType = ValueType.STRING, key: Optional[str] = None) -> List[Any]:
    """Split on commas, trimming every element; order and duplicates are kept."""
    _check_scalar(item_type, "list element", key)

    if isinstance(raw, (list, tuple)):
        items = [item.strip() if isinstance(item, str) else item for item in raw]
    elif isinstance(raw, str):
        if not raw.strip():
            return []
        items = [item.strip() for item in raw.split(LIST_DELIMITER)]
    else:
        raise TypeCoercionError(
            _describe(f"Cannot convert {raw!r} to list", key),
            raw_value=raw,
            target_type=ValueType.LIST.value,
            key=key
        )

    return [coerce(item, item_type, key=key) for item in items]


def to_map(raw: Any, value_type: ValueType = ValueType.STRING, key: Optional[str] = None) -> Dict[str, Any]:
    """Parse a ``{k1:v1,k2:v2}`` literal; duplicate keys keep the last value."""
    _check_scalar(value_type, "map value", key)

    if isinstance(raw, dict):
        return {str(k): coerce(v, value_type, key=key) for k, v in raw.items()}

    text = raw.strip() if isinstance(raw, str) else None
    if text is None or not (text.startswith("{") and text.endswith("}")):
        raise TypeCoercionError(
            _describe(f"Cannot convert {raw!r} to map, expected {{key:value,...}}", key),
            raw_value=raw,
            target_type=ValueType.MAP.value,
            key=key
        )

    result: Dict[str, Any] = {}
    body = text[1:-1].strip()
    if not body:
        return result

    for entry in body.split(LIST_DELIMITER):
        name, separator, value = entry.partition(MAP_ENTRY_SEPARATOR)
        name = _unquote(name.strip())
        if not separator or not name:
            raise TypeCoercionError(
                _describe(f"Malformed map entry {entry.strip()!r} in {raw!r}", key),
                raw_value=raw,
                target_type=ValueType.MAP.value,
                key=key
            )
        if name in result:
            logger.warning(_describe(f"Duplicate map key '{name}' in {raw!r}, last value wins", key))
        result[name] = coerce(_unquote(value.strip()), value_type, key=key)

    return result


def _unquote(token: str) -> str:
    if len(token) >= 2 and token[0] == token[-1] and token[0] in "'\"":
        return token[1:-1]
    return token


def _check_scalar(value_type: ValueType, role: str, key: Optional[str]) -> None:
    if value_type not in SCALAR_TYPES:
        raise TypeCoercionError(
            _describe(f"Only scalar types are supported as {role}, got {value_type.value}", key),
            target_type=value_type.value,
            key=key
        )


def _describe(message: str, key: Optional[str]) -> str:
    return f"{message} (key '{key}')" if key else message
