"""
Structural binding of key prefixes onto record schemas.
"""

import copy
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import MissingRequiredPropertyError
from .coercion import ValueType, coerce, to_list, to_map
from .placeholders import PlaceholderResolver
from .schema import ABSENT, Attribute, RecordSchema, TypedRecord
from .snapshot import KEY_DELIMITER, PropertySnapshot

logger = logging.getLogger(__name__)

_NOT_FOUND = object()


def join_key(prefix: str, name: str) -> str:
    return f"{prefix}{KEY_DELIMITER}{name}" if prefix else name


def kebab_case(name: str) -> str:
    """dbName -> db-name"""
    return re.sub(r"(?<!^)(?=[A-Z])", "-", name).lower()


class StructuralBinder:
    """
    Binds a key prefix of a snapshot onto a record schema.

    For every declared attribute the full key ``prefix.attribute`` is looked
    up, resolved and coerced. Absent attributes receive their default, fail
    when required, or are bound to ``ABSENT``. Keys under the prefix that no
    attribute declares are ignored.
    """

    def __init__(self, snapshot: PropertySnapshot, resolver: Optional[PlaceholderResolver] = None):
        self.snapshot = snapshot
        self.resolver = resolver or PlaceholderResolver(snapshot)

    def bind(self, prefix: str, schema: RecordSchema) -> TypedRecord:
        values: Dict[str, Any] = {}
        for attribute in schema.attributes:
            values[attribute.name] = self._bind_attribute(prefix, attribute)

        self._report_unknown_keys(prefix, schema)
        return TypedRecord(schema.name, values)

    def _bind_attribute(self, prefix: str, attribute: Attribute) -> Any:
        full_key = join_key(prefix, attribute.name)

        if attribute.type == ValueType.RECORD:
            return self.bind(full_key, attribute.record)

        key, value = self._lookup(prefix, attribute)
        if value is not _NOT_FOUND:
            logger.debug(f"Bound '{key}' from {self.snapshot.source_of(key)}")
            return self._coerce(value, attribute, key)

        if attribute.type == ValueType.LIST:
            items = self._indexed_values(full_key)
            if items:
                return to_list(items, attribute.item_type, full_key)

        if attribute.type == ValueType.MAP:
            entries = self._child_values(full_key)
            if entries:
                return to_map(entries, attribute.value_type, full_key)

        if attribute.has_default:
            return self._default(attribute, full_key)

        if attribute.required:
            raise MissingRequiredPropertyError(
                f"Required property '{full_key}' is not defined in any configuration source",
                key=full_key
            )

        return ABSENT

    def _lookup(self, prefix: str, attribute: Attribute) -> Tuple[str, Any]:
        candidates = [join_key(prefix, attribute.name)]
        relaxed = join_key(prefix, kebab_case(attribute.name))
        if relaxed != candidates[0]:
            candidates.append(relaxed)

        for key in candidates:
            raw = self.snapshot.get_raw(key)
            if raw is None:
                continue
            value = self.resolver.resolve(raw)
            if value is not None:
                return key, value
        return candidates[0], _NOT_FOUND

    def _indexed_values(self, full_key: str) -> List[Any]:
        items = []
        index = 0
        while True:
            raw = self.snapshot.get_raw(f"{full_key}[{index}]")
            if raw is None:
                return items
            items.append(self.resolver.resolve(raw))
            index += 1

    def _child_values(self, full_key: str) -> Dict[str, Any]:
        start = len(full_key) + len(KEY_DELIMITER)
        entries: Dict[str, Any] = {}
        for key in self.snapshot.child_keys(full_key):
            entries[key[start:]] = self.resolver.resolve(self.snapshot.get_raw(key))
        return entries

    def _coerce(self, value: Any, attribute: Attribute, key: str) -> Any:
        return coerce(value, attribute.type, attribute.item_type, attribute.value_type, key=key)

    def _default(self, attribute: Attribute, full_key: str) -> Any:
        default = attribute.default
        if default is None:
            return None
        if isinstance(default, str):
            default = self.resolver.resolve(default)
        else:
            default = copy.deepcopy(default)
        logger.debug(f"Property '{full_key}' not found, using declared default")
        return self._coerce(default, attribute, full_key)

    def _report_unknown_keys(self, prefix: str, schema: RecordSchema) -> None:
        if not prefix or not logger.isEnabledFor(logging.DEBUG):
            return

        known = set(schema.names) | {kebab_case(name) for name in schema.names}
        start = len(prefix) + len(KEY_DELIMITER)
        for key in self.snapshot.child_keys(prefix):
            segment = re.split(r"[.\[]", key[start:], maxsplit=1)[0]
            if segment not in known:
                logger.debug(f"Ignoring key '{key}' not declared by schema '{schema.name}'")


def bind(prefix: str, source: PropertySnapshot, schema: RecordSchema) -> TypedRecord:
    """Bind ``prefix`` of ``source`` onto ``schema``."""
    return StructuralBinder(source).bind(prefix, schema)
