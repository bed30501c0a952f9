"""
Core configuration class and the process-wide configuration handle.
"""

import logging
import threading
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import ConfigurationError, MissingRequiredPropertyError
from .binder import StructuralBinder
from .coercion import ValueType, coerce
from .placeholders import PlaceholderResolver, ResolvedValue
from .schema import RecordSchema, TypedRecord
from .snapshot import PropertySnapshot, load
from .sources import ConfigurationSource

logger = logging.getLogger(__name__)


class RecordBinding(BaseModel):
    """Registers a schema to be bound from a key prefix under a record name."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)
    prefix: str = ""
    schema_: RecordSchema = Field(alias="schema")


class PropbindConfiguration:
    """
    Loaded configuration: one immutable snapshot plus the records bound from it.

    Sources are loaded and every registered binding is bound exactly once,
    in the constructor. Afterwards the object is read-only; there is no
    reload.
    """

    def __init__(
        self,
        sources: Optional[Sequence[ConfigurationSource]] = None,
        bindings: Optional[Sequence[RecordBinding]] = None
    ):
        self._sources = tuple(sources or ())
        self._bindings = tuple(bindings or ())
        self._check_binding_names()

        self._snapshot = load(self._sources)
        self._resolver = PlaceholderResolver(self._snapshot)
        self._binder = StructuralBinder(self._snapshot, self._resolver)
        self._records = MappingProxyType(self._bind_records())

    def _check_binding_names(self) -> None:
        seen = set()
        for binding in self._bindings:
            if binding.name in seen:
                raise ConfigurationError(f"Duplicate record binding name: {binding.name}")
            seen.add(binding.name)

    def _bind_records(self) -> Dict[str, TypedRecord]:
        records: Dict[str, TypedRecord] = {}
        for binding in self._bindings:
            try:
                records[binding.name] = self._binder.bind(binding.prefix, binding.schema_)
            except ConfigurationError as e:
                logger.debug(f"Failed to bind record '{binding.name}' from prefix '{binding.prefix}': {e}")
                raise
            logger.debug(f"Bound record '{binding.name}' from prefix '{binding.prefix}'")
        return records

    @property
    def snapshot(self) -> PropertySnapshot:
        return self._snapshot

    @property
    def sources(self) -> tuple:
        return self._sources

    @property
    def records(self) -> Mapping[str, TypedRecord]:
        return self._records

    def get_record(self, name: str) -> TypedRecord:
        """Get a record bound at startup."""
        try:
            return self._records[name]
        except KeyError:
            raise ConfigurationError(f"No record bound under the name '{name}'", key=name) from None

    def get(self, key: str, default: Any = None) -> ResolvedValue:
        """Resolved value of ``key``, or ``default`` when no source defines it."""
        raw = self._snapshot.get_raw(key)
        if raw is None:
            return default
        return self._resolver.resolve(raw)

    def require(self, key: str) -> ResolvedValue:
        """Resolved value of ``key``; raises when no source defines it."""
        raw = self._snapshot.get_raw(key)
        if raw is None:
            raise MissingRequiredPropertyError(
                f"Required property '{key}' is not defined in any configuration source",
                key=key
            )
        return self._resolver.resolve(raw)

    def get_typed(
        self,
        key: str,
        target: ValueType,
        default: Any = None,
        item_type: ValueType = ValueType.STRING,
        value_type: ValueType = ValueType.STRING
    ) -> Any:
        """Resolved and coerced value of ``key``, or ``default``."""
        value = self.get(key)
        if value is None:
            return default
        return coerce(value, target, item_type, value_type, key=key)

    def value(
        self,
        expression: str,
        target: ValueType = ValueType.STRING,
        item_type: ValueType = ValueType.STRING,
        value_type: ValueType = ValueType.STRING
    ) -> Any:
        """
        Evaluate a value expression such as ``${app.name}``,
        ``${app.defaultValue:Hello Program}`` or
        ``#{systemProperties['python.version']}`` and coerce the result.

        An expression that evaluates to null yields None.
        """
        resolved = self._resolver.resolve(expression)
        if resolved is None:
            return None
        return coerce(resolved, target, item_type, value_type)

    def bind(self, prefix: str, schema: RecordSchema) -> TypedRecord:
        """Bind an additional schema on demand; the result is not registered."""
        return self._binder.bind(prefix, schema)

    def get_raw_config(self) -> Dict[str, str]:
        """Merged raw (unresolved) key/value view."""
        return self._snapshot.as_dict()

    def describe_sources(self) -> List[str]:
        return [f"{layer.name} ({len(layer)} entries)" for layer in reversed(self._snapshot.layers)]


# Process-wide configuration handle, set once at startup
_configuration: Optional[PropbindConfiguration] = None
_configuration_lock = threading.Lock()


def initialize_configuration(configuration: PropbindConfiguration) -> PropbindConfiguration:
    """Install the process-wide configuration. May be called only once."""
    global _configuration
    with _configuration_lock:
        if _configuration is not None:
            raise ConfigurationError("Configuration has already been initialized")
        _configuration = configuration
    return configuration


def get_configuration() -> PropbindConfiguration:
    """Get the process-wide configuration."""
    if _configuration is None:
        raise ConfigurationError("Configuration has not been initialized")
    return _configuration


def is_configuration_initialized() -> bool:
    return _configuration is not None


def reset_configuration() -> None:
    """Drop the process-wide configuration (intended for tests)."""
    global _configuration
    with _configuration_lock:
        _configuration = None
