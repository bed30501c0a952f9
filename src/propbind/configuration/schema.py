"""
Record schemas and bound record values.

A ``RecordSchema`` is a declarative description of a configuration record:
attribute names, semantic types, defaults, required flags and nested
records. Schemas are frozen pydantic models, so declaration mistakes fail at
construction time instead of during binding.
"""

import copy
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .coercion import SCALAR_TYPES, ValueType


class _Marker:
    """Singleton marker that survives copying."""

    def __init__(self, global_name: str, label: str, truthy: bool = False):
        self._global_name = global_name
        self._label = label
        self._truthy = truthy

    def __reduce__(self):
        return self._global_name

    def __repr__(self) -> str:
        return f"<{self._label}>"

    def __bool__(self) -> bool:
        return self._truthy

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


# An optional attribute with neither a value nor a default is bound to ABSENT.
ABSENT = _Marker("ABSENT", "absent")
NO_DEFAULT = _Marker("NO_DEFAULT", "no default")

# Members of TypedRecord; an attribute with one of these names would be shadowed.
RESERVED_NAMES = frozenset(("get", "is_absent", "schema_name", "to_dict"))


class Attribute(BaseModel):
    """A single declared attribute of a record schema."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    type: ValueType = ValueType.STRING
    default: Any = NO_DEFAULT
    required: bool = False
    item_type: ValueType = ValueType.STRING
    value_type: ValueType = ValueType.STRING
    record: Optional["RecordSchema"] = None
    description: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Attribute names are single key segments."""
        if '.' in v or v != v.strip():
            raise ValueError(f"Attribute name must be a single key segment: {v!r}")
        if v in RESERVED_NAMES or v.startswith("_"):
            raise ValueError(f"Attribute name {v!r} is reserved by TypedRecord")
        return v

    @model_validator(mode='after')
    def validate_combination(self):
        if self.type == ValueType.RECORD:
            if self.record is None:
                raise ValueError(f"Record attribute '{self.name}' needs a nested schema")
            if self.has_default:
                raise ValueError(f"Record attribute '{self.name}' cannot declare a default")
        elif self.record is not None:
            raise ValueError(f"Only record attributes may declare a nested schema ('{self.name}')")

        if self.required and self.has_default:
            raise ValueError(f"Attribute '{self.name}' cannot be both required and defaulted")
        if self.item_type not in SCALAR_TYPES or self.value_type not in SCALAR_TYPES:
            raise ValueError(f"Attribute '{self.name}' element types must be scalar")
        return self

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT


class RecordSchema(BaseModel):
    """Declarative description of a record bound from a key prefix."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    attributes: Tuple[Attribute, ...] = ()
    description: Optional[str] = None

    @field_validator('attributes')
    @classmethod
    def validate_unique_names(cls, v):
        """Reject duplicate attribute names."""
        seen = set()
        for attribute in v:
            if attribute.name in seen:
                raise ValueError(f"Duplicate attribute name: {attribute.name}")
            seen.add(attribute.name)
        return v

    def attribute(self, name: str) -> Attribute:
        for attribute in self.attributes:
            if attribute.name == name:
                return attribute
        raise KeyError(name)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(attribute.name for attribute in self.attributes)


Attribute.model_rebuild()


class TypedRecord:
    """
    Immutable record produced by binding a schema.

    Attributes are read with attribute or item access. List and map values are
    handed out as copies so the bound snapshot cannot be changed through them.
    """

    __slots__ = ("_schema_name", "_values")

    def __init__(self, schema_name: str, values: Mapping[str, Any]):
        object.__setattr__(self, "_schema_name", schema_name)
        object.__setattr__(self, "_values", MappingProxyType(dict(values)))

    @property
    def schema_name(self) -> str:
        return self._schema_name

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            raise AttributeError(f"{self._schema_name} has no attribute '{name}'") from None

    def __getitem__(self, name: str) -> Any:
        value = self._values[name]
        if isinstance(value, (list, dict)):
            return copy.deepcopy(value)
        return value

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{self._schema_name} is read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{self._schema_name} is read-only")

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def get(self, name: str, default: Any = None) -> Any:
        return self[name] if name in self._values else default

    def is_absent(self, name: str) -> bool:
        return self._values[name] is ABSENT

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested dict; absent attributes become None."""
        result: Dict[str, Any] = {}
        for name, value in self._values.items():
            if isinstance(value, TypedRecord):
                result[name] = value.to_dict()
            elif value is ABSENT:
                result[name] = None
            else:
                result[name] = copy.deepcopy(value)
        return result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypedRecord):
            return NotImplemented
        return self._schema_name == other._schema_name and dict(self._values) == dict(other._values)

    __hash__ = None

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self._values.items())
        return f"{self._schema_name}({fields})"

    def __getstate__(self):
        return {"schema_name": self._schema_name, "values": dict(self._values)}

    def __setstate__(self, state):
        object.__setattr__(self, "_schema_name", state["schema_name"])
        object.__setattr__(self, "_values", MappingProxyType(state["values"]))
