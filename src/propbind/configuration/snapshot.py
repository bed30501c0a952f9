"""
Immutable, precedence-ordered view over loaded configuration sources.
"""

import logging
import re
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..exceptions import SourceLoadError
from .sources import ConfigurationSource

logger = logging.getLogger(__name__)

KEY_DELIMITER = "."


def relaxed_name(key: str) -> str:
    """Environment-style spelling of a dotted key: app.defaultValue -> APP_DEFAULTVALUE."""
    name = re.sub(r"[.\[\]]", "_", key.replace("-", ""))
    return re.sub(r"_+", "_", name).strip("_").upper()


class PropertyLayer:
    """Entries contributed by one source, frozen at load time."""

    __slots__ = ("name", "kind", "priority", "relaxed", "_entries", "_relaxed_index")

    def __init__(self, name: str, entries: Mapping[str, str], kind: str = "file",
                 priority: int = 0, relaxed: bool = False):
        self.name = name
        self.kind = kind
        self.priority = priority
        self.relaxed = relaxed
        self._entries = MappingProxyType(dict(entries))
        self._relaxed_index = (
            MappingProxyType({relaxed_name(k): k for k in self._entries}) if relaxed else None
        )

    @property
    def entries(self) -> Mapping[str, str]:
        return self._entries

    def get(self, key: str) -> Optional[str]:
        if key in self._entries:
            return self._entries[key]
        if self._relaxed_index is not None:
            actual = self._relaxed_index.get(relaxed_name(key))
            if actual is not None:
                return self._entries[actual]
        return None

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"PropertyLayer(name={self.name!r}, kind={self.kind!r}, entries={len(self)})"


class PropertySnapshot:
    """
    Layered key/value snapshot.

    Layers are kept in ascending precedence order; a lookup returns the value
    of the highest-precedence layer that holds the key.
    """

    def __init__(self, layers: Iterable[PropertyLayer]):
        self._layers: Tuple[PropertyLayer, ...] = tuple(layers)

    @property
    def layers(self) -> Tuple[PropertyLayer, ...]:
        return self._layers

    def layers_of_kind(self, kind: str) -> List[PropertyLayer]:
        return [layer for layer in self._layers if layer.kind == kind]

    def get_raw(self, key: str) -> Optional[str]:
        """Raw (unresolved) value of ``key`` or None."""
        layer = self._find(key)
        return layer.get(key) if layer is not None else None

    def source_of(self, key: str) -> Optional[str]:
        """Name of the layer that supplies ``key``."""
        layer = self._find(key)
        return layer.name if layer is not None else None

    def contains(self, key: str) -> bool:
        return self._find(key) is not None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.contains(key)

    def keys(self) -> List[str]:
        seen: Dict[str, None] = {}
        for layer in self._layers:
            for key in layer.entries:
                seen.setdefault(key, None)
        return list(seen)

    def child_keys(self, prefix: str) -> List[str]:
        """Keys strictly below ``prefix`` (``prefix.*``), in first-seen order."""
        head = prefix + KEY_DELIMITER
        return [key for key in self.keys() if key.startswith(head)]

    def as_dict(self) -> Dict[str, str]:
        """Merged flat view, later layers overriding earlier ones."""
        merged: Dict[str, str] = {}
        for layer in self._layers:
            merged.update(layer.entries)
        return merged

    def __len__(self) -> int:
        return len(self.keys())

    def _find(self, key: str) -> Optional[PropertyLayer]:
        for layer in reversed(self._layers):
            if layer.get(key) is not None:
                return layer
        return None


def load(sources: Iterable[ConfigurationSource]) -> PropertySnapshot:
    """
    Load every source in priority order into an immutable snapshot.

    Any failing source aborts the whole load; no partial snapshot is returned.
    """
    ordered = sorted(sources, key=lambda s: s.get_priority())
    layers: List[PropertyLayer] = []

    for source in ordered:
        try:
            entries = source.load()
        except SourceLoadError as e:
            logger.debug(f"Failed to load configuration from source {source.name}: {e}")
            raise
        except Exception as e:
            logger.debug(f"Failed to load configuration from source {source.name}: {e}")
            raise SourceLoadError(
                f"Unexpected error loading configuration source {source.name}: {e}",
                source_name=source.name,
                cause=e
            ) from e

        _check_entries(source, entries)
        layers.append(PropertyLayer(
            source.name,
            entries,
            kind=source.kind,
            priority=source.get_priority(),
            relaxed=source.relaxed_names,
        ))
        logger.info(f"Loaded {len(entries)} entries from {source.name}")

    return PropertySnapshot(layers)


def _check_entries(source: ConfigurationSource, entries: Mapping[str, str]) -> None:
    for key, value in entries.items():
        if not isinstance(key, str) or not key:
            raise SourceLoadError(
                f"Source {source.name} produced an empty or non-string key",
                source_name=source.name,
                context={"key": repr(key)}
            )
        if not isinstance(value, str):
            raise SourceLoadError(
                f"Source {source.name} produced a non-string value for '{key}'",
                source_name=source.name,
                key=key
            )
