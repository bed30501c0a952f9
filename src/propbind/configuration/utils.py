"""
Utility functions for common configuration patterns.
"""

from pathlib import Path
from typing import Iterable, Mapping, Optional, Tuple, Union

from .builder import ConfigurationBuilder
from .core import PropbindConfiguration
from .schema import RecordSchema


def parse_assignment(text: str) -> Tuple[str, str]:
    """Split ``key=value``; the key must not be empty."""
    key, separator, value = text.partition("=")
    key = key.strip()
    if not separator or not key:
        raise ValueError(f"Expected key=value, got {text!r}")
    return key, value


def load_configuration_from_files(
    *paths: Union[str, Path],
    bindings: Optional[Iterable[Tuple[str, str, RecordSchema]]] = None,
    env_prefix: str = "",
    system_properties: Optional[Mapping[str, str]] = None,
) -> PropbindConfiguration:
    """
    Load configuration from property/YAML files with environment and system property overrides.

    Later files override earlier ones. YAML files are recognised by suffix.

    Args:
        paths: Configuration files, lowest precedence first
        bindings: (name, prefix, schema) triples to bind
        env_prefix: Prefix of the visible environment variables
        system_properties: -D style overrides of the system properties

    Returns:
        PropbindConfiguration instance
    """
    builder = ConfigurationBuilder()
    for offset, path in enumerate(paths):
        priority = 100 + offset
        if Path(path).suffix.lower() in ('.yaml', '.yml'):
            builder.add_yaml_source(path, priority)
        else:
            builder.add_properties_source(path, priority)

    builder.add_environment_source(env_prefix)
    builder.add_system_properties(system_properties)

    for name, prefix, schema in bindings or ():
        builder.bind(name, prefix, schema)

    return builder.build()


def create_configuration_builder() -> ConfigurationBuilder:
    """
    Create a new configuration builder.

    Returns:
        ConfigurationBuilder instance
    """
    return ConfigurationBuilder()
