"""
Configuration Binding System

Layered key/value sources (properties, YAML, .env, environment, system
properties), ${...} placeholder and #{...} expression resolution, typed
coercion and binding of key prefixes onto declarative record schemas.
"""

from .sources import (
    ConfigurationSource,
    PropertiesFileSource,
    YAMLConfigurationSource,
    DotEnvConfigurationSource,
    EnvironmentConfigurationSource,
    SystemPropertiesSource,
    DictConfigurationSource
)

from .snapshot import PropertyLayer, PropertySnapshot, load

from .placeholders import PlaceholderResolver, resolve

from .expressions import ExpressionEvaluator

from .coercion import ValueType, coerce

from .schema import ABSENT, Attribute, RecordSchema, TypedRecord

from .binder import StructuralBinder, bind

from .models import LoggingConfiguration

from .core import (
    PropbindConfiguration,
    RecordBinding,
    initialize_configuration,
    get_configuration,
    is_configuration_initialized,
    reset_configuration
)

from .builder import ConfigurationBuilder

from .utils import (
    load_configuration_from_files,
    create_configuration_builder,
    parse_assignment
)

__all__ = [
    # Sources
    'ConfigurationSource',
    'PropertiesFileSource',
    'YAMLConfigurationSource',
    'DotEnvConfigurationSource',
    'EnvironmentConfigurationSource',
    'SystemPropertiesSource',
    'DictConfigurationSource',

    # Snapshot
    'PropertyLayer',
    'PropertySnapshot',
    'load',

    # Resolution
    'PlaceholderResolver',
    'ExpressionEvaluator',
    'resolve',

    # Coercion
    'ValueType',
    'coerce',

    # Schema and binding
    'ABSENT',
    'Attribute',
    'RecordSchema',
    'TypedRecord',
    'StructuralBinder',
    'bind',

    # Models
    'LoggingConfiguration',

    # Core
    'PropbindConfiguration',
    'RecordBinding',
    'initialize_configuration',
    'get_configuration',
    'is_configuration_initialized',
    'reset_configuration',

    # Builder
    'ConfigurationBuilder',

    # Utilities
    'load_configuration_from_files',
    'create_configuration_builder',
    'parse_assignment'
]
