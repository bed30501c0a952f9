"""
Configuration builder for creating PropbindConfiguration instances.
"""

from typing import List, Mapping, Optional, Union
from pathlib import Path

from .core import PropbindConfiguration, RecordBinding
from .schema import RecordSchema
from .sources import (
    COMMAND_LINE_PRIORITY,
    DEFAULTS_FILE_PRIORITY,
    DEFAULTS_PRIORITY,
    DOTENV_PRIORITY,
    ENVIRONMENT_PRIORITY,
    FILE_PRIORITY,
    SYSTEM_PROPERTIES_PRIORITY,
    ConfigurationSource,
    DictConfigurationSource,
    DotEnvConfigurationSource,
    EnvironmentConfigurationSource,
    PropertiesFileSource,
    SystemPropertiesSource,
    YAMLConfigurationSource,
)


class ConfigurationBuilder:
    """
    Builder for creating PropbindConfiguration instances with multiple sources.

    Supports property files, YAML files, .env files, environment variables,
    system properties, in-memory defaults and record bindings.
    """

    def __init__(self):
        self._sources: List[ConfigurationSource] = []
        self._bindings: List[RecordBinding] = []

    def add_defaults(self, entries: Mapping[str, str], priority: int = DEFAULTS_PRIORITY) -> 'ConfigurationBuilder':
        """Add built-in default values (lowest precedence)."""
        self._sources.append(DictConfigurationSource(entries, "defaults", priority))
        return self

    def add_properties_source(self, path: Union[str, Path], priority: int = FILE_PRIORITY,
                              optional: bool = False) -> 'ConfigurationBuilder':
        """
        Add a ``.properties`` configuration source.

        Args:
            path: Path to the properties file
            priority: Priority of this source (higher = more important)
            optional: Skip the file silently when it does not exist
        """
        self._sources.append(PropertiesFileSource(path, priority, optional))
        return self

    def add_defaults_file(self, path: Union[str, Path], optional: bool = True) -> 'ConfigurationBuilder':
        """Add a properties or YAML file holding defaults, below explicit files."""
        if Path(path).suffix.lower() in ('.yaml', '.yml'):
            return self.add_yaml_source(path, DEFAULTS_FILE_PRIORITY, optional)
        return self.add_properties_source(path, DEFAULTS_FILE_PRIORITY, optional)

    def add_yaml_source(self, path: Union[str, Path], priority: int = FILE_PRIORITY,
                        optional: bool = False) -> 'ConfigurationBuilder':
        """
        Add a YAML configuration source.

        Args:
            path: Path to the YAML configuration file
            priority: Priority of this source (higher = more important)
            optional: Skip the file silently when it does not exist
        """
        self._sources.append(YAMLConfigurationSource(path, priority, optional))
        return self

    def add_dotenv_source(self, path: Union[str, Path] = ".env", priority: int = DOTENV_PRIORITY,
                          optional: bool = True) -> 'ConfigurationBuilder':
        """Add a ``.env`` file source."""
        self._sources.append(DotEnvConfigurationSource(path, priority, optional))
        return self

    def add_environment_source(self, prefix: str = "", priority: int = ENVIRONMENT_PRIORITY,
                               environ: Optional[Mapping[str, str]] = None) -> 'ConfigurationBuilder':
        """
        Add environment variable configuration source.

        Args:
            prefix: Only variables starting with this prefix are visible, with the prefix removed
            priority: Priority of this source (higher = more important)
            environ: Mapping to read instead of os.environ
        """
        self._sources.append(EnvironmentConfigurationSource(prefix, priority, environ))
        return self

    def add_system_properties(self, overrides: Optional[Mapping[str, str]] = None,
                              priority: int = SYSTEM_PROPERTIES_PRIORITY) -> 'ConfigurationBuilder':
        """Add the systemProperties source with optional -D style overrides."""
        self._sources.append(SystemPropertiesSource(overrides, priority))
        return self

    def add_overrides(self, entries: Mapping[str, str], priority: int = COMMAND_LINE_PRIORITY) -> 'ConfigurationBuilder':
        """Add explicit overrides (e.g. ``--set key=value``) above every other source."""
        self._sources.append(DictConfigurationSource(entries, "commandLineArgs", priority))
        return self

    def add_source(self, source: ConfigurationSource) -> 'ConfigurationBuilder':
        """Add a custom configuration source."""
        self._sources.append(source)
        return self

    def bind(self, name: str, prefix: str, schema: RecordSchema) -> 'ConfigurationBuilder':
        """
        Register a record to be bound at build time.

        Args:
            name: Name the record is retrieved by
            prefix: Key prefix the schema attributes live under
            schema: Record schema
        """
        self._bindings.append(RecordBinding(name=name, prefix=prefix, schema=schema))
        return self

    def build(self) -> PropbindConfiguration:
        """
        Load all sources and bind all registered records.

        Returns:
            PropbindConfiguration instance with all sources loaded and records bound
        """
        return PropbindConfiguration(self._sources.copy(), self._bindings.copy())
