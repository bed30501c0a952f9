"""
Configuration sources for loading flat key/value configuration data.

Every source yields a flat ``Dict[str, str]`` of dotted keys to raw string
values. Nested formats (YAML) are flattened on load so that all sources share
one key namespace.
"""

import getpass
import io
import logging
import os
import platform
import re
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Union

import yaml
from dotenv import dotenv_values

from ..exceptions import SourceLoadError

logger = logging.getLogger(__name__)

DEFAULTS_PRIORITY = 0
DEFAULTS_FILE_PRIORITY = 50
FILE_PRIORITY = 100
DOTENV_PRIORITY = 150
ENVIRONMENT_PRIORITY = 200
SYSTEM_PROPERTIES_PRIORITY = 300
COMMAND_LINE_PRIORITY = 400

_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_ESCAPES = {'t': '\t', 'n': '\n', 'r': '\r', 'f': '\f'}


def stringify(value: Any) -> str:
    """Render a structured scalar the way property files spell it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ConfigurationSource(ABC):
    """Abstract base class for configuration sources."""

    # Source kinds let expressions address a layer, e.g. systemProperties['x'].
    kind: str = "file"
    # Relaxed sources also match APP_DEFAULTVALUE for app.defaultValue.
    relaxed_names: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Human readable name used in logs and error messages."""
        pass

    @abstractmethod
    def load(self) -> Dict[str, str]:
        """Load configuration data from the source."""
        pass

    @abstractmethod
    def get_priority(self) -> int:
        """Get the priority of this source (higher number = higher priority)."""
        pass


class _FileConfigurationSource(ConfigurationSource):
    """Shared handling for file-backed sources."""

    label = "file"

    def __init__(self, file_path: Union[str, Path], priority: int = FILE_PRIORITY, optional: bool = False):
        self.file_path = Path(file_path)
        self.priority = priority
        self.optional = optional

    @property
    def name(self) -> str:
        return f"{self.label} [{self.file_path}]"

    def get_priority(self) -> int:
        return self.priority

    def load(self) -> Dict[str, str]:
        if not self.file_path.exists():
            if self.optional:
                logger.debug(f"Optional configuration file not found, skipping: {self.file_path}")
                return {}
            raise SourceLoadError(
                f"Configuration file not found: {self.file_path}",
                source_name=self.name,
                context={"file_path": str(self.file_path)}
            )

        try:
            text = self.file_path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise SourceLoadError(
                f"Error reading configuration file: {self.file_path}",
                source_name=self.name,
                context={"file_path": str(self.file_path), "error": str(e)},
                cause=e
            ) from e

        return self._parse(text)

    @abstractmethod
    def _parse(self, text: str) -> Dict[str, str]:
        pass


class PropertiesFileSource(_FileConfigurationSource):
    """Java-style ``.properties`` file source."""

    label = "properties"

    def _parse(self, text: str) -> Dict[str, str]:
        entries: Dict[str, str] = {}
        for line_number, line in _logical_lines(text):
            key, value = self._split_entry(line, line_number)
            if not key:
                raise SourceLoadError(
                    f"Empty property key in {self.file_path} at line {line_number}",
                    source_name=self.name,
                    context={"file_path": str(self.file_path), "line": line_number}
                )
            entries[key] = value
        return entries

    def _split_entry(self, line: str, line_number: int) -> Tuple[str, str]:
        index = 0
        length = len(line)
        while index < length:
            char = line[index]
            if char == '\\':
                index += 2
                continue
            if char in '=:' or char.isspace():
                break
            index += 1

        raw_key = line[:index]
        rest = line[index:].lstrip()
        if rest[:1] in ('=', ':'):
            rest = rest[1:].lstrip()

        return (
            self._unescape(raw_key, line_number),
            self._unescape(rest, line_number),
        )

    def _unescape(self, text: str, line_number: int) -> str:
        if '\\' not in text:
            return text

        out = []
        index = 0
        length = len(text)
        while index < length:
            char = text[index]
            if char != '\\':
                out.append(char)
                index += 1
                continue

            index += 1
            if index >= length:
                break
            escaped = text[index]
            if escaped == 'u':
                digits = text[index + 1:index + 5]
                if len(digits) != 4 or any(d not in '0123456789abcdefABCDEF' for d in digits):
                    raise SourceLoadError(
                        f"Malformed \\uxxxx escape in {self.file_path} at line {line_number}",
                        source_name=self.name,
                        context={"file_path": str(self.file_path), "line": line_number}
                    )
                out.append(chr(int(digits, 16)))
                index += 5
                continue

            out.append(_ESCAPES.get(escaped, escaped))
            index += 1

        return ''.join(out)


def _logical_lines(text: str) -> Iterator[Tuple[int, str]]:
    """Yield (line number, logical line) pairs, joining backslash continuations."""
    pending: Optional[str] = None
    start = 0
    for number, physical in enumerate(_LINE_BREAK.split(text), start=1):
        stripped = physical.lstrip()
        if pending is None:
            if not stripped or stripped[0] in '#!':
                continue
            start = number
            current = stripped
        else:
            current = pending + stripped

        trailing = len(current) - len(current.rstrip('\\'))
        if trailing % 2 == 1:
            pending = current[:-1]
            continue

        pending = None
        yield start, current

    if pending is not None:
        yield start, pending


class YAMLConfigurationSource(_FileConfigurationSource):
    """YAML file configuration source, flattened into dotted keys."""

    label = "yaml"

    def _parse(self, text: str) -> Dict[str, str]:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise SourceLoadError(
                f"Invalid YAML in configuration file: {self.file_path}",
                source_name=self.name,
                context={"file_path": str(self.file_path), "yaml_error": str(e)},
                cause=e
            ) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise SourceLoadError(
                f"YAML file {self.file_path} is not a mapping at root level",
                source_name=self.name,
                context={"file_path": str(self.file_path), "root_type": type(data).__name__}
            )

        flat: Dict[str, str] = {}
        _flatten(data, "", flat)
        return flat


def _flatten(node: Any, parent_key: str, out: Dict[str, str]) -> None:
    """
    Recursively flattens nested YAML data into dotted keys.
    Example:
        {"db": {"maria": {"url": "jdbc:x"}}, "friends": ["tom", "jane"]}
        -> {"db.maria.url": "jdbc:x", "friends[0]": "tom", "friends[1]": "jane"}
    """
    if isinstance(node, dict):
        if not node and parent_key:
            out[parent_key] = ""
        for k, v in node.items():
            key = f"{parent_key}.{k}" if parent_key else str(k)
            _flatten(v, key, out)
    elif isinstance(node, list):
        if not node:
            out[parent_key] = ""
        for i, item in enumerate(node):
            _flatten(item, f"{parent_key}[{i}]", out)
    else:
        out[parent_key] = stringify(node)


class DotEnvConfigurationSource(_FileConfigurationSource):
    """``.env`` file source; names are matched like environment variables."""

    label = "dotenv"
    kind = "environment"
    relaxed_names = True

    def __init__(self, file_path: Union[str, Path] = ".env", priority: int = DOTENV_PRIORITY, optional: bool = True):
        super().__init__(file_path, priority, optional)

    def _parse(self, text: str) -> Dict[str, str]:
        values = dotenv_values(stream=io.StringIO(text))
        return {k: stringify(v) for k, v in values.items()}


class EnvironmentConfigurationSource(ConfigurationSource):
    """Environment variable configuration source."""

    kind = "environment"
    relaxed_names = True

    def __init__(self, prefix: str = "", priority: int = ENVIRONMENT_PRIORITY,
                 environ: Optional[Mapping[str, str]] = None):
        self.prefix = prefix.upper()
        self.priority = priority
        self._environ = environ

    @property
    def name(self) -> str:
        return f"systemEnvironment[{self.prefix}*]" if self.prefix else "systemEnvironment"

    def load(self) -> Dict[str, str]:
        """Load configuration from environment variables."""
        environ = os.environ if self._environ is None else self._environ
        if not self.prefix:
            return dict(environ)

        return {
            key[len(self.prefix):]: value
            for key, value in environ.items()
            if key.upper().startswith(self.prefix) and len(key) > len(self.prefix)
        }

    def get_priority(self) -> int:
        return self.priority


class SystemPropertiesSource(ConfigurationSource):
    """
    Interpreter and host facts exposed as ``systemProperties``.

    Explicit overrides (``-D key=value`` on the command line) replace the
    detected values.
    """

    kind = "system_properties"

    def __init__(self, overrides: Optional[Mapping[str, str]] = None, priority: int = SYSTEM_PROPERTIES_PRIORITY):
        self.overrides = dict(overrides or {})
        self.priority = priority

    @property
    def name(self) -> str:
        return "systemProperties"

    def load(self) -> Dict[str, str]:
        properties = {
            "python.version": platform.python_version(),
            "python.implementation": platform.python_implementation(),
            "python.executable": sys.executable or "",
            "os.name": platform.system(),
            "os.arch": platform.machine(),
            "os.version": platform.release(),
            "user.name": _current_user(),
            "user.home": str(Path.home()),
            "user.dir": os.getcwd(),
            "file.separator": os.sep,
            "path.separator": os.pathsep,
            "line.separator": os.linesep,
            "file.encoding": sys.getfilesystemencoding(),
        }
        properties.update({k: stringify(v) for k, v in self.overrides.items()})
        return properties

    def get_priority(self) -> int:
        return self.priority


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        # No passwd entry and no LOGNAME/USER variables, e.g. in minimal containers
        return ""


class DictConfigurationSource(ConfigurationSource):
    """In-memory source, used for built-in defaults and command-line overrides."""

    kind = "defaults"

    def __init__(self, entries: Mapping[str, Any], name: str = "defaults", priority: int = DEFAULTS_PRIORITY):
        self.entries = {str(k): stringify(v) for k, v in entries.items()}
        self._name = name
        self.priority = priority

    @property
    def name(self) -> str:
        return self._name

    def load(self) -> Dict[str, str]:
        return dict(self.entries)

    def get_priority(self) -> int:
        return self.priority
