"""
propbind - externalized configuration binding

Reads values from property files, YAML, .env files, the environment and
system properties, resolves placeholders and binds them into typed records.
"""

__version__ = "0.1.0"

from .configuration import ConfigurationBuilder, PropbindConfiguration
from .exceptions import ConfigurationError

__all__ = [
    "ConfigurationBuilder",
    "PropbindConfiguration",
    "ConfigurationError",
]
