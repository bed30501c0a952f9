#!/usr/bin/env python3
"""
Entry point for the property test application.

Loads the configuration sources, binds the declared records, initializes the
process-wide configuration handle and runs the application. Any
configuration error is logged with the offending key and ends the process
with exit status 1.

Examples:
    # config/db.properties and config/config.properties
    propbind

    # Explicit files, lowest precedence first
    propbind --properties base.properties --properties local.properties --yaml extra.yaml

    # System property and command-line overrides
    propbind -D python.version.my=3.12 --set app.name=demo

    # Show where every key comes from
    propbind --dump --log-level DEBUG
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from propbind.application import PropertyTestApplication
from propbind.configuration import (
    ConfigurationBuilder,
    LoggingConfiguration,
    PropbindConfiguration,
    initialize_configuration,
    parse_assignment,
)
from propbind.exceptions import ConfigurationError
from propbind.logging_setup import setup_logging
from propbind.schemas import BINDINGS

logger = logging.getLogger("propbind.cli")

DEFAULT_CONFIG_DIR = "config"
DEFAULT_PROPERTY_FILES = ("db.properties", "config.properties")
DEFAULTS_FILE = "defaults.properties"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="propbind",
        description="Load externalized configuration, bind it into typed records and log it.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Examples:", 1)[1] if __doc__ else None,
    )
    parser.add_argument(
        "--config-dir",
        default=DEFAULT_CONFIG_DIR,
        help="Directory holding db.properties and config.properties (default: %(default)s)",
    )
    parser.add_argument(
        "--properties",
        action="append",
        default=[],
        metavar="FILE",
        help="Property file to load instead of the config directory files (repeatable)",
    )
    parser.add_argument(
        "--yaml",
        action="append",
        default=[],
        metavar="FILE",
        help="YAML file to load, above the property files (repeatable)",
    )
    parser.add_argument(
        "--env-file",
        metavar="FILE",
        help=".env file to load between the files and the environment",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help="Only environment variables with this prefix are visible (prefix removed)",
    )
    parser.add_argument(
        "-D",
        dest="system_properties",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Set a system property",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a configuration key above every source",
    )
    parser.add_argument(
        "--dump",
        action="store_true",
        help="Log every configuration key with the source supplying it",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Logging level (default: %(default)s)",
    )
    parser.add_argument(
        "--log-format",
        default="pretty",
        choices=["pretty", "json"],
        help="Log output format (default: %(default)s)",
    )
    return parser


def _assignments(parser: argparse.ArgumentParser, values: Sequence[str], option: str) -> Dict[str, str]:
    result: Dict[str, str] = {}
    for text in values:
        try:
            key, value = parse_assignment(text)
        except ValueError as e:
            parser.error(f"{option}: {e}")
        result[key] = value
    return result


def build_configuration(args: argparse.Namespace, system_properties: Dict[str, str],
                        overrides: Dict[str, str]) -> PropbindConfiguration:
    config_dir = Path(args.config_dir)
    builder = ConfigurationBuilder().add_defaults_file(config_dir / DEFAULTS_FILE)

    property_files: List[Path] = [Path(p) for p in args.properties] or [
        config_dir / name for name in DEFAULT_PROPERTY_FILES
    ]
    for offset, path in enumerate(property_files):
        builder.add_properties_source(path, priority=100 + offset)
    for offset, path in enumerate(args.yaml):
        builder.add_yaml_source(path, priority=100 + len(property_files) + offset)

    if args.env_file:
        builder.add_dotenv_source(args.env_file, optional=False)

    builder.add_environment_source(args.env_prefix)
    builder.add_system_properties(system_properties)
    if overrides:
        builder.add_overrides(overrides)

    for name, prefix, schema in BINDINGS:
        builder.bind(name, prefix, schema)

    return builder.build()


def dump_configuration(configuration: PropbindConfiguration) -> None:
    snapshot = configuration.snapshot
    for key in sorted(snapshot.keys()):
        logger.info(f"{key} = {snapshot.get_raw(key)!r} [{snapshot.source_of(key)}]")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    system_properties = _assignments(parser, args.system_properties, "-D")
    overrides = _assignments(parser, args.overrides, "--set")

    setup_logging(LoggingConfiguration(level=args.log_level, format=args.log_format))

    try:
        configuration = initialize_configuration(
            build_configuration(args, system_properties, overrides)
        )
        for description in configuration.describe_sources():
            logger.debug(f"Property source: {description}")
        if args.dump:
            dump_configuration(configuration)

        PropertyTestApplication(configuration).run()
    except ConfigurationError as e:
        logger.error(
            f"Configuration failed [{e.error_code}] {e.message}",
            extra={"error": e.to_dict()},
        )
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
