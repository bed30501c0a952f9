"""
Shared fixtures for the propbind test suite.
"""

import logging

import pytest

from propbind.configuration import (
    DictConfigurationSource,
    EnvironmentConfigurationSource,
    SystemPropertiesSource,
    load,
    reset_configuration,
)


@pytest.fixture(autouse=True)
def clean_global_state():
    """Reset the process-wide configuration handle and the package logger."""
    reset_configuration()
    yield
    reset_configuration()
    package_logger = logging.getLogger("propbind")
    package_logger.handlers = []
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def write_file(tmp_path):
    """Write a text file below tmp_path and return its path."""
    def _write(name, content):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def make_snapshot():
    """Build a snapshot from in-memory layers, lowest precedence first."""
    def _make(*layers, environment=None, system_properties=None):
        sources = [
            DictConfigurationSource(entries, name=f"layer{index}", priority=index * 10)
            for index, entries in enumerate(layers)
        ]
        if environment is not None:
            sources.append(EnvironmentConfigurationSource(environ=environment))
        if system_properties is not None:
            sources.append(SystemPropertiesSource(system_properties))
        return load(sources)
    return _make


@pytest.fixture
def example_properties():
    """The key namespace of the property test application."""
    return {
        "app.name": "prop-test",
        "app.friends": "tom,jane, bob",
        "app.cutline": "{A:80,B:90}",
        "db.maria.url": "jdbc:mariadb://localhost:3306/${db.maria.dbName}",
        "db.maria.dbName": "testdb",
        "db.maria.userName": "tester",
        "db.maria.password": "secret",
        "student.user.name": "Kido",
        "student.user.age": "20",
        "student.user.subject": "Math",
        "student.address.postNum": "12345",
        "student.address.mainAddress": "Seoul",
        "student.address.detailAddress": "Gangnam-gu",
    }


@pytest.fixture
def config_dir(write_file, tmp_path):
    """A config directory with db.properties and config.properties."""
    write_file("config/config.properties", "\n".join([
        "app.name=prop-test",
        "app.friends=tom,jane, bob",
        "app.cutline={A:80,B:90}",
        "student.user.name=Kido",
        "student.user.age=20",
        "student.user.subject=Math",
        "student.address.postNum=12345",
        "student.address.mainAddress=Seoul",
        "student.address.detailAddress=Gangnam-gu",
        "",
    ]))
    write_file("config/db.properties", "\n".join([
        "db.maria.url=jdbc:mariadb://localhost:3306/${db.maria.dbName}",
        "db.maria.dbName=testdb",
        "db.maria.userName=tester",
        "db.maria.password=secret",
        "",
    ]))
    return tmp_path / "config"
