"""
Tests for the command line entry point.
"""

import json
from pathlib import Path

import pytest

from propbind.cli import build_parser, main
from propbind.configuration import get_configuration

REPO_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("APP_NAME", "APP_DEFAULTVALUE", "DB_USER", "DB_MARIA_URL"):
        monkeypatch.delenv(name, raising=False)


class TestParser:
    """Test argument parsing."""

    def test_defaults(self):
        args = build_parser().parse_args([])

        assert args.config_dir == "config"
        assert args.log_level == "INFO"
        assert args.log_format == "pretty"
        assert args.system_properties == []

    def test_log_level_is_case_insensitive(self):
        assert build_parser().parse_args(["--log-level", "debug"]).log_level == "DEBUG"

    def test_repeatable_options(self):
        args = build_parser().parse_args(["-D", "a=1", "-D", "b=2", "--set", "c=3"])

        assert args.system_properties == ["a=1", "b=2"]
        assert args.overrides == ["c=3"]


class TestMain:
    """Test running the application end to end."""

    def test_success(self, config_dir, capsys):
        assert main(["--config-dir", str(config_dir)]) == 0

        out = capsys.readouterr().out
        assert "Project Name: prop-test" in out
        assert "Project Default Value: Hello Program" in out
        assert "Friend: bob" in out
        assert "Friend (split): jane" in out
        assert "Python Version from System Prop: 3.0" in out
        assert "Cutline Level: {'A': 80, 'B': 90}" in out
        assert "Student Info : Kido 20 Math" in out
        assert "DB Prop: jdbc:mariadb://localhost:3306/testdb" in out
        assert "User api url: " in out

    def test_configuration_is_installed(self, config_dir):
        main(["--config-dir", str(config_dir)])

        assert get_configuration().get("app.name") == "prop-test"

    def test_system_property_override(self, config_dir, capsys):
        assert main(["--config-dir", str(config_dir), "-D", "python.version.my=3.12"]) == 0

        assert "Python Version from System Prop: 3.12" in capsys.readouterr().out

    def test_set_override(self, config_dir, capsys):
        assert main(["--config-dir", str(config_dir), "--set", "app.name=demo"]) == 0

        assert "Project Name: demo" in capsys.readouterr().out

    def test_environment_override(self, config_dir, capsys, monkeypatch):
        monkeypatch.setenv("APP_NAME", "from-env")

        assert main(["--config-dir", str(config_dir)]) == 0

        assert "Project Name from env: from-env" in capsys.readouterr().out

    def test_explicit_files(self, config_dir, write_file, capsys):
        extra = write_file("extra.yaml", "app:\n  name: yaml-name\n")
        env_file = write_file("app.env", "APP_DEFAULTVALUE=from dotenv\n")

        code = main([
            "--properties", str(config_dir / "db.properties"),
            "--properties", str(config_dir / "config.properties"),
            "--yaml", str(extra),
            "--env-file", str(env_file),
        ])

        out = capsys.readouterr().out
        assert code == 0
        assert "Project Name: yaml-name" in out
        assert "Project Default Value: from dotenv" in out

    def test_repository_config(self, capsys):
        assert main(["--config-dir", str(REPO_CONFIG_DIR)]) == 0

        out = capsys.readouterr().out
        assert "Address Info : 12345 Seoul Gangnam-gu Teheran-ro 123" in out
        assert "User api url: http://localhost:8080/api/users" in out
        assert "Cutline Level: {'A': 80, 'B': 90, 'C': 70}" in out

    def test_dump(self, config_dir, capsys):
        assert main(["--config-dir", str(config_dir), "--dump"]) == 0

        assert "app.name = 'prop-test' [properties [" in capsys.readouterr().out

    def test_json_logs(self, config_dir, capsys):
        assert main(["--config-dir", str(config_dir), "--log-format", "json"]) == 0

        lines = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.strip()]
        messages = [line["msg"] for line in lines]
        assert "Project Name: prop-test" in messages
        assert all(line["logger"].startswith("propbind") for line in lines)


class TestMainFailures:
    """Test configuration errors end the run with exit status 1."""

    def test_missing_required_property(self, write_file, tmp_path, capsys):
        write_file("config/config.properties", "app.name=x\n")
        write_file("config/db.properties", "db.maria.dbName=testdb\n")

        assert main(["--config-dir", str(tmp_path / "config")]) == 1

        out = capsys.readouterr().out
        assert "MISSING_REQUIRED_PROPERTY" in out
        assert "db.maria.url" in out

    def test_circular_reference(self, config_dir, capsys):
        assert main(["--config-dir", str(config_dir), "--set", "app.name=${app.name}"]) == 1

        assert "CIRCULAR_REFERENCE" in capsys.readouterr().out

    def test_missing_config_file(self, tmp_path, capsys):
        assert main(["--config-dir", str(tmp_path / "nowhere")]) == 1

        assert "SOURCE_LOAD_ERROR" in capsys.readouterr().out

    def test_missing_env_file(self, config_dir, tmp_path, capsys):
        assert main(["--config-dir", str(config_dir), "--env-file", str(tmp_path / "missing.env")]) == 1

        assert "SOURCE_LOAD_ERROR" in capsys.readouterr().out

    def test_type_error_in_json(self, config_dir, capsys):
        code = main([
            "--config-dir", str(config_dir),
            "--set", "student.user.age=old",
            "--log-format", "json",
        ])

        assert code == 1
        lines = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.strip()]
        failure = [line for line in lines if line["level"] == "ERROR" and "error" in line][-1]
        assert failure["error"]["error_code"] == "TYPE_COERCION_ERROR"
        assert failure["error"]["context"]["key"] == "student.user.age"

    @pytest.mark.parametrize("args", [
        ["--set", "student.user.age=old"],
        ["--env-file", "missing.env"],
    ])
    def test_failure_is_logged_once(self, config_dir, tmp_path, capsys, args):
        """Test a failing source or binding produces a single ERROR line."""
        if args[0] == "--env-file":
            args = [args[0], str(tmp_path / args[1])]

        code = main(["--config-dir", str(config_dir), "--log-format", "json"] + args)

        lines = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.strip()]
        errors = [line for line in lines if line["level"] == "ERROR"]
        assert code == 1
        assert len(errors) == 1
        assert errors[0]["logger"] == "propbind.cli"

    @pytest.mark.parametrize("argv", [
        ["-D", "novalue"],
        ["--set", "=value"],
        ["--log-format", "xml"],
    ])
    def test_usage_errors(self, argv):
        with pytest.raises(SystemExit) as exc_info:
            main(argv)

        assert exc_info.value.code == 2
