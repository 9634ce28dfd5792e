"""Tests for settings loading and JSON preprocessing."""

import json
from pathlib import Path

import pytest

from provisioner.config import (
    DEFAULT_CONFIG_TEXT,
    DEFAULT_YAML_CONFIG_TEXT,
    ConfigError,
    Settings,
    Timeouts,
    _format_syntax_error,
    default_config_text,
    load_config,
    load_settings,
    load_yaml_config,
    preprocess_jsonish,
    validate_settings,
)
from provisioner.paths import get_config_dir, get_config_path, get_data_dir


class TestPreprocessJsonish:
    """Tests for the JSON preprocessor."""

    def test_strict_json_unchanged(self):
        text = '{"jobs": 4, "install_prefix": "/usr/local"}'
        assert preprocess_jsonish(text) == text

    def test_trailing_commas(self):
        """Trailing commas become spaces so columns are preserved."""
        text = '{"apt": ["git", "curl",], "jobs": 2,}'
        result = preprocess_jsonish(text)
        assert len(result) == len(text)
        assert json.loads(result) == {"apt": ["git", "curl"], "jobs": 2}

    def test_line_comments(self):
        text = '{\n  // build settings\n  "jobs": 8, // parallel make\n}'
        result = preprocess_jsonish(text)
        assert result.count("\n") == text.count("\n")
        assert json.loads(result) == {"jobs": 8}

    def test_double_slash_inside_string_kept(self):
        text = '{"url": "https://download.docker.com/linux/ubuntu"}'
        assert preprocess_jsonish(text) == text

    def test_escaped_quote_and_comma_in_string(self):
        text = '{"s": "a \\"quoted\\", value,"}'
        assert preprocess_jsonish(text) == text
        assert json.loads(text)["s"] == 'a "quoted", value,'


class TestLoadConfig:
    def test_from_string(self):
        assert load_config('{"jobs": 2,}') == {"jobs": 2}

    def test_from_path(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('// comment\n{"jobs": 3}')
        assert load_config(path) == {"jobs": 3}

    def test_syntax_error_has_caret(self):
        with pytest.raises(ConfigError) as exc_info:
            load_config('{\n  "jobs": ,\n}')
        message = str(exc_info.value)
        assert "line 2" in message
        assert '"jobs": ,' in message
        assert "^" in message

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.json")

    def test_top_level_must_be_object(self):
        with pytest.raises(ConfigError, match="JSON object"):
            load_config("[1, 2]")

    def test_rejects_other_types(self):
        with pytest.raises(TypeError):
            load_config(42)

    def test_format_syntax_error_first_line(self):
        try:
            json.loads("{oops}")
        except json.JSONDecodeError as e:
            message = _format_syntax_error("{oops}", e)
        assert "line 1" in message
        assert message.splitlines()[-1] == " ^"


class TestValidateSettings:
    def test_defaults(self):
        settings = validate_settings({})
        assert settings.install_prefix == Path("/usr/local")
        assert settings.jobs >= 1
        assert settings.timeouts == Timeouts()
        assert settings.timeouts.build is None

    def test_full(self):
        settings = validate_settings(
            {
                "work_dir": "~/src",
                "install_prefix": "/opt/opencv",
                "jobs": 6,
                "timeouts": {"install": 900, "build": 7200},
                "extra_packages": {"prepare": ["ripgrep"]},
                "answers": {"cuda": False},
            }
        )
        assert settings.work_dir == Path("~/src").expanduser().resolve()
        assert settings.install_prefix == Path("/opt/opencv")
        assert settings.jobs == 6
        assert settings.timeouts.install == 900
        assert settings.timeouts.build == 7200
        assert settings.timeouts.probe == 30
        assert settings.extra_packages == {"prepare": ["ripgrep"]}
        assert settings.answers == {"cuda": False}

    @pytest.mark.parametrize(
        "data, message",
        [
            ({"colour": True}, "Unknown config key"),
            ({"jobs": 0}, "jobs"),
            ({"jobs": True}, "jobs"),
            ({"work_dir": ""}, "work_dir"),
            ({"timeouts": {"install": -1}}, "timeouts.install"),
            ({"timeouts": {"forever": 1}}, "Unknown timeout"),
            ({"extra_packages": {"prepare": "git"}}, "extra_packages.prepare"),
            ({"answers": {"cuda": "no"}}, "answers.cuda"),
        ],
    )
    def test_invalid(self, data, message):
        with pytest.raises(ConfigError, match=message):
            validate_settings(data)

    def test_relative_work_dir_is_made_absolute(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        settings = validate_settings({"work_dir": "src"})
        assert settings.work_dir.is_absolute()
        assert settings.work_dir == tmp_path.resolve() / "src"

    def test_null_timeout_disables_limit(self):
        settings = validate_settings({"timeouts": {"install": None}})
        assert settings.timeouts.install is None

    def test_to_dict(self):
        data = Settings(work_dir=Path("/w"), jobs=2).to_dict()
        assert data["work_dir"] == "/w"
        assert data["install_prefix"] == "/usr/local"
        assert data["timeouts"]["download"] == 1800
        json.dumps(data)


class TestLoadSettings:
    def test_missing_default_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PROVISIONER_CONFIG", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        settings = load_settings()
        assert settings == Settings(work_dir=settings.work_dir, jobs=settings.jobs)

    def test_missing_explicit_file_is_error(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "nope.json")

    def test_missing_env_file_is_error(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PROVISIONER_CONFIG", str(tmp_path / "nope.json"))
        with pytest.raises(ConfigError):
            load_settings()

    def test_env_var_path(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.json"
        path.write_text('{"jobs": 3}')
        monkeypatch.setenv("PROVISIONER_CONFIG", str(path))
        assert load_settings().jobs == 3

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("jobs: 4\nanswers:\n  reboot: false\n")
        settings = load_settings(path)
        assert settings.jobs == 4
        assert settings.answers == {"reboot": False}

    def test_empty_yaml_file(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("")
        assert load_yaml_config(path) == {}

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("jobs: [1, 2\n")
        with pytest.raises(ConfigError, match="syntax error"):
            load_yaml_config(path)

    def test_default_template_is_valid(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(DEFAULT_CONFIG_TEXT)
        settings = load_settings(path)
        assert settings.timeouts.build is None
        assert settings.answers == {}

    def test_default_yaml_template_is_valid(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(DEFAULT_YAML_CONFIG_TEXT)
        settings = load_settings(path)
        assert settings.timeouts.build is None
        assert settings.timeouts.download == 1800
        assert settings.answers == {}

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("config.json", DEFAULT_CONFIG_TEXT),
            ("config.yaml", DEFAULT_YAML_CONFIG_TEXT),
            ("config.yml", DEFAULT_YAML_CONFIG_TEXT),
        ],
    )
    def test_template_follows_suffix(self, name, expected):
        assert default_config_text(Path(name)) == expected


class TestPaths:
    def test_config_dir(self, tmp_path, monkeypatch):
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_config_dir() == tmp_path / ".config" / "provisioner"

    def test_config_path_default(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PROVISIONER_CONFIG", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_config_path() == tmp_path / ".config" / "provisioner" / "config.json"

    def test_data_dir_contains_tasks(self):
        assert (get_data_dir() / "tasks.json").is_file()
