"""
Tests for FolioConfig loading and precedence.
"""

from __future__ import annotations

import pytest

from folio.config import FolioConfig, _parse_value
from folio.faults import ConfigInvalidFault


# ============================================================================
# Sources
# ============================================================================


class TestFolioConfig:

    def test_defaults(self):
        config = FolioConfig.load(environ={})
        assert config.urls == ["memory://default"]
        assert config.options == {}

    def test_yaml(self, tmp_path):
        path = tmp_path / "folio.yaml"
        path.write_text(
            "database:\n"
            "  url: mongodb://localhost:27017/blog\n"
            "  options:\n"
            "    serverSelectionTimeoutMS: 2000\n"
        )
        config = FolioConfig.load(str(path), environ={})
        assert config.urls == ["mongodb://localhost:27017/blog"]
        assert config.options == {"serverSelectionTimeoutMS": 2000}

    def test_yaml_url_list(self, tmp_path):
        path = tmp_path / "folio.yaml"
        path.write_text("database:\n  urls:\n    - mongodb://a/blog\n    - mongodb://b/blog\n")
        config = FolioConfig.load(str(path), environ={})
        assert config.urls == ["mongodb://a/blog", "mongodb://b/blog"]

    def test_env(self):
        config = FolioConfig.load(environ={
            "FOLIO_URL": "mongodb://a:27017/blog, mongodb://b:27017/blog",
            "FOLIO_OPTIONS__DATABASE": "blog",
            "FOLIO_OPTIONS__RETRYWRITES": "false",
            "FOLIO_OPTIONS__MAXPOOLSIZE": "20",
            "OTHER": "ignored",
        })
        assert config.urls == ["mongodb://a:27017/blog", "mongodb://b:27017/blog"]
        assert config.options == {"database": "blog", "retrywrites": False, "maxpoolsize": 20}

    def test_dotenv(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("FOLIO_URL=memory://from-dotenv\n")
        config = FolioConfig.load(env_file=str(env_file), environ={})
        assert config.urls == ["memory://from-dotenv"]

    def test_precedence(self, tmp_path):
        path = tmp_path / "folio.yaml"
        path.write_text(
            "database:\n"
            "  url: memory://from-yaml\n"
            "  options:\n"
            "    database: yaml\n"
            "    appname: yaml\n"
        )
        env_file = tmp_path / ".env"
        env_file.write_text("FOLIO_URL=memory://from-dotenv\nFOLIO_OPTIONS__DATABASE=dotenv\n")

        config = FolioConfig.load(str(path), env_file=str(env_file), environ={})
        assert config.urls == ["memory://from-dotenv"]
        assert config.options == {"database": "dotenv", "appname": "yaml"}

        config = FolioConfig.load(
            str(path), env_file=str(env_file), environ={"FOLIO_URL": "memory://from-env"},
        )
        assert config.urls == ["memory://from-env"]
        assert config.options["database"] == "dotenv"

    def test_custom_prefix(self):
        config = FolioConfig.load(env_prefix="APP_DB_", environ={"APP_DB_URL": "memory://x"})
        assert config.urls == ["memory://x"]


# ============================================================================
# Validation
# ============================================================================


class TestValidation:

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigInvalidFault):
            FolioConfig.load(str(tmp_path / "nope.yaml"), environ={})

    def test_bad_url_type(self, tmp_path):
        path = tmp_path / "folio.yaml"
        path.write_text("database:\n  url: 42\n")
        with pytest.raises(ConfigInvalidFault):
            FolioConfig.load(str(path), environ={})

    def test_empty_url(self):
        with pytest.raises(ConfigInvalidFault):
            FolioConfig.load(environ={"FOLIO_URL": " , "})

    def test_bad_options(self, tmp_path):
        path = tmp_path / "folio.yaml"
        path.write_text("database:\n  options: [1, 2]\n")
        with pytest.raises(ConfigInvalidFault) as exc_info:
            FolioConfig.load(str(path), environ={})
        assert exc_info.value.code == "CONFIG_INVALID"


class TestParseValue:

    @pytest.mark.parametrize("raw,expected", [
        ("true", True),
        ("Yes", True),
        ("false", False),
        ("no", False),
        ("42", 42),
        ("1.5", 1.5),
        ('{"w": 1}', {"w": 1}),
        ("[1, 2]", [1, 2]),
        ("{broken", "{broken"),
        ("blog", "blog"),
    ])
    def test_parse(self, raw, expected):
        assert _parse_value(raw) == expected
