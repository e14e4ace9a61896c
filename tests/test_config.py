# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for web interface settings."""

from pathlib import Path

import pytest

from genro_web import ConfigError, MethodStyle, WebInterfaceSettings, load_settings
from genro_web.config import validate_keys


def renderer(template: str, values: dict) -> str:
    return template


class TestWebInterfaceSettings:
    """Tests for WebInterfaceSettings."""

    def test_defaults(self) -> None:
        """Defaults are the root prefix and lower_underscored names."""
        settings = WebInterfaceSettings()
        assert settings.url_prefix == "/"
        assert settings.method_style is MethodStyle.LOWER_UNDERSCORED
        assert settings.renderer is None

    def test_arguments(self) -> None:
        """Constructor arguments override defaults."""
        settings = WebInterfaceSettings(url_prefix="/api", method_style="camel_case", renderer=renderer)
        assert settings.url_prefix == "/api"
        assert settings.method_style is MethodStyle.CAMEL_CASE
        assert settings.renderer is renderer
        assert settings["url_prefix"] == "/api"

    def test_enum_style(self) -> None:
        """Styles can be given as enum members."""
        settings = WebInterfaceSettings(method_style=MethodStyle.LOWER_DASHED)
        assert settings.method_style is MethodStyle.LOWER_DASHED

    def test_file_options_priority(self) -> None:
        """File options override defaults, arguments override file options."""
        settings = WebInterfaceSettings(url_prefix="/x", file_options={"url_prefix": "/file", "method_style": "lower_case"})
        assert settings.url_prefix == "/x"
        assert settings.method_style is MethodStyle.LOWER_CASE

    def test_unknown_style(self) -> None:
        """Unknown styles fail at construction."""
        with pytest.raises(ConfigError, match="Unknown method style"):
            WebInterfaceSettings(method_style="shouting")


class TestValidateKeys:
    """Tests for validate_keys."""

    def test_valid(self) -> None:
        """Keys without underscores pass."""
        validate_keys({"web": {"prefix": "/", "list": [{"a": 1}]}})

    def test_nested_underscore(self) -> None:
        """Underscores are rejected at any depth."""
        with pytest.raises(ConfigError, match="web.url_prefix"):
            validate_keys({"web": {"url_prefix": "/"}})
        with pytest.raises(ConfigError, match=r"items\[0\].bad_key"):
            validate_keys({"items": [{"bad_key": 1}]})


class TestLoadSettings:
    """Tests for load_settings."""

    def write(self, tmp_path: Path, text: str) -> Path:
        config = tmp_path / "genro-web.toml"
        config.write_text(text)
        return config

    def test_load(self, tmp_path: Path) -> None:
        """The [web] table sets prefix and style."""
        config = self.write(tmp_path, '[web]\nprefix = "/chat"\nstyle = "lower_dashed"\n')
        settings = load_settings(config, renderer=renderer)
        assert settings.url_prefix == "/chat"
        assert settings.method_style is MethodStyle.LOWER_DASHED
        assert settings.renderer is renderer

    def test_missing_table(self, tmp_path: Path) -> None:
        """A file without [web] gives the defaults."""
        settings = load_settings(self.write(tmp_path, "[other]\nname = 1\n"))
        assert settings.url_prefix == "/"

    def test_overrides(self, tmp_path: Path) -> None:
        """Keyword overrides take priority over the file."""
        config = self.write(tmp_path, '[web]\nprefix = "/chat"\n')
        assert load_settings(config, url_prefix="/other").url_prefix == "/other"

    def test_env_vars(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Environment variables are expanded."""
        monkeypatch.setenv("CHAT_PREFIX", "/from-env")
        monkeypatch.delenv("CHAT_STYLE", raising=False)
        config = self.write(tmp_path, '[web]\nprefix = "${CHAT_PREFIX}"\nstyle = "${CHAT_STYLE:-lower_case}"\n')
        settings = load_settings(config)
        assert settings.url_prefix == "/from-env"
        assert settings.method_style is MethodStyle.LOWER_CASE

    def test_required_env_var(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Unset required variables are an error."""
        monkeypatch.delenv("GENRO_WEB_UNSET", raising=False)
        config = self.write(tmp_path, '[web]\nprefix = "${GENRO_WEB_UNSET}"\n')
        with pytest.raises(ConfigError, match="GENRO_WEB_UNSET"):
            load_settings(config)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Missing files are an error."""
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Unparseable files are an error."""
        with pytest.raises(ConfigError, match="Failed to parse TOML"):
            load_settings(self.write(tmp_path, "[web\nprefix = "))

    def test_unknown_key(self, tmp_path: Path) -> None:
        """Unknown keys in [web] are an error."""
        with pytest.raises(ConfigError, match="web.theme"):
            load_settings(self.write(tmp_path, '[web]\ntheme = "dark"\n'))

    def test_underscore_key(self, tmp_path: Path) -> None:
        """Underscored keys are an error."""
        with pytest.raises(ConfigError, match="underscore"):
            load_settings(self.write(tmp_path, '[web]\nurl_prefix = "/x"\n'))

    def test_bad_style(self, tmp_path: Path) -> None:
        """Unknown styles in the file are an error."""
        with pytest.raises(ConfigError, match="Unknown method style"):
            load_settings(self.write(tmp_path, '[web]\nstyle = "upper"\n'))
