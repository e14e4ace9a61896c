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

"""
Web interface settings.

``WebInterfaceSettings`` carries the options of one ``register_web_interface``
call. Options merge with priority:

    DEFAULTS < TOML file (``load_settings``) < constructor arguments

Settings file format (``[web]`` table)::

    [web]
    prefix = "/api"
    style = "lower_dashed"

Key constraints:
- TOML keys CANNOT contain underscore (_).
- String values may reference environment variables: ``${VAR}`` (required)
  or ``${VAR:-default}``.

Example:
    settings = WebInterfaceSettings(url_prefix="/api")
    settings = load_settings("genro-web.toml", renderer=my_renderer)
"""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path
from typing import Any, Callable

from genro_toolbox import SmartOptions  # type: ignore[import-untyped]

from .descriptors import MethodStyle

# Python 3.11+ has tomllib in stdlib
if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib  # type: ignore[import-not-found]
    except ImportError:
        tomllib = None  # type: ignore[assignment]

__all__ = [
    "DEFAULTS",
    "ConfigError",
    "WebInterfaceSettings",
    "load_settings",
    "validate_keys",
]

DEFAULTS = {"url_prefix": "/", "method_style": MethodStyle.LOWER_UNDERSCORED.value}

# TOML key -> settings option
TOML_KEYS = {"prefix": "url_prefix", "style": "method_style"}


class ConfigError(Exception):
    """Configuration error."""


class WebInterfaceSettings:
    """Options of one registered web interface.

    Attributes:
        url_prefix: Prefix of every route of the interface.
        method_style: How method names become URL segments.
        renderer: ``renderer(template, values) -> str`` used by ``render()``.
    """

    __slots__ = ("_opts", "renderer")

    def __init__(
        self,
        url_prefix: str | None = None,
        method_style: MethodStyle | str | None = None,
        renderer: Callable[[str, dict[str, Any]], str] | None = None,
        file_options: dict[str, Any] | None = None,
    ) -> None:
        if isinstance(method_style, MethodStyle):
            method_style = method_style.value
        caller_opts = SmartOptions(
            dict(url_prefix=url_prefix, method_style=method_style),
            ignore_none=True,
        )
        self._opts = SmartOptions(DEFAULTS) + SmartOptions(file_options or {}) + caller_opts
        self.renderer = renderer
        # fail early on an unknown style
        _ = self.method_style

    @property
    def url_prefix(self) -> str:
        result: str = self._opts["url_prefix"]
        return result

    @property
    def method_style(self) -> MethodStyle:
        value = self._opts["method_style"]
        try:
            return MethodStyle(value)
        except ValueError:
            raise ConfigError(f"Unknown method style: {value}") from None

    def __getitem__(self, name: str) -> Any:
        """Proxy bracket access to underlying opts."""
        return self._opts[name]

    def __repr__(self) -> str:
        return f"WebInterfaceSettings(url_prefix={self.url_prefix!r}, method_style={self.method_style.value!r})"


def validate_keys(data: Any, path: str = "") -> None:
    """
    Validate that no keys contain underscore.

    Raises:
        ConfigError: If a key contains underscore.
    """
    if isinstance(data, dict):
        for key, value in data.items():
            full_path = f"{path}.{key}" if path else key
            if "_" in key:
                raise ConfigError(
                    f"Invalid key '{full_path}': underscore (_) is not allowed in keys. "
                    f"Use camelCase or single words instead."
                )
            validate_keys(value, full_path)
    elif isinstance(data, list):
        for i, item in enumerate(data):
            validate_keys(item, f"{path}[{i}]")


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand ``${VAR}`` / ``${VAR:-default}`` in config values."""
    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return _expand_string(obj)
    return obj


def _expand_string(s: str) -> str:
    pattern = r"\$\{([^}]+)\}"

    def replace(match: re.Match[str]) -> str:
        expr = match.group(1)
        if ":-" in expr:
            var_name, default = expr.split(":-", 1)
            return os.environ.get(var_name, default)
        value = os.environ.get(expr)
        if value is None:
            raise ConfigError(f"Required environment variable not set: {expr}")
        return value

    return re.sub(pattern, replace, s)


def load_settings(
    path: str | Path,
    renderer: Callable[[str, dict[str, Any]], str] | None = None,
    **overrides: Any,
) -> WebInterfaceSettings:
    """
    Load web interface settings from the ``[web]`` table of a TOML file.

    Args:
        path: Path to TOML configuration file.
        renderer: Template renderer (not representable in TOML).
        **overrides: Constructor arguments taking priority over the file.

    Raises:
        ConfigError: If file not found, invalid TOML, keys contain underscore,
            an unknown key is used or a required variable is not set.
    """
    if tomllib is None:
        raise ConfigError(
            "TOML support requires Python 3.11+ or 'tomli' package. "
            "Install with: pip install tomli"
        )

    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(path, "rb") as f:
            config = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse TOML: {e}") from e

    validate_keys(config)
    web = _expand_env_vars(config.get("web", {}))

    file_options: dict[str, Any] = {}
    for key, value in web.items():
        if key not in TOML_KEYS:
            raise ConfigError(f"Unknown key 'web.{key}'")
        file_options[TOML_KEYS[key]] = value

    return WebInterfaceSettings(renderer=renderer, file_options=file_options, **overrides)


if __name__ == "__main__":
    pass
