"""Defaults for command-line options, read from a TOML config file and the environment."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

try:
    import tomllib

    def load_toml(path):
        with open(path, 'rb') as f:
            return tomllib.load(f)
except ImportError:
    import toml

    def load_toml(path):
        return toml.load(path)

from errors import ArgumentsError, ConfigError
from filters import IgnoreRule
from report import DEFAULT_COLUMNS, parse_columns

CONFIG_ENV_VAR = 'CHECK_OUTDATED_CONFIG'
LOCAL_CONFIG_NAME = '.check-outdated.toml'
CONFIG_DIR_NAME = 'check-outdated'
CONFIG_FILE_NAME = 'config.toml'

BOOLEAN_KEYS = ('ignore_pre_releases', 'ignore_dev_dependencies', 'global', 'color')
KNOWN_KEYS = BOOLEAN_KEYS + ('ignore_packages', 'columns', 'depth')


@dataclass(frozen=True)
class Settings:
    ignore_pre_releases: bool = False
    ignore_dev_dependencies: bool = False
    ignore_rules: Tuple[IgnoreRule, ...] = ()
    columns: Tuple[str, ...] = DEFAULT_COLUMNS
    global_scope: bool = False
    depth: Optional[int] = None
    color: bool = True
    source: Optional[str] = field(default=None, compare=False)


def get_xdg_config_home(environ=None):
    """Get XDG config directory, defaulting to ~/.config"""
    environ = os.environ if environ is None else environ
    return environ.get('XDG_CONFIG_HOME') or os.path.expanduser('~/.config')


def get_user_config_path(environ=None) -> Path:
    return Path(get_xdg_config_home(environ)) / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def find_config_file(explicit_path=None, environ=None, cwd=None) -> Optional[Path]:
    """Locate the config file to use.

    An explicitly given path (option or environment variable) must exist. The
    project file in the working directory wins over the per-user file.
    """
    environ = os.environ if environ is None else environ

    for candidate in (explicit_path, environ.get(CONFIG_ENV_VAR)):
        if candidate:
            path = Path(candidate).expanduser()
            if not path.is_file():
                raise ConfigError(f"Config file not found: {path}")
            return path

    local = Path(cwd or Path.cwd()) / LOCAL_CONFIG_NAME
    if local.is_file():
        return local

    user = get_user_config_path(environ)
    if user.is_file():
        return user

    return None


def parse_ignore_packages(value) -> Tuple[IgnoreRule, ...]:
    """Build ignore rules from a comma separated string or a list of package tokens."""
    tokens = value.split(',') if isinstance(value, str) else list(value)
    if not tokens or not all(isinstance(token, str) and token.strip() for token in tokens):
        raise ArgumentsError("Invalid value of --ignore-packages")
    return tuple(IgnoreRule.parse(token) for token in tokens)


def parse_depth(value) -> int:
    if isinstance(value, bool):
        raise ArgumentsError("Invalid value of --depth")
    try:
        depth = int(str(value).strip())
    except ValueError:
        raise ArgumentsError("Invalid value of --depth")
    if depth < 0:
        raise ArgumentsError("Invalid value of --depth")
    return depth


def settings_from_mapping(data, source=None, environ=None) -> Settings:
    """Validate config file contents; keys mirror the command-line options."""
    environ = os.environ if environ is None else environ
    where = f" in {source}" if source else ''

    unknown = sorted(set(data) - set(KNOWN_KEYS))
    if unknown:
        raise ConfigError(f"Unknown config key{'s' if len(unknown) > 1 else ''}{where}: {', '.join(unknown)}")

    for key in BOOLEAN_KEYS:
        if key in data and not isinstance(data[key], bool):
            raise ConfigError(f'Config key "{key}"{where} must be true or false')

    values = {}
    try:
        if 'ignore_packages' in data:
            values['ignore_rules'] = parse_ignore_packages(data['ignore_packages'])
        if 'columns' in data:
            columns = data['columns']
            values['columns'] = parse_columns(columns if isinstance(columns, str) else ','.join(map(str, columns)))
        if 'depth' in data:
            values['depth'] = parse_depth(data['depth'])
    except ArgumentsError as e:
        raise ConfigError(f"{e}{where}")

    color = data.get('color', True)
    if 'NO_COLOR' in environ:
        color = False

    return Settings(
        ignore_pre_releases=data.get('ignore_pre_releases', False),
        ignore_dev_dependencies=data.get('ignore_dev_dependencies', False),
        global_scope=data.get('global', False),
        color=color,
        source=source,
        **values,
    )


def load_settings(explicit_path=None, environ=None, cwd=None) -> Settings:
    path = find_config_file(explicit_path, environ=environ, cwd=cwd)
    if path is None:
        return settings_from_mapping({}, environ=environ)

    try:
        data = load_toml(path)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Could not read config file {path}: {e}")

    return settings_from_mapping(data, source=str(path), environ=environ)
