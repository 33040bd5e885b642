"""
Configuration loading.

Lookup order (first hit wins):
1. An explicit path passed by the caller (``--config``)
2. The TODOSMD_CONFIG environment variable
3. ``.todosmd.json`` in the working directory or any parent
4. ``~/.config/todosmd/config.json``
5. Built-in defaults

A config path that is named explicitly but does not exist falls back to
defaults, the same as an absent global config.
"""

import json
import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from todosmd.errors import ConfigError
from todosmd.query.sorting import GROUP_FIELDS, SORT_FIELDS

log = logging.getLogger(__name__)

CONFIG_FILENAME = ".todosmd.json"
CONFIG_ENV_VAR = "TODOSMD_CONFIG"


class Config(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    files: List[str] = Field(default_factory=lambda: ["todos.md"])
    output: str = "todos.json"
    default_sort: str = "project"
    default_group_by: str = "project"


def global_config_path() -> Path:
    """Recomputed on each call so a patched HOME is honoured."""
    return Path.home() / ".config" / "todosmd" / "config.json"


def find_config_path(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Walk up from ``start_dir`` (default: cwd) looking for .todosmd.json."""
    directory = (start_dir or Path.cwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def resolve_config_path(path: Union[str, Path, None] = None, start_dir: Optional[Path] = None) -> Path:
    if path:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR, "")
    if env_path:
        return Path(env_path)
    return find_config_path(start_dir) or global_config_path()


def load_config(path: Union[str, Path, None] = None, start_dir: Optional[Path] = None) -> Config:
    """
    Load the effective configuration.

    Raises:
        ConfigError: the config file is not valid JSON or fails validation
    """
    config_path = resolve_config_path(path, start_dir)
    if not config_path.is_file():
        log.debug("No config at %s, using defaults", config_path)
        return Config()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file: {config_path}") from e
    except OSError as e:
        raise ConfigError(f"Could not read config file {config_path}: {e}") from e

    try:
        config = Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e

    _check_view_defaults(config, config_path)

    log.debug("Loaded config from %s", config_path)
    return config


def _check_view_defaults(config: Config, config_path: Path) -> None:
    if config.default_group_by not in GROUP_FIELDS:
        raise ConfigError(
            f"Invalid config file {config_path}: defaultGroupBy must be one of "
            f"{', '.join(GROUP_FIELDS)}, got '{config.default_group_by}'"
        )
    for field in (s.strip() for s in config.default_sort.split(",")):
        if field and field not in SORT_FIELDS:
            raise ConfigError(
                f"Invalid config file {config_path}: defaultSort has unknown field '{field}' "
                f"(expected {', '.join(SORT_FIELDS)})"
            )


def resolve_files(config: Config, file_flags: Optional[List[str]] = None) -> List[str]:
    return list(file_flags) if file_flags else list(config.files)


def resolve_output(config: Config, output_flag: Optional[str] = None) -> str:
    return output_flag or config.output
