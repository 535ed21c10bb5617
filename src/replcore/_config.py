"""Configuration loading from pyproject.toml."""

import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ConfigError(Exception):
    """Error in replcore configuration."""


class ReplConfig(BaseModel):
    """Session settings, read from the ``[tool.replcore]`` table.

    All relative lookup paths are resolved from the project root (directory containing pyproject.toml).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    result_prefix: str = Field(default="res", description="Prefix of auto-generated result keys")
    unit_prefix: str = Field(default="Evaluation", description="Prefix of generated unit names")
    temp_prefix: str = Field(default="replcore-", description="Prefix of the session's temporary directory")
    lookup_paths: tuple[Path, ...] = Field(default=(), description="Extra directories searched for imports")

    @field_validator("result_prefix", "unit_prefix")
    @classmethod
    def _check_identifier(cls, value: str) -> str:
        if not value.isidentifier():
            msg = f"'{value}' is not a valid identifier prefix"
            raise ValueError(msg)
        return value


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Find pyproject.toml by walking up from start_dir.

    Args:
        start_dir: Starting directory. Defaults to current working directory.

    Returns:
        Path to pyproject.toml if found, None otherwise.

    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()

    while True:
        candidate = current / "pyproject.toml"
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            # Reached filesystem root
            return None
        current = parent


def load_config(pyproject_path: Path) -> ReplConfig:
    """Load and validate [tool.replcore] config from pyproject.toml.

    Args:
        pyproject_path: Path to pyproject.toml

    Returns:
        Parsed ReplConfig

    Raises:
        ConfigError: If the configuration is invalid

    """
    project_root = pyproject_path.parent

    with pyproject_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {pyproject_path}: {e}"
            raise ConfigError(msg) from e

    section = data.get("tool", {}).get("replcore", {})
    if not isinstance(section, dict):
        msg = "Invalid [tool.replcore] configuration. Expected a table."
        raise ConfigError(msg)

    try:
        config = ReplConfig.model_validate(section)
    except ValidationError as e:
        msg = f"Invalid [tool.replcore] configuration in {pyproject_path}:\n{e}"
        raise ConfigError(msg) from e

    # Resolve relative to project root
    lookup_paths = tuple(path if path.is_absolute() else project_root / path for path in config.lookup_paths)
    return config.model_copy(update={"lookup_paths": lookup_paths})


def get_config() -> ReplConfig:
    """Get config from pyproject.toml in current directory or parents.

    Returns:
        ReplConfig (defaults if no pyproject.toml or no [tool.replcore] section)

    """
    pyproject_path = find_pyproject_toml()
    if pyproject_path is None:
        return ReplConfig()
    return load_config(pyproject_path)
