"""
Storage for the deployment secrets file (``config/.env``).

The ``.env`` file is the single source of truth for generated passwords,
keys and network names. It stays a flat ``KEY=VALUE`` file so that it can
be read by humans, edited manually, and passed to ``docker --env-file``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Tuple, Union

from .errors import ConfigError


PathLike = Union[str, Path]

EnvSection = Tuple[str, Mapping[str, str]]


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _format_value(value: str) -> str:
    if any(ch.isspace() for ch in value) or "#" in value:
        return f'"{value}"'
    return value


def load_env_file(env_path: PathLike) -> Dict[str, str]:
    """
    Load key/value pairs from a .env file.

    Args:
        env_path: Path to the .env file.

    Returns:
        Dictionary of values; empty if the file does not exist.

    Raises:
        ConfigError: If the file cannot be read.
    """
    env_file = Path(env_path)
    values: Dict[str, str] = {}

    if not env_file.exists():
        return values

    try:
        with open(env_file, "r") as f:
            for line in f:
                line = line.strip()
                # Skip comments and empty lines
                if not line or line.startswith("#"):
                    continue
                if line.startswith("export "):
                    line = line[len("export "):]
                if "=" in line:
                    key, value = line.split("=", 1)
                    values[key.strip()] = _unquote(value.strip())
        return values
    except OSError as e:
        raise ConfigError(f"Failed to load .env file {env_file}: {e}") from e


def render_env_file(sections: Iterable[EnvSection], header: Iterable[str] = ()) -> str:
    """
    Render titled sections of key/value pairs as .env text.
    """

    lines: List[str] = [f"# {line}" if line else "#" for line in header]
    if lines:
        lines.append("")

    for title, values in sections:
        lines.append(f"# {title}")
        for key, value in values.items():
            lines.append(f"{key}={_format_value(str(value))}")
        lines.append("")

    return "\n".join(lines)


def save_env_file(
    sections: Iterable[EnvSection],
    env_path: PathLike,
    header: Iterable[str] = (),
) -> None:
    """
    Write a .env file readable only by its owner.

    Raises:
        ConfigError: If the file cannot be written.
    """
    env_file = Path(env_path)

    try:
        env_file.parent.mkdir(parents=True, exist_ok=True)
        with open(env_file, "w") as f:
            f.write(render_env_file(sections, header))
        os.chmod(env_file, 0o600)
    except OSError as e:
        raise ConfigError(f"Failed to save .env file {env_file}: {e}") from e


def update_env_value(env_path: PathLike, key: str, value: str) -> None:
    """
    Set a single key in an existing .env file, keeping every other line.

    The key is appended when it is not present yet.

    Raises:
        ConfigError: If the file does not exist or cannot be rewritten.
    """
    env_file = Path(env_path)
    if not env_file.exists():
        raise ConfigError(f"Environment file not found: {env_file}")

    new_line = f"{key}={_format_value(value)}"
    replaced = False
    output: List[str] = []

    try:
        with open(env_file, "r") as f:
            for raw_line in f.read().splitlines():
                stripped = raw_line.strip()
                if not stripped.startswith("#") and "=" in stripped:
                    current_key = stripped.split("=", 1)[0].strip()
                    if current_key == key:
                        if not replaced:
                            output.append(new_line)
                            replaced = True
                        continue
                output.append(raw_line)

        if not replaced:
            output.append(new_line)

        with open(env_file, "w") as f:
            f.write("\n".join(output) + "\n")
        os.chmod(env_file, 0o600)
    except OSError as e:
        raise ConfigError(f"Failed to update {key} in {env_file}: {e}") from e
