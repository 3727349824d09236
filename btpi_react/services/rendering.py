"""
Helpers for writing generated configuration files.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

import yaml


class LiteralStr(str):
    """
    A string emitted as a YAML literal block (``|``), used for PEM material.
    """


class _ConfigDumper(yaml.SafeDumper):
    pass


def _literal_representer(dumper: yaml.SafeDumper, data: LiteralStr) -> yaml.ScalarNode:
    return dumper.represent_scalar("tag:yaml.org,2002:str", str(data), style="|")


_ConfigDumper.add_representer(LiteralStr, _literal_representer)


def render_yaml(data: Mapping[str, Any]) -> str:
    return yaml.dump(dict(data), Dumper=_ConfigDumper, default_flow_style=False, sort_keys=False)


def write_text(path: Path, content: str, mode: int = 0o644) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    os.chmod(path, mode)
    return path


def write_yaml(path: Path, data: Mapping[str, Any], mode: int = 0o644) -> Path:
    return write_text(path, render_yaml(data), mode=mode)


def read_pem(path: Path) -> LiteralStr:
    return LiteralStr(path.read_text(encoding="utf-8").strip() + "\n")


def _hocon_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_hocon_value(item) for item in value) + "]"
    return json.dumps(str(value))


def render_hocon(data: Mapping[str, Any], indent: int = 0) -> str:
    """
    Render nested mappings as HOCON (the format of TheHive and Cortex
    ``application.conf``). Keys are written as-is; strings are quoted.
    Lists of mappings become lists of objects.
    """

    pad = "  " * indent
    lines = []
    for key, value in data.items():
        if isinstance(value, Mapping):
            lines.append(f"{pad}{key} {{")
            lines.append(render_hocon(value, indent + 1).rstrip("\n"))
            lines.append(f"{pad}}}")
        elif isinstance(value, (list, tuple)) and value and all(isinstance(item, Mapping) for item in value):
            lines.append(f"{pad}{key}: [")
            for item in value:
                lines.append(f"{pad}  {{")
                lines.append(render_hocon(item, indent + 2).rstrip("\n"))
                lines.append(f"{pad}  }}")
            lines.append(f"{pad}]")
        else:
            lines.append(f"{pad}{key}: {_hocon_value(value)}")
    return "\n".join(lines) + "\n"
