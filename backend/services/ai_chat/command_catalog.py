"""
Command Catalog

Loads ``commands.yaml`` and exposes the set of commands the assistant is
allowed to emit, with their required and optional parameters.

The catalog is read once per process and cached. Parameter names ending with
"?" in the YAML file are optional; everything else is required.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParamSpec:
    name: str
    required: bool = True

    def render(self) -> str:
        """Prompt notation: optional params are wrapped in brackets."""
        return self.name if self.required else f"[{self.name}]"


@dataclass(frozen=True)
class CommandSpec:
    """One command the assistant may issue."""

    name: str
    parameters: Tuple[ParamSpec, ...] = ()
    description: str = ""

    @property
    def required_params(self) -> List[str]:
        return [p.name for p in self.parameters if p.required]

    def signature(self) -> str:
        return f"{self.name}({', '.join(p.render() for p in self.parameters)})"

    def prompt_line(self) -> str:
        if self.description:
            return f"{self.signature()} - {self.description}"
        return self.signature()


@dataclass(frozen=True)
class CommandCatalog:
    commands: Tuple[CommandSpec, ...]
    version: Optional[int] = None

    def get(self, name: str) -> Optional[CommandSpec]:
        for cmd in self.commands:
            if cmd.name == name:
                return cmd
        return None

    def names(self) -> List[str]:
        return [c.name for c in self.commands]


# ---------------------------------------------------------------------------
# Catalog loading / caching
# ---------------------------------------------------------------------------


_DEFAULT_CATALOG_PATH = Path(__file__).with_name("commands.yaml")
_catalog_cache: Optional[CommandCatalog] = None


def _ensure_dict(value: Any, context: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"Expected a mapping for {context}, got {type(value)}")
    return value


def _parse_param(raw: Any, command: str) -> ParamSpec:
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError(f"Command '{command}' has an invalid parameter entry: {raw!r}")
    name = raw.strip()
    if name.endswith("?"):
        return ParamSpec(name=name[:-1], required=False)
    return ParamSpec(name=name, required=True)


def build_catalog(raw: Dict[str, Any]) -> CommandCatalog:
    """Validate a parsed YAML document and turn it into a catalog."""
    entries = raw.get("commands")
    if not isinstance(entries, list) or not entries:
        raise ValueError("Command catalog must define a non-empty 'commands' list")

    seen = set()
    commands: List[CommandSpec] = []
    for idx, entry in enumerate(entries):
        entry_map = _ensure_dict(entry, f"commands[{idx}]")
        name = entry_map.get("name")
        if not isinstance(name, str) or not name:
            raise ValueError(f"commands[{idx}] is missing a name")
        if name in seen:
            raise ValueError(f"Duplicate command name in catalog: {name}")
        seen.add(name)

        params_raw = entry_map.get("parameters") or []
        if not isinstance(params_raw, list):
            raise ValueError(f"Command '{name}' parameters must be a list")

        commands.append(
            CommandSpec(
                name=name,
                parameters=tuple(_parse_param(p, name) for p in params_raw),
                description=entry_map.get("description") or "",
            )
        )

    return CommandCatalog(commands=tuple(commands), version=raw.get("version"))


def load_catalog(
    path: Optional[Path] = None, *, force_reload: bool = False
) -> CommandCatalog:
    """
    Load the command catalog from YAML, cached after the first call.

    Args:
        path: Alternate catalog file. Passing a path always bypasses the cache.
        force_reload: Re-read the default file even if it is cached.
    """
    global _catalog_cache

    if path is None and _catalog_cache is not None and not force_reload:
        return _catalog_cache

    target = path or _DEFAULT_CATALOG_PATH
    if not target.exists():
        raise FileNotFoundError(f"Command catalog YAML not found at: {target}")
    with target.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    catalog = build_catalog(_ensure_dict(data, "catalog document"))

    if path is None:
        _catalog_cache = catalog
    return catalog
