# Copyright 2026 The intunebatch Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Per-application command overrides.

An override document maps an application name (installer file name without
extension) to the install and/or uninstall command that should be used for
it, replacing whatever intunebatch would derive on its own.

Document Format:
    YAML, or JSON when the file ends in ``.json``. Top-level mapping:

        Chrome:
          installCommand: Chrome.msi /qn CUSTOM=1
        7z2301-x64:
          installCommand: 7z2301-x64.exe /S
          uninstallCommand: '"C:\\Program Files\\7-Zip\\Uninstall.exe" /S'

    ``install_command`` / ``uninstall_command`` are accepted as aliases.
    Application names are matched case-insensitively.

Error Handling:
    A missing, unreadable or malformed document is never fatal: a warning is
    logged and the run continues with no overrides. Individual entries that
    are not mappings are skipped with a warning.

Example:
    ```python
    from pathlib import Path
    from intunebatch.config import load_overrides

    overrides = load_overrides(Path("overrides.yaml"))
    entry = overrides.get("Chrome")
    if entry and entry.install_command:
        print(entry.install_command)
    ```
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

__all__ = [
    "CommandOverride",
    "OverrideConfig",
    "load_overrides",
]

_INSTALL_KEYS = ("installCommand", "install_command")
_UNINSTALL_KEYS = ("uninstallCommand", "uninstall_command")


@dataclass(frozen=True)
class CommandOverride:
    """Operator-supplied commands for one application.

    Attributes:
        install_command: Install command line, or None.
        uninstall_command: Uninstall command line, or None.
    """

    install_command: str | None = None
    uninstall_command: str | None = None


@dataclass(frozen=True)
class OverrideConfig:
    """Immutable app name -> CommandOverride mapping for a run."""

    entries: Mapping[str, CommandOverride] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_mapping(cls, data: Mapping[str, CommandOverride]) -> OverrideConfig:
        return cls(
            entries=MappingProxyType(
                {name.casefold(): entry for name, entry in data.items()}
            )
        )

    def get(self, app_name: str) -> CommandOverride | None:
        return self.entries.get(app_name.casefold())

    def install_command(self, app_name: str) -> str | None:
        """Non-empty install override for app_name, else None."""
        entry = self.get(app_name)
        if entry and entry.install_command:
            return entry.install_command
        return None

    def uninstall_command(self, app_name: str) -> str | None:
        """Non-empty uninstall override for app_name, else None."""
        entry = self.get(app_name)
        if entry and entry.uninstall_command:
            return entry.uninstall_command
        return None

    def __len__(self) -> int:
        return len(self.entries)


def _pick(entry: Mapping[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = entry.get(key)
        if value is None:
            continue
        value = str(value).strip()
        if value:
            return value
    return None


def parse_overrides(data: Any) -> OverrideConfig:
    """Build an OverrideConfig from a parsed override document.

    Args:
        data: Parsed YAML/JSON document. Must be a mapping (or None for an
            empty document).

    Returns:
        The override configuration. Entries that are not mappings are
        skipped with a warning.

    Raises:
        ValueError: If data is neither None nor a mapping.
    """
    from intunebatch.logging import get_global_logger

    logger = get_global_logger()

    if data is None:
        return OverrideConfig()
    if not isinstance(data, Mapping):
        raise ValueError(
            f"top-level override document must be a mapping, got {type(data).__name__}"
        )

    entries: dict[str, CommandOverride] = {}
    for app_name, entry in data.items():
        if not isinstance(entry, Mapping):
            logger.warning(
                "CONFIG", f"Ignoring override for {app_name!r}: expected a mapping"
            )
            continue
        entries[str(app_name)] = CommandOverride(
            install_command=_pick(entry, _INSTALL_KEYS),
            uninstall_command=_pick(entry, _UNINSTALL_KEYS),
        )
    return OverrideConfig.from_mapping(entries)


def load_overrides(path: Path | None) -> OverrideConfig:
    """Load the override document, degrading to no overrides on any problem.

    Args:
        path: Override document path, or None for no overrides.

    Returns:
        The loaded overrides, or an empty OverrideConfig if path is None,
        missing, unreadable or malformed (a warning is logged for the last
        three cases).
    """
    from intunebatch.logging import get_global_logger

    logger = get_global_logger()

    if path is None:
        return OverrideConfig()

    if not path.exists():
        logger.warning("CONFIG", f"Override file not found, continuing without: {path}")
        return OverrideConfig()

    try:
        with path.open("r", encoding="utf-8-sig") as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
        overrides = parse_overrides(data)
    except (OSError, yaml.YAMLError, ValueError) as err:
        logger.warning(
            "CONFIG", f"Malformed override file {path}, continuing without: {err}"
        )
        return OverrideConfig()

    logger.verbose("CONFIG", f"Loaded {len(overrides)} override(s) from {path}")
    return overrides
