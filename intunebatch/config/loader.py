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

"""Run settings loading and merging for intunebatch.

Settings come from two layers, deep-merged with "last wins" semantics:

1. **Built-in defaults** (DEFAULT_SETTINGS below)
2. **Settings file** (optional YAML passed with ``--config``)

Command-line flags are applied on top by the CLI.

Merge Behavior:
    - **Dicts**: Recursively merged (keys from overlay override base)
    - **Lists**: Completely replaced (NOT appended/extended)
    - **Scalars**: Overwritten (strings, numbers, booleans)

Path Resolution:
    Relative paths in the settings file are resolved against the SETTINGS
    FILE location, so a settings file can live next to its tool cache.
    Currently resolved paths:

    - packaging.tool_path
    - packaging.tool_cache
    - overrides
    - report.path

Example:
    ```yaml
    packaging:
      tool_path: tools/IntuneWinAppUtil.exe
      timeout: 600
    install_test:
      enabled: false
      timeout: 900
    registry_lookup: false
    overrides: overrides.yaml
    report:
      path: reports/packages.csv
    ```

    ```python
    from pathlib import Path
    from intunebatch.config import load_settings

    settings = load_settings(Path("intunebatch.yaml"))
    print(settings["packaging"]["timeout"])  # 600
    ```
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml

from intunebatch.exceptions import ConfigError

__all__ = ["DEFAULT_SETTINGS", "load_settings"]

DEFAULT_SETTINGS: dict[str, Any] = {
    "packaging": {
        "tool_path": None,
        "tool_cache": "cache/tools",
        "timeout": 300,
    },
    "install_test": {
        "enabled": False,
        "timeout": 600,
    },
    "registry_lookup": False,
    "overrides": None,
    "report": {
        "path": None,
    },
}

# (section, key) pairs; section None means top level
_PATH_FIELDS = (
    ("packaging", "tool_path"),
    ("packaging", "tool_cache"),
    (None, "overrides"),
    ("report", "path"),
)


def _load_yaml_file(p: Path) -> Any:
    """Load a YAML file and return the parsed Python object.

    Raises:
        ConfigError: When the file does not exist, cannot be parsed or is
            empty.
    """
    if not p.exists():
        raise ConfigError(f"Settings file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML: {p}: {err}") from err
    except OSError as err:
        raise ConfigError(f"Cannot read settings file {p}: {err}") from err
    if data is None:
        raise ConfigError(f"Settings file is empty: {p}")
    return data


def _deep_merge_dicts(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge two dicts with "overlay wins".

    Rules:
      - dict + dict -> deep merge
      - list + list -> overlay REPLACES base (not concatenated)
      - everything else -> overlay overwrites base

    This function does not mutate inputs; returns a new dict.
    """
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge_dicts(result[k], v)
        else:
            result[k] = v
    return result


def _resolve_known_paths(cfg: dict[str, Any], base_dir: Path) -> None:
    """Resolve relative path fields against base_dir. Modifies cfg in place."""
    for section, key in _PATH_FIELDS:
        container = cfg if section is None else cfg.get(section)
        if not isinstance(container, dict):
            continue
        raw_path = container.get(key)
        if isinstance(raw_path, str) and raw_path:
            p = Path(raw_path)
            if not p.is_absolute():
                container[key] = str((base_dir / p).resolve())


def load_settings(settings_path: Path | None = None) -> dict[str, Any]:
    """Load effective run settings.

    Args:
        settings_path: Optional YAML settings file. When None, the built-in
            defaults are returned.

    Returns:
        A new settings dict (defaults merged with the settings file). Safe
        for the caller to mutate.

    Raises:
        ConfigError: If the settings file is missing, unparsable, empty or
            not a mapping.
    """
    from intunebatch.logging import get_global_logger

    logger = get_global_logger()
    defaults = copy.deepcopy(DEFAULT_SETTINGS)

    if settings_path is None:
        return defaults

    settings_path = settings_path.resolve()
    logger.verbose("CONFIG", f"Loading settings: {settings_path}")

    overlay = _load_yaml_file(settings_path)
    if not isinstance(overlay, dict):
        raise ConfigError(
            f"Top-level YAML must be a mapping (dict): {settings_path}"
        )

    _resolve_known_paths(overlay, settings_path.parent)
    merged = _deep_merge_dicts(defaults, overlay)

    logger.debug("CONFIG", "--- Effective settings ---")
    dumped = yaml.safe_dump(merged, default_flow_style=False, sort_keys=False)
    for line in dumped.splitlines():
        logger.debug("CONFIG", f"  {line}")

    return merged
