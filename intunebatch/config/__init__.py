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

"""Configuration loading for intunebatch.

Two independent inputs are loaded once before a batch run starts:

  - Run settings (optional YAML, merged over built-in defaults)
  - Command overrides (optional YAML/JSON, app name -> commands)

Public API:

- load_settings: Load and merge run settings
- load_overrides: Load the command override document (never fatal)
- CommandOverride, OverrideConfig: Override value types

Example:
    Basic usage:

        from pathlib import Path
        from intunebatch.config import load_overrides, load_settings

        settings = load_settings(Path("intunebatch.yaml"))
        overrides = load_overrides(Path("overrides.yaml"))
"""

from .loader import DEFAULT_SETTINGS, load_settings
from .overrides import CommandOverride, OverrideConfig, load_overrides

__all__ = [
    "DEFAULT_SETTINGS",
    "CommandOverride",
    "OverrideConfig",
    "load_overrides",
    "load_settings",
]
