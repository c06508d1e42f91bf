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

"""Package creation for intunebatch.

This package wraps installers into .intunewin containers with
IntuneWinAppUtil.exe.

Example:
    from pathlib import Path
    from intunebatch.build import (
        create_intunewin,
        prepare_working_directory,
        resolve_intunewin_tool,
    )

    tool = resolve_intunewin_tool(Path("tools/IntuneWinAppUtil.exe"), Path("cache/tools"))
    work_dir = prepare_working_directory(Path("installers/setup.exe"), Path("work"))
    package = create_intunewin(tool, work_dir, "setup.exe", Path("output"))
"""

from .packager import (
    create_intunewin,
    prepare_working_directory,
    resolve_intunewin_tool,
)

__all__ = ["create_intunewin", "prepare_working_directory", "resolve_intunewin_tool"]
