"""
Tests for the license header on intunebatch source files.
"""

from __future__ import annotations

from pathlib import Path

import pytest

import intunebatch

# All tests in this file are unit tests (fast, mocked)
pytestmark = pytest.mark.unit

PACKAGE_DIR = Path(intunebatch.__file__).parent
SOURCE_FILES = sorted(PACKAGE_DIR.rglob("*.py"))


@pytest.mark.parametrize(
    "path", SOURCE_FILES, ids=[str(p.relative_to(PACKAGE_DIR)) for p in SOURCE_FILES]
)
def test_apache_header(path):
    """Test that every module carries the project's Apache 2.0 header."""
    lines = path.read_text(encoding="utf-8").splitlines()

    assert lines[0] == "# Copyright 2026 The intunebatch Authors"
    assert "Licensed under the Apache License, Version 2.0" in lines[2]
