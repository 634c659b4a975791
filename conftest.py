"""Root conftest.py for the hwtest-continuity repository.

Puts the package src directory on the path so tests run without an install,
registers markers, marks tests that use mocks, and skips hardware tests
unless asked for.
"""

from __future__ import annotations

import ast
import inspect
import sys
import textwrap
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.config.argparsing import Parser
    from _pytest.nodes import Item


# Add all package src directories to path for imports
PROJECT_ROOT = Path(__file__).parent
for pkg_dir in PROJECT_ROOT.glob("hwtest-*/src"):
    if str(pkg_dir) not in sys.path:
        sys.path.insert(0, str(pkg_dir))


def pytest_addoption(parser: Parser) -> None:
    """Add the --run-integration option.

    Args:
        parser: pytest command line parser.
    """
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against a real tester on the I2C bus",
    )


def pytest_configure(config: Config) -> None:
    """Register custom markers.

    Args:
        config: pytest configuration object.
    """
    config.addinivalue_line(
        "markers",
        "uses_mock: Test uses mocking (auto-detected or manually marked)",
    )
    config.addinivalue_line(
        "markers",
        "integration: Integration test requiring real hardware",
    )


_MOCK_NAMES = frozenset({"MagicMock", "Mock", "patch", "create_autospec", "PropertyMock"})


def _uses_mock(item: Item) -> bool:
    """Return True if the test body or its arguments refer to a mock."""
    function = getattr(item, "function", None)
    if function is None:
        return False
    try:
        tree = ast.parse(textwrap.dedent(inspect.getsource(function)))
    except (OSError, TypeError, SyntaxError):
        return False

    for node in ast.walk(tree):
        if isinstance(node, ast.Name):
            name = node.id
        elif isinstance(node, ast.Attribute):
            name = node.attr
        elif isinstance(node, ast.arg):
            name = node.arg
        else:
            continue
        if name in _MOCK_NAMES or "mock" in name.lower():
            return True
    return False


def pytest_collection_modifyitems(config: Config, items: list[Item]) -> None:
    """Mark tests that use mocks and skip integration tests.

    Integration tests run only when --run-integration is given.

    Args:
        config: pytest configuration object.
        items: List of collected test items.
    """
    for item in items:
        if not item.get_closest_marker("uses_mock") and _uses_mock(item):
            item.add_marker(pytest.mark.uses_mock)

    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="needs --run-integration")
    for item in items:
        if item.get_closest_marker("integration"):
            item.add_marker(skip_integration)


def pytest_report_header(config: Config) -> list[str]:
    """Add a header line to the pytest report.

    Args:
        config: pytest configuration object.

    Returns:
        List of header lines.
    """
    return ["hwtest-continuity test suite"]
