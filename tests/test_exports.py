"""Tests for the public package surface.

Every name in each ``__all__`` must be importable, and the top-level
package must not import the CLI.  Every source module must parse.
"""

import ast
import importlib
from pathlib import Path

import pytest

INIT_PY = Path(__file__).parent.parent / "src" / "db_purge" / "__init__.py"

PACKAGES = [
    "db_purge",
    "db_purge.adapters",
    "db_purge.config",
    "db_purge.purge",
    "db_purge.schema",
]


class TestAllExports:
    """Verify ``__all__`` lists resolve."""

    @pytest.mark.parametrize("package", PACKAGES)
    def test_all_names_importable(self, package: str) -> None:
        module = importlib.import_module(package)
        for name in module.__all__:
            assert hasattr(module, name), f"{package}.{name} listed in __all__ but missing"

    @pytest.mark.parametrize("package", PACKAGES)
    def test_no_duplicate_names(self, package: str) -> None:
        module = importlib.import_module(package)
        assert len(module.__all__) == len(set(module.__all__))

    def test_version(self) -> None:
        import db_purge

        assert db_purge.__version__ == "0.1.0"

    def test_top_level_core_api(self) -> None:
        from db_purge import (
            AsyncPostgresExecutor,
            ConflictError,
            ExecutionError,
            SchemaIntrospector,
            execute_plan,
            plan_deletion,
        )

        assert callable(plan_deletion)
        assert callable(execute_plan)
        assert issubclass(ConflictError, Exception)
        assert issubclass(ExecutionError, Exception)
        assert AsyncPostgresExecutor.__name__ == "AsyncPostgresExecutor"
        assert SchemaIntrospector.__name__ == "SchemaIntrospector"

    def test_library_does_not_import_cli(self) -> None:
        """The top-level package never imports the rich-based CLI."""
        tree = ast.parse(INIT_PY.read_text())
        for node in ast.walk(tree):
            if isinstance(node, ast.ImportFrom) and node.module:
                assert not node.module.startswith("db_purge.cli")
            if isinstance(node, ast.Import):
                assert all(not alias.name.startswith("db_purge.cli") for alias in node.names)


class TestSourceTree:
    """Verify every module under src/ parses and imports."""

    SOURCES = sorted((INIT_PY.parent).rglob("*.py"))

    @pytest.mark.parametrize("path", SOURCES, ids=lambda p: str(p.relative_to(INIT_PY.parent)))
    def test_module_parses(self, path: Path) -> None:
        ast.parse(path.read_text(), filename=str(path))

    @pytest.mark.parametrize(
        "module",
        PACKAGES + ["db_purge.adapters.postgres", "db_purge.factory", "db_purge.cli"],
    )
    def test_module_imports(self, module: str) -> None:
        assert importlib.import_module(module) is not None
