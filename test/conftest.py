import importlib
import pytest
from pathlib import Path

SUPPORT_FILES = Path(__file__).parent / "support_files"


@pytest.fixture(autouse=True)
def use_asyncio_debug(monkeypatch):
    monkeypatch.setenv("PYTHONASYNCIODEBUG", "1")


@pytest.fixture
def support_files(monkeypatch):
    """Make the modules in support_files importable (generated code imports them by name)."""
    monkeypatch.syspath_prepend(str(SUPPORT_FILES))
    return SUPPORT_FILES


@pytest.fixture
def repo_impl(support_files):
    return importlib.import_module("repo_impl")
