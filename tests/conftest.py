"""
Pytest configuration and shared fixtures for all loopkernel tests.

Compilers are cheap but the default expression parser and backend are
shared where it is safe to do so.
"""

import sys
import pytest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from loopkernel.backends.python import PythonBackend
from loopkernel.compiler.driver import CompilerDriver


# =============================================================================
# Session-scoped fixtures (shared across all tests)
# =============================================================================

@pytest.fixture(scope="session")
def session_compiler():
    """
    Session-scoped compiler shared across tests.

    Safe to share: every compilation gets a fresh context and a unique
    kernel name, and the default mode never mutates the kernel.
    """
    return CompilerDriver(in_place=False, dump_ir=False)


@pytest.fixture(scope="class")
def compiler(session_compiler):
    """Class-scoped compiler - returns session compiler (stateless, safe to share)."""
    return session_compiler


# =============================================================================
# Function-scoped fixtures (default - one per test)
# =============================================================================

@pytest.fixture
def backend():
    """Fresh backend per test so registries never leak between tests."""
    return PythonBackend()


@pytest.fixture
def in_place_compiler(backend):
    """Compiler that writes analysis results back into the kernel."""
    return CompilerDriver(backend=backend, in_place=True, dump_ir=False)


@pytest.fixture(autouse=True)
def plain_diagnostics(monkeypatch):
    """Diagnostics without ANSI colors so tests can match text."""
    monkeypatch.setenv("NO_COLOR", "1")
