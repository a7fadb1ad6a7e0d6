"""
Execution backends for compiled kernels.
"""

from .base import ExecutionEngine, KernelHandle
from .python import PythonBackend, PythonSourceGenerator

__all__ = ["ExecutionEngine", "KernelHandle", "PythonBackend", "PythonSourceGenerator"]
