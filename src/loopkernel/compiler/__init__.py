"""
Compiler driver: runs the passes and registers the result with a backend.
"""

from .driver import CompilationResult, CompilerDriver, compile, compile_to_tree, default_driver

__all__ = ["CompilationResult", "CompilerDriver", "compile", "compile_to_tree", "default_driver"]
