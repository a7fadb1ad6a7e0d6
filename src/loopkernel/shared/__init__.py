"""
Shared definitions used across the compiler (errors, source locations).
"""

from .errors import (
    LoopKernelError,
    SchedulingError,
    MalformedInstructionError,
    KernelDefinitionError,
    ExpressionParseError,
    CodegenError,
    KernelInvocationError,
)
from .source_location import SourceLocation

__all__ = [
    "LoopKernelError",
    "SchedulingError",
    "MalformedInstructionError",
    "KernelDefinitionError",
    "ExpressionParseError",
    "CodegenError",
    "KernelInvocationError",
    "SourceLocation",
]
