"""
loopkernel - scheduling and code generation for loop kernels.

A kernel is a list of instructions and loop domains. Compilation infers
the missing dependencies, orders everything topologically, nests
overlapping loops and emits a Python function whose parameters are the
kernel's free variables.
"""

from .ir.nodes import (
    Expression,
    Identifier,
    Literal,
    Call,
    Assign,
    Generic,
    Instruction,
    Domain,
    Kernel,
)
from .ir.parse import parse_expression
from .compiler.driver import CompilerDriver, CompilationResult, compile, compile_to_tree
from .backends import ExecutionEngine, KernelHandle, PythonBackend
from .passes.symbol_analysis import kernel_arguments
from .shared.errors import (
    LoopKernelError,
    SchedulingError,
    MalformedInstructionError,
    KernelDefinitionError,
    ExpressionParseError,
    CodegenError,
    KernelInvocationError,
)

__version__ = "0.1.0"

__all__ = [
    "Expression", "Identifier", "Literal", "Call", "Assign", "Generic",
    "Instruction", "Domain", "Kernel", "parse_expression",
    "CompilerDriver", "CompilationResult", "compile", "compile_to_tree",
    "ExecutionEngine", "KernelHandle", "PythonBackend", "kernel_arguments",
    "LoopKernelError", "SchedulingError", "MalformedInstructionError",
    "KernelDefinitionError", "ExpressionParseError", "CodegenError",
    "KernelInvocationError",
]
