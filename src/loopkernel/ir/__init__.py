"""
Expression Tree and kernel description.
"""

from .nodes import (
    Expression,
    Identifier,
    Literal,
    Call,
    Assign,
    Generic,
    ExpressionVisitor,
    Instruction,
    Domain,
    Kernel,
    KernelItem,
    occurs,
    assignment_target,
)
from .parse import parse_expression

__all__ = [
    "Expression", "Identifier", "Literal", "Call", "Assign", "Generic",
    "ExpressionVisitor", "Instruction", "Domain", "Kernel", "KernelItem",
    "occurs", "assignment_target", "parse_expression",
]
