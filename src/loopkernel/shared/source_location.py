"""
Source Location (Span)

Position of a token inside expression text handed to the expression parser.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SourceLocation:
    """
    Source location of a parsed expression.

    Line and column are 1-based; `end_column` of 0 means unknown.
    """
    file: str
    line: int
    column: int
    end_column: int = 0

    def __str__(self) -> str:
        """Format as file:line:column"""
        return f"{self.file}:{self.line}:{self.column}"
