"""
Error Reporting

Exception hierarchy raised by the compiler pipeline, plus a caret-style
diagnostic renderer for errors that point into expression text.
"""

import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence
from .source_location import SourceLocation


# ---------------------------------------------------------------------------
# ANSI color helpers (disabled when NO_COLOR is set or LOOPKERNEL_COLOR is off)
# ---------------------------------------------------------------------------

def _use_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    explicit = os.environ.get("LOOPKERNEL_COLOR", "").lower()
    if explicit in ("0", "false", "no", "never"):
        return False
    return True

_BOLD   = "\033[1m"
_RED    = "\033[31m"
_BLUE   = "\033[34m"
_CYAN   = "\033[36m"
_RESET  = "\033[0m"

def _style(text: str, *codes: str, color: bool = True) -> str:
    if not color:
        return text
    prefix = "".join(codes)
    return f"{prefix}{text}{_RESET}" if prefix else text


# ---------------------------------------------------------------------------
# Diagnostic dataclass
# ---------------------------------------------------------------------------

@dataclass
class Diagnostic:
    """A single error pointing at a span of expression text."""
    message: str
    location: Optional[SourceLocation]
    code: Optional[str] = None
    help: Optional[str] = None
    label: Optional[str] = None


def format_diagnostic(
    diagnostic: Diagnostic,
    source_files: Dict[str, str],
    color: bool = False,
) -> str:
    """
    Render a diagnostic with the offending line and a caret underline.

    Example output (plain, no color)::

        error[E0400]: unexpected token
         --> <expr>:1:9
          |
        1 | out[i] = = c
          |          ^ expected an expression
    """
    out: List[str] = []

    code_str = f"[{diagnostic.code}]" if diagnostic.code else ""
    out.append(
        _style(f"error{code_str}", _BOLD, _RED, color=color)
        + _style(f": {diagnostic.message}", _BOLD, color=color)
    )

    loc = diagnostic.location
    if loc is None:
        out.append(_style(" --> ", _BOLD, _BLUE, color=color) + "<unknown location>")
        _append_help(out, diagnostic, 1, color)
        return "\n".join(out)

    source = source_files.get(loc.file)
    gw = max(len(str(loc.line)), 1)
    out.append(_style(" " * gw + "--> ", _BOLD, _BLUE, color=color) + str(loc))
    if source is None:
        _append_help(out, diagnostic, gw, color)
        return "\n".join(out)

    src_lines = source.split("\n")
    idx = loc.line - 1
    code_line = src_lines[idx] if 0 <= idx < len(src_lines) else ""
    out.append(_style(" " * (gw + 1) + "|", _BOLD, _BLUE, color=color))
    out.append(_style(str(loc.line).rjust(gw) + " | ", _BOLD, _BLUE, color=color) + code_line)

    col_start = max(loc.column, 1) - 1
    span_len = max(1, loc.end_column - loc.column) if loc.end_column > loc.column else 1
    label_suffix = f" {diagnostic.label}" if diagnostic.label else ""
    carets = " " * col_start + "^" * span_len + label_suffix
    out.append(
        _style(" " * (gw + 1) + "| ", _BOLD, _BLUE, color=color)
        + _style(carets, _BOLD, _RED, color=color)
    )
    _append_help(out, diagnostic, gw, color)
    return "\n".join(out)


def _append_help(out: List[str], diagnostic: Diagnostic, gw: int, color: bool) -> None:
    if not diagnostic.help:
        return
    pad = " " * (gw + 1)
    out.append(
        _style(f"{pad}= ", _BOLD, _CYAN, color=color)
        + _style("help: ", _BOLD, color=color)
        + diagnostic.help
    )


# ============================================================================
# Exception Classes
# ============================================================================

class LoopKernelError(Exception):
    """Base exception for all compiler errors"""
    default_code = "E0001"

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code

    def __str__(self):
        return f"[{self.error_code}] {self.message}"


class SchedulingError(LoopKernelError):
    """
    Items remain whose dependencies can never be satisfied.

    Covers both true cycles and references to an iname that does not
    exist; the two cases are not distinguished.
    """
    default_code = "E0100"

    def __init__(self, message: str, remaining: Sequence[str] = ()):
        super().__init__(message)
        self.remaining = list(remaining)


class MalformedInstructionError(LoopKernelError):
    """Instruction body has a shape the dependency analysis cannot read"""
    default_code = "E0200"

    def __init__(self, message: str, iname: Optional[str] = None):
        super().__init__(message)
        self.iname = iname


class KernelDefinitionError(LoopKernelError):
    """Kernel violates a structural invariant (e.g. duplicate inames)"""
    default_code = "E0300"


class ExpressionParseError(LoopKernelError):
    """
    Expression text could not be parsed.

    `str()` renders a caret diagnostic pointing at the failing token.
    """
    default_code = "E0400"

    def __init__(self,
                 message: str,
                 source: str,
                 location: Optional[SourceLocation] = None,
                 label: Optional[str] = None,
                 help: Optional[str] = None):
        super().__init__(message)
        self.source = source
        self.location = location
        self.label = label
        self.help_text = help

    def __str__(self):
        diagnostic = Diagnostic(
            message=self.message,
            location=self.location,
            code=self.error_code,
            help=self.help_text,
            label=self.label,
        )
        source_files = {self.location.file: self.source} if self.location else {}
        return format_diagnostic(diagnostic, source_files, color=_use_color())


class CodegenError(LoopKernelError):
    """Lowered tree cannot be turned into target code"""
    default_code = "E0500"


class KernelInvocationError(LoopKernelError):
    """Registered kernel called with the wrong inputs"""
    default_code = "E0600"
