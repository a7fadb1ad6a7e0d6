"""
Configuration constants and environment switches for loopkernel
"""

import os
import tempfile

# Generated kernel naming
KERNEL_NAME_PREFIX = "loopkernel"  # Callables are named loopkernel_<n>

# Expression parser configuration (cache under temp dir to avoid cluttering project root)
EXPRESSION_GRAMMAR_FILE = "expression.lark"
EXPRESSION_SOURCE_NAME = "<expr>"
DEFAULT_PARSER_CACHE_FILE = os.path.join(tempfile.gettempdir(), "loopkernel_expression.cache")

# Lowered-form tags
BLOCK_TAG = "block"
WHILE_TAG = "while"
REF_TAG = "ref"

# Numpy-backed functions available to generated code by default
DEFAULT_INTRINSICS = (
    "sqrt", "exp", "log", "sin", "cos", "tan", "abs", "floor", "ceil", "min", "max",
)

# Debug dumps
IR_DUMP_DIR = "ir_dumps"
DEFAULT_FILE_ENCODING = "utf-8"

# Environment switches
ENV_IN_PLACE = "LOOPKERNEL_IN_PLACE"
ENV_DUMP_IR = "LOOPKERNEL_DUMP_IR"

_TRUTHY = ("1", "true", "yes", "on")


def env_flag(name: str) -> bool:
    """True if environment variable `name` holds a truthy value"""
    return os.environ.get(name, "").strip().lower() in _TRUTHY
