"""
Compiler Driver

Orchestrates the passes over one kernel and hands the lowered tree to an
execution engine.
"""

import itertools
import logging
from functools import lru_cache
from pathlib import Path
from typing import FrozenSet, List, Optional

from ..backends.base import ExecutionEngine, KernelHandle
from ..backends.python import PythonBackend
from ..ir.nodes import Expression, Kernel, KernelItem
from ..ir.serialization import serialize_expression, serialize_schedule
from ..passes.base import KernelCtxt, PassManager
from ..passes.dependency_analysis import DependencyAnalysisPass
from ..passes.dag import DAGConstructionPass
from ..passes.scheduling import TopologicalSchedulePass
from ..passes.loop_nesting import LoopNestingPass
from ..passes.lowering import LoweringPass
from ..passes.symbol_analysis import SymbolAnalysisPass
from ..utils.config import (
    DEFAULT_FILE_ENCODING, ENV_DUMP_IR, ENV_IN_PLACE, IR_DUMP_DIR, KERNEL_NAME_PREFIX, env_flag,
)

logger = logging.getLogger("loopkernel.compiler.driver")

_kernel_ids = itertools.count(1)


class CompilationResult:
    """Everything one compilation produced"""

    def __init__(self, name: str, ctx: KernelCtxt, handle: Optional[KernelHandle] = None):
        self.name = name
        self.ctx = ctx
        self.handle = handle

    @property
    def schedule(self) -> List[KernelItem]:
        return self.ctx.get_analysis(LoopNestingPass)

    @property
    def tree(self) -> Expression:
        return self.ctx.get_analysis(LoweringPass)

    @property
    def arguments(self) -> FrozenSet[str]:
        return self.ctx.get_analysis(SymbolAnalysisPass)

    @property
    def parameters(self) -> List[str]:
        """Kernel arguments in the order the generated callable declares them"""
        return sorted(self.arguments)


class CompilerDriver:
    """
    Compiler driver.

    Pass order:
    1. DependencyAnalysisPass (implicit-order and loop-reference edges)
    2. DAGConstructionPass
    3. TopologicalSchedulePass
    4. LoopNestingPass
    5. LoweringPass
    6. SymbolAnalysisPass (independent, consulted when wrapping)

    Errors from any pass propagate to the caller; there is no partial result.

    Args:
        backend: engine that registers compiled kernels (PythonBackend by default)
        in_place: write inferred edges and nesting back into the kernel
            (defaults to the LOOPKERNEL_IN_PLACE environment switch)
        dump_ir: write schedule and lowered tree to ir_dumps/
            (defaults to the LOOPKERNEL_DUMP_IR environment switch)
    """

    def __init__(self,
                 backend: Optional[ExecutionEngine] = None,
                 in_place: Optional[bool] = None,
                 dump_ir: Optional[bool] = None):
        self.backend = backend if backend is not None else PythonBackend()
        self.in_place = env_flag(ENV_IN_PLACE) if in_place is None else in_place
        self.dump_ir = env_flag(ENV_DUMP_IR) if dump_ir is None else dump_ir
        self.pass_manager = PassManager()
        self._register_passes()

    def _register_passes(self) -> None:
        self.pass_manager.register_pass(DependencyAnalysisPass)
        self.pass_manager.register_pass(DAGConstructionPass)
        self.pass_manager.register_pass(TopologicalSchedulePass)
        self.pass_manager.register_pass(LoopNestingPass)
        self.pass_manager.register_pass(LoweringPass)
        self.pass_manager.register_pass(SymbolAnalysisPass)

    def run(self, kernel: Kernel) -> CompilationResult:
        """Run every pass; nothing is registered with the backend"""
        name = self._next_name()
        ctx = KernelCtxt(kernel, in_place=self.in_place)
        logger.debug(f"Compiling {name}: {len(kernel.instructions)} instructions, "
                     f"{len(kernel.domains)} domains (in_place={self.in_place})")
        self.pass_manager.run_all(kernel, ctx)
        result = CompilationResult(name, ctx)
        if self.dump_ir:
            self._dump(result)
        return result

    def compile(self, kernel: Kernel) -> KernelHandle:
        """Compile a kernel and register it as a callable taking its free variables"""
        result = self.run(kernel)
        result.handle = self.backend.register(result.name, result.parameters, result.tree)
        logger.debug(f"Registered {result.name}({', '.join(result.parameters)})")
        return result.handle

    def compile_to_tree(self, kernel: Kernel) -> Expression:
        """Lowered statement tree of a kernel, for callers with their own backend"""
        return self.run(kernel).tree

    def _next_name(self) -> str:
        name = f"{KERNEL_NAME_PREFIX}_{next(_kernel_ids)}"
        while name in self.backend:
            name = f"{KERNEL_NAME_PREFIX}_{next(_kernel_ids)}"
        return name

    def _dump(self, result: CompilationResult) -> None:
        dump_dir = Path(IR_DUMP_DIR)
        dump_dir.mkdir(parents=True, exist_ok=True)
        text = (
            f";; arguments: {' '.join(result.parameters)}\n"
            f"{serialize_schedule(result.schedule)}\n\n"
            f"{serialize_expression(result.tree)}\n"
        )
        path = dump_dir / f"{result.name}.sexpr"
        path.write_text(text, encoding=DEFAULT_FILE_ENCODING)
        logger.debug(f"Wrote {path}")


@lru_cache(maxsize=1)
def default_driver() -> CompilerDriver:
    return CompilerDriver()


def compile(kernel: Kernel) -> KernelHandle:
    """Compile with the shared default driver"""
    return default_driver().compile(kernel)


def compile_to_tree(kernel: Kernel) -> Expression:
    """Lower with the shared default driver"""
    return default_driver().compile_to_tree(kernel)
