"""
Base Pass System

Passes read the kernel and store their results on a shared context; the
kernel description itself is never rewritten unless the context asks for
in-place compilation.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Type

from ..ir.nodes import Kernel


class KernelCtxt:
    """
    Compilation context - single source of truth for all analysis results
    of one compilation.

    A fresh context is created per compilation; passes never keep state on
    themselves.
    """

    def __init__(self, kernel: Kernel, in_place: bool = False):
        self.kernel = kernel
        self.in_place = in_place
        self._analysis_results: Dict[Type['BasePass'], Any] = {}

    def get_analysis(self, pass_class: Type['BasePass']) -> Any:
        """Get analysis results from a pass"""
        if pass_class not in self._analysis_results:
            raise RuntimeError(f"Analysis {pass_class.__name__} not available")
        return self._analysis_results[pass_class]

    def set_analysis(self, pass_class: Type['BasePass'], results: Any) -> None:
        """Store analysis results"""
        self._analysis_results[pass_class] = results

    def has_analysis(self, pass_class: Type['BasePass']) -> bool:
        return pass_class in self._analysis_results


class BasePass(ABC):
    """
    Base class for all passes.

    - Explicit dependencies via `requires`
    - Pass results stored in KernelCtxt (not in pass)
    """
    requires: List[Type['BasePass']] = []

    @abstractmethod
    def run(self, kernel: Kernel, ctx: KernelCtxt) -> Any:
        """
        Run pass on the kernel, store the result with `ctx.set_analysis`
        and return it.
        """
        raise NotImplementedError


class PassManager:
    """
    Pass manager with dependency resolution.

    - Automatic dependency resolution (topological sort)
    - Passes run in dependency order, registration order breaks ties
    - Single KernelCtxt shared across all passes
    """

    def __init__(self):
        self.passes: List[Type[BasePass]] = []
        self._dependency_graph: Dict[Type[BasePass], set] = {}

    def register_pass(self, pass_class: Type[BasePass]) -> None:
        """Register a pass"""
        self.passes.append(pass_class)
        self._dependency_graph[pass_class] = set(pass_class.requires)

    def run_all(self, kernel: Kernel, ctx: KernelCtxt) -> KernelCtxt:
        """Run all passes in dependency order"""
        for pass_class in self._topological_sort():
            pass_class().run(kernel, ctx)
        return ctx

    def _topological_sort(self) -> List[Type[BasePass]]:
        """Topological sort of passes by dependencies"""
        missing = {
            dep.__name__
            for deps in self._dependency_graph.values()
            for dep in deps
            if dep not in self._dependency_graph
        }
        if missing:
            raise RuntimeError(f"Required passes not registered: {sorted(missing)}")

        in_degree = {p: len(self._dependency_graph[p]) for p in self.passes}
        queue = [p for p, degree in in_degree.items() if degree == 0]
        result = []

        while queue:
            pass_class = queue.pop(0)
            result.append(pass_class)

            for other_pass in self.passes:
                if pass_class in self._dependency_graph[other_pass]:
                    in_degree[other_pass] -= 1
                    if in_degree[other_pass] == 0:
                        queue.append(other_pass)

        if len(result) != len(self.passes):
            raise RuntimeError("Circular dependency detected in passes")

        return result
