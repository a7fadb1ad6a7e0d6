"""
Compiler passes: dependency analysis, DAG construction, scheduling, loop
nesting, symbol analysis and lowering.
"""

from .base import BasePass, KernelCtxt, PassManager
from .dependency_analysis import DependencyAnalysisPass, DependencyLayer, analyze_dependencies
from .dag import DAGConstructionPass, DependencyDAG, build_dag
from .scheduling import TopologicalSchedulePass, topological_order
from .loop_nesting import LoopNestingPass, nest_loops
from .symbol_analysis import SymbolAnalysisPass, collect_identifiers, kernel_arguments
from .lowering import LoweringPass, construct

__all__ = [
    "BasePass", "KernelCtxt", "PassManager",
    "DependencyAnalysisPass", "DependencyLayer", "analyze_dependencies",
    "DAGConstructionPass", "DependencyDAG", "build_dag",
    "TopologicalSchedulePass", "topological_order",
    "LoopNestingPass", "nest_loops",
    "SymbolAnalysisPass", "collect_identifiers", "kernel_arguments",
    "LoweringPass", "construct",
]
