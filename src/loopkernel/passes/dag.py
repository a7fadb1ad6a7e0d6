"""
Dependency DAG Construction Pass

Builds a rooted DAG over the kernel's instructions and domains. Nodes live
in an arena and refer to each other by index; index 0 is a synthetic root
without payload.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .base import BasePass, KernelCtxt
from .dependency_analysis import DependencyAnalysisPass, DependencyLayer
from ..ir.nodes import Kernel, KernelItem
from ..shared.errors import SchedulingError

logger = logging.getLogger("loopkernel.passes.dag")

ROOT = 0


@dataclass
class DAGNode:
    """Arena node; `children` owns, `parents` points back"""
    payload: Optional[KernelItem]
    children: List[int] = field(default_factory=list)
    parents: List[int] = field(default_factory=list)


class DependencyDAG:
    """Arena of DAG nodes rooted at index 0"""

    def __init__(self):
        self.nodes: List[DAGNode] = [DAGNode(None)]
        self.index: Dict[str, int] = {}

    def add(self, item: KernelItem, parents: List[int]) -> int:
        node_id = len(self.nodes)
        self.nodes.append(DAGNode(item))
        for parent in parents:
            self.nodes[parent].children.append(node_id)
            self.nodes[node_id].parents.append(parent)
        self.index[item.iname] = node_id
        return node_id

    @property
    def root(self) -> DAGNode:
        return self.nodes[ROOT]

    def node(self, iname: str) -> DAGNode:
        return self.nodes[self.index[iname]]

    def __len__(self) -> int:
        return len(self.nodes) - 1


def build_dag(kernel: Kernel, layer: DependencyLayer) -> DependencyDAG:
    """
    Place every item once all of its dependencies are placed.

    Items without dependencies hang off the root in declaration order
    (instructions first, then domains). Each remaining item is attached
    under every distinct dependency as soon as they are all indexed.

    Raises:
        SchedulingError: items remain whose dependencies never resolve
            (a cycle, or an iname that names nothing).
    """
    dag = DependencyDAG()
    remaining: List[KernelItem] = []

    for item in kernel.items():
        if not layer.dependencies_of(item):
            dag.add(item, [ROOT])
        else:
            remaining.append(item)

    while remaining:
        ready = next(
            (i for i, item in enumerate(remaining)
             if all(dep in dag.index for dep in layer.dependencies_of(item))),
            None,
        )
        if ready is None:
            stuck = [item.iname for item in remaining]
            raise SchedulingError(
                f"items left but dependencies not satisfied: {stuck}",
                remaining=stuck,
            )
        item = remaining.pop(ready)
        # duplicated edges (repeated in-place analysis) attach only once
        parents = [dag.index[dep] for dep in dict.fromkeys(layer.dependencies_of(item))]
        dag.add(item, parents)

    return dag


class DAGConstructionPass(BasePass):
    """Build the dependency DAG from the dependency layer"""
    requires = [DependencyAnalysisPass]

    def run(self, kernel: Kernel, ctx: KernelCtxt) -> DependencyDAG:
        layer = ctx.get_analysis(DependencyAnalysisPass)
        dag = build_dag(kernel, layer)
        logger.debug(f"Placed {len(dag)} nodes, {len(dag.root.children)} under the root")
        ctx.set_analysis(DAGConstructionPass, dag)
        return dag
