"""
Dependency Analysis Pass

Infers the dependency edges a kernel does not declare:

1. Implicit order: a later instruction that is a call, or that reads its
   own write target, depends on every instruction declared before it.
2. Loop references: an instruction mentioning a loop iname depends on that
   domain and becomes one of its members; a domain whose iname appears in
   an earlier domain's bounds or recurrence depends on that earlier domain
   and becomes its member.

Results are returned as a DependencyLayer over the kernel; the kernel is
only modified when the context compiles in place.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from .base import BasePass, KernelCtxt
from ..ir.nodes import Assign, Call, Domain, Instruction, Kernel, KernelItem, assignment_target, occurs

logger = logging.getLogger("loopkernel.passes.dependency_analysis")


@dataclass
class DependencyLayer:
    """
    Declared plus inferred dependency state of every kernel item, keyed by
    iname. Lists keep declaration order and may contain duplicates.
    """
    dependencies: Dict[str, List[str]] = field(default_factory=dict)
    members: Dict[str, List[KernelItem]] = field(default_factory=dict)
    inferred_edges: int = 0

    @classmethod
    def declared(cls, kernel: Kernel) -> 'DependencyLayer':
        """Layer holding only what the kernel already declares"""
        layer = cls()
        for item in kernel.items():
            layer.dependencies[item.iname] = list(item.dependencies)
        for domain in kernel.domains:
            layer.members[domain.iname] = list(domain.instructions)
        return layer

    def dependencies_of(self, item: KernelItem) -> List[str]:
        return self.dependencies[item.iname]

    def members_of(self, domain: Domain) -> List[KernelItem]:
        return self.members[domain.iname]

    def add_dependency(self, item: KernelItem, iname: str) -> None:
        self.dependencies[item.iname].append(iname)
        self.inferred_edges += 1

    def add_member(self, domain: Domain, item: KernelItem) -> None:
        self.members[domain.iname].append(item)

    def commit(self, kernel: Kernel) -> None:
        """Write the layer back into the kernel's own lists (in-place compilation)"""
        for item in kernel.items():
            item.dependencies[:] = self.dependencies[item.iname]
        for domain in kernel.domains:
            domain.instructions[:] = self.members[domain.iname]


def reads_own_target(instruction: Instruction) -> bool:
    """
    True if the instruction is a call, or if its write target occurs in the
    value it computes (`s = s + y`, `s += y`).
    """
    body = instruction.body
    if isinstance(body, Call):
        return True
    lhs = assignment_target(body, instruction.iname)
    rhs = body.value if isinstance(body, Assign) else body
    return occurs(rhs, lhs.name)


def add_implicit_order_dependencies(kernel: Kernel, layer: DependencyLayer) -> None:
    """Instruction -> instruction edges from declaration order"""
    instructions = kernel.instructions
    for j in range(1, len(instructions)):
        later = instructions[j]
        if not reads_own_target(later):
            continue
        for earlier in instructions[:j]:
            layer.add_dependency(later, earlier.iname)


def add_loop_dependencies(kernel: Kernel, layer: DependencyLayer) -> None:
    """Instruction -> domain and domain -> domain edges from iname references"""
    for instruction in kernel.instructions:
        for domain in kernel.domains:
            if occurs(instruction.body, domain.iname):
                layer.add_dependency(instruction, domain.iname)
                layer.add_member(domain, instruction)

    domains = kernel.domains
    for i, outer in enumerate(domains):
        for inner in domains[i + 1:]:
            if (occurs(outer.recurrence, inner.iname)
                    or occurs(outer.lowerbound, inner.iname)
                    or occurs(outer.upperbound, inner.iname)):
                layer.add_dependency(inner, outer.iname)
                layer.add_member(outer, inner)
    # TODO: infer domain -> domain edges from the instructions each loop contains


def analyze_dependencies(kernel: Kernel) -> DependencyLayer:
    """Run both inference passes over a kernel without modifying it"""
    layer = DependencyLayer.declared(kernel)
    add_implicit_order_dependencies(kernel, layer)
    add_loop_dependencies(kernel, layer)
    return layer


class DependencyAnalysisPass(BasePass):
    """Infer instruction/domain dependencies; result is a DependencyLayer"""
    requires = []

    def run(self, kernel: Kernel, ctx: KernelCtxt) -> DependencyLayer:
        logger.debug("Starting dependency analysis")
        layer = analyze_dependencies(kernel)
        if ctx.in_place:
            layer.commit(kernel)
        logger.debug(f"Dependency analysis complete: {layer.inferred_edges} edges inferred "
                     f"over {len(kernel.instructions)} instructions, {len(kernel.domains)} domains")
        ctx.set_analysis(DependencyAnalysisPass, layer)
        return layer
