"""
Loop Nesting Pass

Rewrites the flat topological order into a nesting tree. Two domains that
list the same instruction overlap; the one scheduled later is moved into the
earlier one's body, taking the place of the shared instructions, and is no
longer emitted at the top level.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Set

from .base import BasePass, KernelCtxt
from .dependency_analysis import DependencyAnalysisPass, DependencyLayer
from .scheduling import TopologicalSchedulePass
from ..ir.nodes import Domain, Kernel, KernelItem
from ..shared.errors import SchedulingError

logger = logging.getLogger("loopkernel.passes.loop_nesting")


def shared_members(first: List[KernelItem], second: List[KernelItem]) -> List[KernelItem]:
    """Members of `first` whose iname also appears in `second`"""
    second_names = {item.iname for item in second}
    return [item for item in first if item.iname in second_names]


class LoopNester:
    """
    Works on private copies of every domain body so the kernel stays
    untouched; `materialize` turns the result into Domain trees.
    """

    def __init__(self, kernel: Kernel, layer: DependencyLayer):
        self.kernel = kernel
        self.layer = layer
        self.bodies: Dict[str, List[KernelItem]] = {
            domain.iname: list(layer.members_of(domain)) for domain in kernel.domains
        }
        self.merges = 0

    def nest(self, order: List[KernelItem]) -> List[KernelItem]:
        position = {item.iname: k for k, item in enumerate(order)}
        nested_domains = {domain.iname: False for domain in self.kernel.domains}
        new_order: List[KernelItem] = []

        for item in order:
            if not isinstance(item, Domain):
                # instructions inside loops carry the loop iname as a dependency
                if not self.layer.dependencies_of(item):
                    new_order.append(item)
                continue

            nested = False
            for domain in self.kernel.domains:
                if domain is item:
                    continue
                shared = shared_members(self.bodies[domain.iname], self.bodies[item.iname])
                if not shared:
                    continue
                nested = True
                nested_domains[domain.iname] = True
                nested_domains[item.iname] = True
                # only the earlier domain absorbs, so each pair merges once
                if position[item.iname] < position[domain.iname]:
                    self._absorb(item, domain, {s.iname for s in shared})
                    if not self._placed(item, new_order):
                        new_order.append(item)

            if not nested and not nested_domains[item.iname]:
                new_order.append(item)

        return new_order

    def _absorb(self, outer: Domain, inner: Domain, shared: Set[str]) -> None:
        body = self.bodies[outer.iname]
        indices = [k for k, member in enumerate(body) if member.iname in shared]
        kept = [member for k, member in enumerate(body) if k not in set(indices)]
        kept.insert(indices[0], inner)
        self.bodies[outer.iname] = kept
        self.merges += 1
        logger.debug(f"Nested domain {inner.iname} into {outer.iname} in place of {sorted(shared)}")

    def _placed(self, domain: Domain, new_order: List[KernelItem]) -> bool:
        """Already emitted, or nested at any depth inside a domain that was"""
        pending = list(new_order)
        visited: Set[str] = set()
        while pending:
            base = pending.pop()
            if base is domain:
                return True
            if isinstance(base, Domain) and base.iname not in visited:
                visited.add(base.iname)
                pending.extend(self._body(base))
        return False

    def _body(self, domain: Domain) -> List[KernelItem]:
        # domains declared only inside another loop keep their own members
        return self.bodies.get(domain.iname, domain.instructions)

    def materialize(self, order: List[KernelItem], in_place: bool = False) -> List[KernelItem]:
        """
        Attach the rewritten bodies. Fresh Domain copies are returned unless
        `in_place`, in which case the kernel's own domains are rewritten.
        """
        built: Dict[str, Domain] = {}

        def build(item: KernelItem, active: List[str]) -> KernelItem:
            if not isinstance(item, Domain):
                return item
            if item.iname in active:
                cycle = active[active.index(item.iname):] + [item.iname]
                raise SchedulingError(
                    f"domains nest inside each other: {' -> '.join(cycle)}",
                    remaining=cycle,
                )
            if item.iname in built:
                return built[item.iname]
            members = [build(m, active + [item.iname]) for m in self._body(item)]
            if in_place:
                item.instructions[:] = members
                result = item
            else:
                result = replace(item, instructions=members)
            built[item.iname] = result
            return result

        return [build(item, []) for item in order]


def nest_loops(kernel: Kernel, layer: DependencyLayer, order: List[KernelItem],
               in_place: bool = False) -> List[KernelItem]:
    """Nest overlapping domains of a flat schedule; returns the Schedule"""
    nester = LoopNester(kernel, layer)
    top_level = nester.nest(order)
    return nester.materialize(top_level, in_place=in_place)


class LoopNestingPass(BasePass):
    """Schedule tree from the flat topological order"""
    requires = [DependencyAnalysisPass, TopologicalSchedulePass]

    def run(self, kernel: Kernel, ctx: KernelCtxt) -> List[KernelItem]:
        layer = ctx.get_analysis(DependencyAnalysisPass)
        order = ctx.get_analysis(TopologicalSchedulePass)
        nester = LoopNester(kernel, layer)
        top_level = nester.nest(order)
        schedule = nester.materialize(top_level, in_place=ctx.in_place)
        logger.debug(f"Loop nesting complete: {nester.merges} merges, "
                     f"{len(order)} items -> {len(schedule)} top-level entries")
        ctx.set_analysis(LoopNestingPass, schedule)
        return schedule
