"""
Backend Interface

An execution engine turns a lowered Expression Tree plus a parameter list
into an invocable handle, and keeps a table of what it registered.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Sequence, Tuple

from ..ir.nodes import Expression
from ..shared.errors import KernelInvocationError


class KernelHandle:
    """
    Invocable result of registering a compiled kernel.

    Call it with the kernel arguments as keywords; array arguments are
    updated in place.
    """

    def __init__(self, name: str, parameters: Sequence[str], source: Any, engine: 'ExecutionEngine'):
        self.name = name
        self.parameters: Tuple[str, ...] = tuple(parameters)
        self.source = source
        self.engine = engine

    def __call__(self, **inputs: Any) -> Any:
        return self.engine.invoke(self.name, inputs)

    def __repr__(self) -> str:
        return f"KernelHandle({self.name!r}, parameters={list(self.parameters)})"


class ExecutionEngine(ABC):
    """
    Backend interface.

    - `codegen` produces target code for a lowered tree
    - `register` makes it invocable under a unique name
    - `invoke` runs a registered kernel with named inputs
    """

    def __init__(self):
        self.handles: Dict[str, KernelHandle] = {}

    @abstractmethod
    def codegen(self, name: str, parameters: Sequence[str], body: Expression) -> Any:
        """Generate target code for a kernel body"""
        raise NotImplementedError

    @abstractmethod
    def register(self, name: str, parameters: Sequence[str], body: Expression) -> KernelHandle:
        """Compile and record a kernel; returns its handle"""
        raise NotImplementedError

    @abstractmethod
    def _call(self, name: str, inputs: Mapping[str, Any]) -> Any:
        """Run an already validated invocation"""
        raise NotImplementedError

    def invoke(self, name: str, inputs: Mapping[str, Any]) -> Any:
        handle = self.get(name)
        missing = [p for p in handle.parameters if p not in inputs]
        unexpected = sorted(set(inputs) - set(handle.parameters))
        if missing or unexpected:
            details = []
            if missing:
                details.append(f"missing {missing}")
            if unexpected:
                details.append(f"unexpected {unexpected}")
            raise KernelInvocationError(f"kernel `{name}` called with wrong inputs: {', '.join(details)}")
        return self._call(name, inputs)

    def get(self, name: str) -> KernelHandle:
        if name not in self.handles:
            raise KernelInvocationError(f"no kernel registered as `{name}`")
        return self.handles[name]

    def __contains__(self, name: str) -> bool:
        return name in self.handles
