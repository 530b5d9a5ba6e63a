"""
Evaluation Backends.

One backend per execution strategy. The harness runs them in a fixed order
and compares their results:

    interpreted            expression.eval, no codegen
    mutable_projection     generated code writing into a mutable row
    generated_projection   generated code returning an immutable row
    packed_projection      generated code returning a packed binary row
    optimized              optimizer rewrite, then interpreted

Usage:
    from exprcheck.backends import create_backends

    for backend in create_backends():
        outcome = backend.run(expr, EMPTY_ROW)
"""

from collections.abc import Sequence

from exprcheck.backends.base import (
    CheckOutcome,
    EvaluationBackend,
    OutcomeStatus,
    output_alias,
)
from exprcheck.backends.generated import (
    GeneratedProjectionBackend,
    MutableProjectionBackend,
    PackedProjectionBackend,
)
from exprcheck.backends.interpreted import InterpretedBackend
from exprcheck.backends.optimized import OptimizedBackend
from exprcheck.config import KNOWN_BACKENDS
from exprcheck.engine.optimizer import DEFAULT_MAX_ITERATIONS

BACKEND_TYPES: dict[str, type[EvaluationBackend]] = {
    "interpreted": InterpretedBackend,
    "mutable_projection": MutableProjectionBackend,
    "generated_projection": GeneratedProjectionBackend,
    "packed_projection": PackedProjectionBackend,
    "optimized": OptimizedBackend,
}


def create_backends(
    names: Sequence[str] = KNOWN_BACKENDS,
    optimizer_max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> list[EvaluationBackend]:
    """Build fresh backend instances in run order.

    Every call returns new instances, so concurrent checks never share
    generated programs or row buffers.

    Raises:
        KeyError: If a name is not a known backend.
    """
    unknown = set(names) - set(BACKEND_TYPES)
    if unknown:
        raise KeyError(f"Unknown backends: {', '.join(sorted(unknown))}")

    backends: list[EvaluationBackend] = []
    for name in KNOWN_BACKENDS:
        if name not in names:
            continue
        if name == "optimized":
            backends.append(OptimizedBackend(optimizer_max_iterations))
        else:
            backends.append(BACKEND_TYPES[name]())
    return backends


__all__ = [
    "BACKEND_TYPES",
    "CheckOutcome",
    "EvaluationBackend",
    "GeneratedProjectionBackend",
    "InterpretedBackend",
    "MutableProjectionBackend",
    "OptimizedBackend",
    "OutcomeStatus",
    "PackedProjectionBackend",
    "create_backends",
    "output_alias",
]
