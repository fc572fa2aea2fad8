"""Runtime errors of the assembly / tracing / solve pipeline."""


class SolverError(RuntimeError):
    """Base class for errors raised while advancing the flow solution."""


class CharacteristicTraceError(SolverError):
    """A backward-traced quadrature point could not be located in the mesh."""

    def __init__(self, point, triangle):
        self.point = tuple(float(c) for c in point)
        self.triangle = triangle
        super().__init__(
            f"No triangle found for traced point ({self.point[0]:.6g}, {self.point[1]:.6g}) "
            f"starting from triangle {triangle}"
        )


class LinearSolveError(SolverError):
    """The sparse direct solver failed (singular factor or invalid input)."""

    def __init__(self, message, status=None):
        self.status = status
        super().__init__(message if status is None else f"{message} (status={status})")
