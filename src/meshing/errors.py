"""Exceptions raised while loading and enriching meshes."""


class MeshLoadError(ValueError):
    """Mesh file is missing, truncated or not numeric where a number is expected."""

    def __init__(self, message, path=None, line=None):
        self.path = path
        self.line = line
        where = ""
        if path is not None:
            where = f" ({path}" + (f", line {line})" if line is not None else ")")
        super().__init__(f"{message}{where}")


class TopologyError(ValueError):
    """Mesh connectivity is not a valid planar triangulation."""
