"""Target graph collaborators.

- base: ``TargetGraph`` contract the import core writes through
- memory: ``InMemoryGraph`` reference implementation
"""

from geoservice_import.graph.base import GraphError, TargetGraph
from geoservice_import.graph.memory import InMemoryGraph

__all__ = ["GraphError", "InMemoryGraph", "TargetGraph"]
