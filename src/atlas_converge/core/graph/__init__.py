"""
Declarações de recursos e construção do grafo de dependências.

Componentes:
    - resource → Resource, Ref, Computed, SecretSpec, Lifecycle e enums
    - registry → unicidade de endereços e ordem de declaração
    - builder  → validação de referências, detecção de ciclos e ResourceGraph
"""

from .builder import ResourceGraph, build_graph
from .registry import ResourceRegistry
from .resource import (
    UNKNOWN,
    Computed,
    Lifecycle,
    Ref,
    Resource,
    ResourceMode,
    ResourceState,
    SecretSpec,
    UpdatePolicy,
    contains_unknown,
    iter_refs,
    resolve_value,
)

__all__ = [
    "UNKNOWN",
    "Computed",
    "Lifecycle",
    "Ref",
    "Resource",
    "ResourceGraph",
    "ResourceMode",
    "ResourceRegistry",
    "ResourceState",
    "SecretSpec",
    "UpdatePolicy",
    "build_graph",
    "contains_unknown",
    "iter_refs",
    "resolve_value",
]
