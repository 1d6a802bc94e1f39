"""
Tipos canônicos de declaração de recursos.

Um `Resource` é a descrição do estado desejado de um recurso: identidade
(tipo + nome), atributos declarados e metadados de ciclo de vida.
Atributos podem conter valores literais ou referências para atributos de
saída de outros recursos:

    - `Ref(address, attribute)`  → valor de um atributo de outro recurso
    - `Computed(func, *refs)`    → função pura aplicada aos valores de refs

Referências podem aparecer aninhadas em listas, tuplas e dicts. Elas são
a única forma de um recurso depender de outro; nenhum recurso muta outro
diretamente.

Invariantes:
    - O endereço de um recurso é único no grafo
    - Declarações são imutáveis após entrar no grafo
    - `UNKNOWN` representa um valor conhecido apenas após o apply
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple


class ResourceMode(str, Enum):
    """`managed` é criado/alterado pelo engine; `data` é apenas lido do provider."""

    MANAGED = "managed"
    DATA = "data"


class ResourceState(str, Enum):
    """
    Estados de ciclo de vida de um recurso.

    - PLANNED: declarado, sem entrada no State Snapshot
    - CREATED / UPDATED: última ação confirmada pelo provider
    - TAINTED: marcado para substituição forçada no próximo apply
    - DELETED: removido do provider e do snapshot
    """

    PLANNED = "planned"
    CREATED = "created"
    UPDATED = "updated"
    TAINTED = "tainted"
    DELETED = "deleted"


class UpdatePolicy(str, Enum):
    IN_PLACE = "in_place"
    REPLACE = "replace"


class _Unknown:
    _instance: Optional["_Unknown"] = None

    def __new__(cls) -> "_Unknown":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "(known after apply)"

    def __reduce__(self):
        return (_Unknown, ())


UNKNOWN = _Unknown()


@dataclass(frozen=True)
class Ref:
    """Referência para o atributo `attribute` do recurso em `address`."""

    address: str
    attribute: str

    def __str__(self) -> str:
        return f"{self.address}.{self.attribute}"


@dataclass(frozen=True)
class Computed:
    """Valor derivado de outras referências por uma função pura."""

    func: Callable[..., Any]
    refs: Tuple[Ref, ...]

    def __init__(self, func: Callable[..., Any], *refs: Ref):
        object.__setattr__(self, "func", func)
        object.__setattr__(self, "refs", tuple(refs))


@dataclass(frozen=True)
class SecretSpec:
    """
    Especificação de um atributo secreto gerado pelo engine.

    O valor é gerado uma única vez por identidade de recurso (Create ou
    Replace) e preservado em todo apply subsequente.
    """

    length: int = 32
    special: bool = True
    override_special: Optional[str] = None
    exclude_characters: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "length": self.length,
            "special": self.special,
            "override_special": self.override_special,
            "exclude_characters": self.exclude_characters,
        }


@dataclass(frozen=True)
class Lifecycle:
    """
    Metadados de ciclo de vida de uma declaração.

    - create_before_destroy: Replace cria o novo recurso antes de remover o antigo
    - update_policy: sobrescreve a política por atributo da tabela do tipo
    """

    create_before_destroy: bool = False
    update_policy: Dict[str, UpdatePolicy] = field(default_factory=dict)


@dataclass(frozen=True)
class Resource:
    type: str
    name: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    outputs: Tuple[str, ...] = ()
    secrets: Dict[str, SecretSpec] = field(default_factory=dict)
    mode: ResourceMode = ResourceMode.MANAGED
    lifecycle: Lifecycle = field(default_factory=Lifecycle)
    sensitive: Tuple[str, ...] = ()

    @property
    def address(self) -> str:
        if self.mode == ResourceMode.DATA:
            return f"data.{self.type}.{self.name}"
        return f"{self.type}.{self.name}"

    def ref(self, attribute: str) -> Ref:
        return Ref(self.address, attribute)

    def references(self) -> List[Ref]:
        """Todas as referências declaradas nos atributos, em ordem de declaração."""
        return list(iter_refs(self.attributes))

    def referencable_attributes(self) -> Set[str]:
        return set(self.attributes) | set(self.outputs) | set(self.secrets)

    def is_sensitive(self, attribute: str) -> bool:
        return attribute in self.secrets or attribute in self.sensitive


def iter_refs(value: Any) -> Iterator[Ref]:
    """Percorre um valor declarado e produz todas as `Ref` encontradas."""
    if isinstance(value, Ref):
        yield value
    elif isinstance(value, Computed):
        yield from value.refs
    elif isinstance(value, dict):
        for v in value.values():
            yield from iter_refs(v)
    elif isinstance(value, (list, tuple)):
        for v in value:
            yield from iter_refs(v)


def contains_unknown(value: Any) -> bool:
    if value is UNKNOWN:
        return True
    if isinstance(value, dict):
        return any(contains_unknown(v) for v in value.values())
    if isinstance(value, (list, tuple)):
        return any(contains_unknown(v) for v in value)
    return False


def resolve_value(value: Any, lookup: Callable[[Ref], Any]) -> Any:
    """
    Substitui referências por valores concretos usando `lookup`.

    Um `Computed` com qualquer argumento `UNKNOWN` resolve para `UNKNOWN`;
    a função só é chamada com valores conhecidos.
    """
    if isinstance(value, Ref):
        return lookup(value)
    if isinstance(value, Computed):
        args = [lookup(ref) for ref in value.refs]
        if any(contains_unknown(a) for a in args):
            return UNKNOWN
        return value.func(*args)
    if isinstance(value, dict):
        return {k: resolve_value(v, lookup) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_value(v, lookup) for v in value]
    if isinstance(value, tuple):
        return [resolve_value(v, lookup) for v in value]
    return value
