"""
Atlas Converge — Canonical Exceptions (v1)

Este módulo define as exceções tipadas internas do Atlas Converge.

Objetivo:
- Permitir que graph builder, planner, executor e State Store levantem
  exceções semânticas tipadas
- Facilitar o mapeamento determinístico para AtlasErrorPayload
- Evitar ValueError/RuntimeError genéricos em guardrails críticos

Taxonomia:
- UnresolvedReferenceError → referência a recurso/atributo não declarado
- CyclicDependencyError    → grafo de dependências não é um DAG
- PlanError                → estado desejado/atual impede um plano seguro
- ProviderError            → operação remota falhou (encapsula a causa)
- StateConflictError       → modificação concorrente de uma entrada do snapshot

Regras:
- Exceções carregam apenas dados estruturados (serializáveis) em `details`.
- A mensagem é curta e humana.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class AtlasException(Exception):
    """Base class para exceções internas do Atlas.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Não embedar stack trace em payloads de erro
    - Mensagem deve ser curta e humana
    """

    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None
    decision_required: bool = False

    def __str__(self) -> str:  # pragma: no cover
        return self.message


# ---------------------------------------------------------------------------
# Grafo / Planejamento
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UnresolvedReferenceError(AtlasException):
    """Referência aponta para recurso ou atributo de saída não declarado."""


@dataclass(frozen=True)
class CyclicDependencyError(AtlasException):
    """O grafo de dependências contém um ciclo (details["cycle"])."""


@dataclass(frozen=True)
class DuplicateResourceError(AtlasException):
    """Dois recursos declarados com o mesmo endereço."""


@dataclass(frozen=True)
class PlanError(AtlasException):
    """Inconsistência entre estado desejado e atual que impede um plano seguro."""


# ---------------------------------------------------------------------------
# Execução
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProviderError(AtlasException):
    """Operação remota falhou.

    `transient=True` marca falhas recuperáveis (ex.: throttling), que o
    executor repete com backoff exponencial.
    """

    transient: bool = False


@dataclass(frozen=True)
class StateConflictError(AtlasException):
    """Versão da entrada no snapshot diverge da versão esperada."""


# ---------------------------------------------------------------------------
# Engine / Configuração
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EngineConfigurationError(AtlasException):
    """Configuração inválida ou inconsistente para execução."""


@dataclass(frozen=True)
class EngineExecutionError(AtlasException):
    """Erro inesperado durante execução do Engine (encapsulado)."""
