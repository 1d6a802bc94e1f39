"""
Atlas Converge — Canonical Error Structures (v1)

Este módulo define o padrão canônico de erros do Atlas Converge.
Erros são artefatos de domínio e fazem parte do contrato operacional
do sistema, devendo ser:

- explícitos
- serializáveis
- rastreáveis
- acionáveis

Falhas de ações do apply carregam um AtlasErrorPayload no resultado,
que alimenta o relatório final e o Manifest.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .exceptions import (
    AtlasException,
    CyclicDependencyError,
    EngineConfigurationError,
    EngineExecutionError,
    PlanError,
    ProviderError,
    StateConflictError,
    UnresolvedReferenceError,
)


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AtlasErrorPayload:
    """
    Payload canônico de erro do Atlas Converge.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    - decision_required: indica que o apply está bloqueado aguardando decisão
      humana (sem auto-correção, sem fallback silencioso).
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None
    decision_required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

# Grafo / Planejamento
REFERENCE_UNRESOLVED = "REFERENCE_UNRESOLVED"
CYCLIC_DEPENDENCY = "CYCLIC_DEPENDENCY"
PLAN_ERROR = "PLAN_ERROR"

# Execução
PROVIDER_ERROR = "PROVIDER_ERROR"
STATE_CONFLICT = "STATE_CONFLICT"

# Engine
ENGINE_EXECUTION_ERROR = "ENGINE_EXECUTION_ERROR"
ENGINE_CONFIGURATION_ERROR = "ENGINE_CONFIGURATION_ERROR"


_TYPE_BY_EXCEPTION = (
    (UnresolvedReferenceError, REFERENCE_UNRESOLVED),
    (CyclicDependencyError, CYCLIC_DEPENDENCY),
    (PlanError, PLAN_ERROR),
    (ProviderError, PROVIDER_ERROR),
    (StateConflictError, STATE_CONFLICT),
    (EngineConfigurationError, ENGINE_CONFIGURATION_ERROR),
    (EngineExecutionError, ENGINE_EXECUTION_ERROR),
)


# ---------------------------------------------------------------------------
# Helper de fábrica
# ---------------------------------------------------------------------------

def engine_execution_error(
    *,
    address: Optional[str] = None,
    exc_type: Optional[str] = None,
    exc_message: Optional[str] = None,
    hint: str = "Verifique o log estruturado do run. Nenhum fallback é aplicado automaticamente.",
) -> AtlasErrorPayload:
    return AtlasErrorPayload(
        type=ENGINE_EXECUTION_ERROR,
        message="Falha inesperada durante o apply",
        details={
            "address": address,
            "exc_type": exc_type,
            "exc_message": exc_message,
        },
        hint=hint,
    )


def exception_to_error(exc: BaseException, *, address: Optional[str] = None) -> AtlasErrorPayload:
    """Converte exceções em AtlasErrorPayload (serializável, acionável).

    Regras:
    - AtlasException: código estável pelo tipo, mensagem/details/hint preservados.
    - Outras exceções: ENGINE_EXECUTION_ERROR sem expor stack trace.
    """
    if isinstance(exc, AtlasException):
        error_type = exc.__class__.__name__
        for cls, code in _TYPE_BY_EXCEPTION:
            if isinstance(exc, cls):
                error_type = code
                break

        details = dict(exc.details or {})
        if address is not None:
            details.setdefault("address", address)
        if isinstance(exc, ProviderError):
            details.setdefault("transient", exc.transient)

        return AtlasErrorPayload(
            type=error_type,
            message=exc.message or "Erro de execução",
            details=details,
            hint=exc.hint,
            decision_required=bool(exc.decision_required),
        )

    return engine_execution_error(
        address=address,
        exc_type=exc.__class__.__name__,
        exc_message=str(exc) or None,
    )
