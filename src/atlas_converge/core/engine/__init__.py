"""
Engine do Atlas Converge.

Este pacote contém a implementação responsável por **planejar** e
**aplicar** a convergência entre recursos declarados e o estado real.

Componentes principais:
    - types            → Plan, Action, ActionResult, ApplyReport
    - policy           → tabela Update vs Replace por tipo/atributo
    - planner          → diff declarações × snapshot, ordenação determinística
    - executor         → apply paralelo com retry, skip e cancelamento
    - refresh          → releitura dos providers (drift)
    - secret_generator → senhas aleatórias criptograficamente seguras
    - engine           → fachada `ConvergeEngine`

Invariantes:
    - Ações só são executadas após o sucesso de suas dependências
    - Cada recurso recebe no máximo uma ação por plano
    - O estado reflete apenas mudanças confirmadas pelos providers
"""

from .engine import ConvergeEngine
from .executor import Executor
from .planner import plan_changes, plan_destroy
from .policy import DEFAULT_POLICIES, decide
from .refresh import refresh_state
from .secret_generator import generate_secret
from .types import (
    SENSITIVE_MASK,
    Action,
    ActionKind,
    ActionResult,
    ActionStatus,
    ApplyReport,
    AttributeChange,
    Plan,
)

__all__ = [
    "Action",
    "ActionKind",
    "ActionResult",
    "ActionStatus",
    "ApplyReport",
    "AttributeChange",
    "ConvergeEngine",
    "DEFAULT_POLICIES",
    "Executor",
    "Plan",
    "SENSITIVE_MASK",
    "decide",
    "generate_secret",
    "plan_changes",
    "plan_destroy",
    "refresh_state",
]
