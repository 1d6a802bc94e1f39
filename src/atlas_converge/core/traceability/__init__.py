"""
Pacote de rastreabilidade (traceability) do Atlas Converge — Apply Manifest v1.

API pública exposta:
    - ApplyManifest     → estrutura canônica do Manifest
    - create_manifest   → criação explícita do Manifest
    - add_event         → registro explícito de eventos no Event Log
    - action_started    → marca início de uma ação
    - action_finished   → registra conclusão de uma ação
    - action_failed     → registra falha de uma ação
    - action_skipped    → registra ação não tentada (skip ou cancelamento)
    - save_manifest     → persistência do Manifest em JSON
    - load_manifest     → restauração determinística do Manifest

Invariantes:
    - O Manifest inicia com `actions` e `events` vazios
    - Eventos nunca são reordenados automaticamente
"""

from .manifest import (
    ApplyManifest,
    action_failed,
    action_finished,
    action_skipped,
    action_started,
    add_event,
    create_manifest,
    load_manifest,
    save_manifest,
)

__all__ = [
    "ApplyManifest",
    "create_manifest",
    "add_event",
    "action_started",
    "action_finished",
    "action_failed",
    "action_skipped",
    "save_manifest",
    "load_manifest",
]
