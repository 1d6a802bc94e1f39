"""
Persistência do último estado aplicado.

Componentes:
    - snapshot → StateEntry, StateSnapshot e persistência JSON
    - store    → StateStore (escritor único, versionado, copy-on-read)
"""

from .snapshot import StateEntry, StateSnapshot, load_snapshot, save_snapshot
from .store import StateStore

__all__ = [
    "StateEntry",
    "StateSnapshot",
    "StateStore",
    "load_snapshot",
    "save_snapshot",
]
