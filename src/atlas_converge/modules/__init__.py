"""
Módulos de declarações prontos para o engine.

Componentes:
    - database → banco relacional gerenciado, credenciais e secret store
"""

from .database import cidr_list, declare_database, declare_database_from_config

__all__ = ["cidr_list", "declare_database", "declare_database_from_config"]
