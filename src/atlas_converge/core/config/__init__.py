"""
Camada de configuração do Atlas Converge.

Este pacote carrega, mescla, identifica e tipa a configuração usada
pelo engine (paralelismo, retry, segredos, caminho do estado) e pelo
módulo de banco (ambiente, usuários, sizing, parâmetros do engine SQL).

A configuração no Atlas Converge é:
    - declarativa
    - determinística
    - explicitamente versionável (hash canônico no Manifest)

Responsabilidades do pacote:
    - Carregamento de defaults + overrides locais (YAML ou JSON)
    - Resolução da configuração final via deep-merge determinístico
    - Geração de hash canônico para rastreabilidade
    - Extração de settings tipados com validação de valores

Invariantes:
    - A configuração resolvida é sempre um dicionário puro (dict)
    - Conflitos estruturais e valores inválidos são tratados como erro

Limites explícitos:
    - Não executa plano nem apply
    - Não conhece providers concretos
"""

from .errors import (
    ConfigError,
    ConfigTypeConflictError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    InvalidSettingError,
    UnsupportedConfigFormatError,
)
from .hashing import canonical_hash, compute_config_hash
from .loader import load_config
from .merge import deep_merge
from .settings import (
    DatabaseSettings,
    EngineSettings,
    RetrySettings,
    SecretSettings,
    database_settings_from_config,
    engine_settings_from_config,
    secret_settings_from_config,
    state_path_from_config,
)

__all__ = [
    "ConfigError",
    "ConfigTypeConflictError",
    "DatabaseSettings",
    "DefaultsNotFoundError",
    "EngineSettings",
    "InvalidConfigRootTypeError",
    "InvalidSettingError",
    "RetrySettings",
    "SecretSettings",
    "UnsupportedConfigFormatError",
    "canonical_hash",
    "compute_config_hash",
    "database_settings_from_config",
    "deep_merge",
    "engine_settings_from_config",
    "load_config",
    "secret_settings_from_config",
    "state_path_from_config",
]
