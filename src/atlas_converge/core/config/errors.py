"""
Exceções da camada de configuração do Atlas Converge.

Estas exceções representam violações estruturais da configuração, e não
falhas de plano ou de apply. Todas herdam de `ConfigError`, o que permite
captura genérica por quem monta o engine.

Limites explícitos:
    - Não representam erros de provider ou de estado
    - Não realizam fallback ou recovery
"""


class ConfigError(Exception):
    """Exceção base para erros de configuração do Atlas Converge."""


class DefaultsNotFoundError(ConfigError):
    """
    O arquivo de defaults não foi encontrado no caminho informado.

    O arquivo de defaults é obrigatório: sem ele não existe configuração
    efetiva válida e o loader não tenta inferir valores.
    """


class UnsupportedConfigFormatError(ConfigError):
    """
    Extensão de arquivo não suportada pelo loader.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidConfigRootTypeError(ConfigError):
    """O conteúdo raiz do arquivo não é um mapa chave-valor (`dict`)."""


class ConfigTypeConflictError(ConfigError):
    """
    Conflito de tipos durante o deep-merge.

    Exemplo de conflito:
        - base:     {"engine": {"parallelism": 10}}
        - override: {"engine": "fast"}

    Nenhum merge parcial é produzido em caso de conflito.
    """


class InvalidSettingError(ConfigError):
    """
    Valor de configuração presente, mas fora do domínio aceito.

    Exemplos: `engine.parallelism` menor que 1, `secrets.length` abaixo
    do mínimo de entropia, `database.vpc_id` ausente.
    """
