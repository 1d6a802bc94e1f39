"""
Settings tipados extraídos da configuração resolvida.

A configuração resolvida é um `dict` puro; este módulo valida valores
e produz dataclasses imutáveis consumidas pelo engine e pelo módulo de
banco. Chaves ausentes assumem os mesmos valores documentados em
`config/converge.defaults.yaml`.

Seções reconhecidas:
    - engine   → paralelismo, fail-fast, timeout do apply
    - retry    → tentativas e backoff exponencial para falhas transitórias
    - secrets  → tamanho e caracteres excluídos de senhas geradas
    - database → superfície de configuração do módulo de banco
    - state    → caminho do State Snapshot persistido
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import InvalidSettingError

MIN_SECRET_LENGTH = 32


@dataclass(frozen=True)
class RetrySettings:
    max_attempts: int = 4
    base_delay_seconds: float = 0.5
    max_delay_seconds: float = 8.0

    def delay_for(self, attempt: int) -> float:
        """Backoff exponencial limitado para a tentativa `attempt` (1-based)."""
        delay = self.base_delay_seconds * (2 ** max(0, attempt - 1))
        return min(delay, self.max_delay_seconds)


@dataclass(frozen=True)
class EngineSettings:
    parallelism: int = 10
    fail_fast: bool = False
    timeout_seconds: Optional[float] = None
    retry: RetrySettings = field(default_factory=RetrySettings)


@dataclass(frozen=True)
class SecretSettings:
    length: int = MIN_SECRET_LENGTH
    exclude_characters: str = '/@" '


@dataclass(frozen=True)
class DatabaseSettings:
    """
    Superfície de configuração do módulo de banco gerenciado.

    `environment` prefixa nomes de recursos e objetos de segredo;
    `app_username` assume o nome da aplicação quando não declarado.
    """

    vpc_id: str
    environment: str = "dev"
    application: str = "app"
    availability_zone: Optional[str] = None
    secret_namespace: str = "default"
    master_username: str = "postgres"
    app_username: Optional[str] = None
    engine: str = "postgres"
    engine_version: str = "16.4"
    parameter_group_family: str = "postgres16"
    instance_class: str = "db.t3.micro"
    allocated_storage: int = 20
    max_allocated_storage: int = 100
    port: int = 5432
    apply_immediately: bool = True
    parameters: Dict[str, str] = field(default_factory=dict)
    tags: Dict[str, str] = field(default_factory=dict)

    @property
    def name_prefix(self) -> str:
        return f"{self.environment}-{self.application}"

    @property
    def effective_app_username(self) -> str:
        return self.app_username or self.application.replace("-", "_")


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = (config or {}).get(name) or {}
    if not isinstance(section, dict):
        raise InvalidSettingError(f"Seção '{name}' deve ser um mapa, recebido: {type(section).__name__}")
    return section


def _positive_int(section: Dict[str, Any], key: str, default: int, *, where: str) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidSettingError(f"'{where}.{key}' deve ser inteiro >= 1, recebido: {value!r}")
    return value


def _non_negative_float(section: Dict[str, Any], key: str, default: float, *, where: str) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise InvalidSettingError(f"'{where}.{key}' deve ser número >= 0, recebido: {value!r}")
    return float(value)


def engine_settings_from_config(config: Dict[str, Any]) -> EngineSettings:
    engine = _section(config, "engine")
    retry = _section(config, "retry")

    timeout = engine.get("timeout_seconds")
    if timeout is not None:
        timeout = _non_negative_float(engine, "timeout_seconds", 0.0, where="engine")

    retry_settings = RetrySettings(
        max_attempts=_positive_int(retry, "max_attempts", 4, where="retry"),
        base_delay_seconds=_non_negative_float(retry, "base_delay_seconds", 0.5, where="retry"),
        max_delay_seconds=_non_negative_float(retry, "max_delay_seconds", 8.0, where="retry"),
    )

    return EngineSettings(
        parallelism=_positive_int(engine, "parallelism", 10, where="engine"),
        fail_fast=bool(engine.get("fail_fast", False)),
        timeout_seconds=timeout,
        retry=retry_settings,
    )


def secret_settings_from_config(config: Dict[str, Any]) -> SecretSettings:
    section = _section(config, "secrets")
    length = _positive_int(section, "length", MIN_SECRET_LENGTH, where="secrets")
    if length < MIN_SECRET_LENGTH:
        raise InvalidSettingError(
            f"'secrets.length' deve ser >= {MIN_SECRET_LENGTH}, recebido: {length}"
        )
    exclude = section.get("exclude_characters", '/@" ')
    if not isinstance(exclude, str):
        raise InvalidSettingError("'secrets.exclude_characters' deve ser string")
    return SecretSettings(length=length, exclude_characters=exclude)


def database_settings_from_config(config: Dict[str, Any]) -> DatabaseSettings:
    section = dict(_section(config, "database"))

    vpc_id = section.get("vpc_id")
    if not isinstance(vpc_id, str) or not vpc_id.strip():
        raise InvalidSettingError("'database.vpc_id' é obrigatório")

    for key in ("environment", "application", "master_username", "secret_namespace"):
        value = section.get(key)
        if value is not None and (not isinstance(value, str) or not value.strip()):
            raise InvalidSettingError(f"'database.{key}' deve ser string não vazia")

    allocated = _positive_int(section, "allocated_storage", 20, where="database")
    max_allocated = _positive_int(section, "max_allocated_storage", 100, where="database")
    if max_allocated < allocated:
        raise InvalidSettingError(
            "'database.max_allocated_storage' não pode ser menor que 'allocated_storage'"
        )

    parameters = section.get("parameters") or {}
    tags = section.get("tags") or {}
    if not isinstance(parameters, dict) or not isinstance(tags, dict):
        raise InvalidSettingError("'database.parameters' e 'database.tags' devem ser mapas")

    known = {f for f in DatabaseSettings.__dataclass_fields__}
    unknown = sorted(set(section) - known)
    if unknown:
        raise InvalidSettingError(f"Chaves desconhecidas em 'database': {unknown}")

    values = {k: v for k, v in section.items() if v is not None}
    values.update(
        allocated_storage=allocated,
        max_allocated_storage=max_allocated,
        # Parâmetros do engine SQL são sempre strings no provider.
        parameters={str(k): str(v) for k, v in parameters.items()},
        tags={str(k): str(v) for k, v in tags.items()},
    )
    return DatabaseSettings(**values)


def state_path_from_config(config: Dict[str, Any], *, base_dir: Optional[Path] = None) -> Path:
    """Caminho do State Snapshot (`state.path`), relativo a `base_dir` quando informado."""
    section = _section(config, "state")
    raw = section.get("path", ".atlas/state.json")
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidSettingError("'state.path' deve ser string não vazia")
    path = Path(raw)
    if base_dir is not None and not path.is_absolute():
        path = Path(base_dir) / path
    return path
