# tests/conftest.py
"""
Fixtures compartilhados para testes do Atlas Converge.

Este módulo define fixtures reutilizáveis que fornecem:
- configurações mínimas e determinísticas
- contexto de execução controlado (RunContext)
- providers em memória (FakeCloud, RecordingProvider)
- fábricas de recursos e engines para testes estruturais

O objetivo destas fixtures é permitir testes do core
(config, graph, planner, executor, state e traceability) sem depender de:
- nuvem real ou secret store real
- variáveis de ambiente
- esperas reais de backoff (sleep injetado)

Decisões arquiteturais:
    - Fixtures são mantidas simples e explícitas
    - Dados retornados são determinísticos e isolados
    - Imports do core são realizados de forma lazy para
      melhorar a clareza de erros durante falhas

Invariantes:
    - Nenhuma fixture chama providers reais
    - Nenhuma fixture persiste estado fora de `tmp_path`
    - Todas as fixtures são seguras para execução em paralelo

Limites explícitos:
    - Não substituir testes de integração
    - Não conter lógica condicional complexa
"""

from typing import List

import pytest


# =====================================================
# Config fixtures
# =====================================================

@pytest.fixture
def project_like_config_defaults_yaml() -> str:
    """
    Fixture que fornece um YAML de configuração padrão (defaults) semelhante ao uso real do projeto.

    Este fixture representa o conteúdo típico de `config/converge.defaults.yaml`,
    servindo como base canônica sobre a qual configurações locais são aplicadas
    via deep-merge.

    Decisões arquiteturais:
        - Configuração fornecida como string para evitar acoplamento ao arquivo real
        - Defaults sempre representam a base completa e estável

    Invariantes:
        - YAML sintaticamente válido
        - Pode ser combinado com config local sem ambiguidade

    Returns:
        str: Conteúdo YAML representando configuração padrão (defaults).
    """

    return """\
engine:
  parallelism: 10
  fail_fast: false
retry:
  max_attempts: 4
  base_delay_seconds: 0.5
database:
  environment: dev
  application: app
  vpc_id: null
  instance_class: db.t3.micro
  parameters:
    max_parallel_workers: "8"
"""


@pytest.fixture
def project_like_config_local_yaml() -> str:
    """
    Fixture que fornece um YAML de configuração local (override).

    Representa o conteúdo típico de `config/converge.local.yaml`: apenas
    as chaves que o operador sobrescreve (VPC, ambiente, paralelismo).

    Returns:
        str: Conteúdo YAML representando configuração local de override.
    """

    return """\
engine:
  parallelism: 4
database:
  environment: prod
  vpc_id: vpc-123
"""


@pytest.fixture
def dummy_config() -> dict:
    """
    Fixture que fornece uma configuração resolvida mínima e válida para testes.

    Decisões arquiteturais:
        - Config é representada como dicionário já resolvido
        - Backoff curto; o sleep real é substituído por `recorded_sleeps`
        - `fail_fast` desabilitado (comportamento padrão do apply)

    Invariantes:
        - Estrutura determinística e estável
        - Não depende de filesystem, env vars ou defaults externos

    Returns:
        dict: Configuração mínima e válida para execução de testes.
    """
    return {
        "engine": {"parallelism": 4, "fail_fast": False, "timeout_seconds": None},
        "retry": {"max_attempts": 3, "base_delay_seconds": 0.5, "max_delay_seconds": 8.0},
        "secrets": {"length": 32, "exclude_characters": '/@" '},
        "database": {
            "vpc_id": "vpc-123",
            "environment": "test",
            "application": "orders",
            "parameters": {"max_parallel_workers": "8", "random_page_cost": "1.1"},
        },
    }


@pytest.fixture
def dummy_ctx(dummy_config):
    """
    Fixture que fornece um RunContext determinístico para testes.

    `run_id` e `created_at` são fixos; o import é lazy para que a falha
    de import apareça no teste e não na coleta.

    Returns:
        RunContext: Contexto de execução isolado e previsível para testes.
    """
    from atlas_converge.core.run_context import RunContext

    return RunContext(
        run_id="run-test-001",
        created_at="2026-01-16T00:00:00+00:00",
        config=dummy_config,
        meta={"source": "pytest"},
    )


# =====================================================
# Providers & state
# =====================================================

@pytest.fixture
def recorded_sleeps() -> List[float]:
    """Lista que recebe os delays solicitados pelo retry (sleep injetado)."""
    return []


@pytest.fixture
def fake_sleep(recorded_sleeps):
    def _sleep(seconds: float) -> None:
        recorded_sleeps.append(seconds)

    return _sleep


@pytest.fixture
def fake_cloud():
    """
    Fixture que fornece uma nuvem em memória com a VPC `vpc-123` (10.0.0.0/16).

    Usado por:
        - Testes do módulo de banco de dados
        - Testes dos adaptadores de provider
        - Cenários end-to-end de convergência
    """
    from tests.fixtures.providers.fake_cloud import FakeCloud

    return FakeCloud()


@pytest.fixture
def recording_provider():
    from tests.fixtures.providers.recording import RecordingProvider

    return RecordingProvider()


@pytest.fixture
def state_store():
    from atlas_converge.core.state.store import StateStore

    return StateStore()


@pytest.fixture
def make_resource():
    """
    Fixture factory para recursos genéricos do tipo `thing`.

    O atributo `name` é sempre declarado (o RecordingProvider identifica
    chamadas por ele) e `id` é declarado como output atribuído pelo provider.

    Returns:
        Callable: `make_resource(name, **attributes)` → Resource.
    """
    from atlas_converge.core.graph.resource import Resource

    def _make(name: str, *, type: str = "thing", outputs=("id",), **attributes):
        attrs = {"name": name}
        attrs.update(attributes)
        return Resource(type=type, name=name, attributes=attrs, outputs=tuple(outputs))

    return _make


@pytest.fixture
def thing_registry(recording_provider):
    """ProviderRegistry com o RecordingProvider registrado para o tipo `thing`."""
    from atlas_converge.core.providers.registry import ProviderRegistry

    registry = ProviderRegistry()
    registry.register("thing", recording_provider)
    return registry


@pytest.fixture
def make_executor(thing_registry, state_store, dummy_ctx, fake_sleep):
    """
    Fixture factory para `Executor` com sleep injetado.

    Aceita overrides de `EngineSettings` (ex.: parallelism, fail_fast).
    """
    from atlas_converge.core.config.settings import EngineSettings, RetrySettings
    from atlas_converge.core.engine.executor import Executor

    def _make(*, providers=None, store=None, **settings):
        settings.setdefault("retry", RetrySettings(max_attempts=3, base_delay_seconds=0.5, max_delay_seconds=8.0))
        return Executor(
            providers=providers or thing_registry,
            store=store or state_store,
            ctx=dummy_ctx,
            settings=EngineSettings(**settings),
            sleep=fake_sleep,
        )

    return _make


@pytest.fixture
def database_resources(dummy_config):
    from atlas_converge.modules.database import declare_database_from_config

    return declare_database_from_config(dummy_config)


@pytest.fixture
def make_database_engine(fake_cloud, state_store, dummy_ctx, fake_sleep):
    """
    Fixture factory para `ConvergeEngine` sobre o módulo de banco e a FakeCloud.

    Cada chamada constrói um engine novo sobre o MESMO State Store, como
    em runs sucessivas de um operador.

    Returns:
        Callable: `make_database_engine(**database_overrides)` → ConvergeEngine.
    """
    from atlas_converge.core.config.merge import deep_merge
    from atlas_converge.core.engine.engine import ConvergeEngine
    from atlas_converge.modules.database import declare_database_from_config

    registry = fake_cloud.registry()

    def _make(**database_overrides):
        config = deep_merge(dummy_ctx.config, {"database": database_overrides})
        return ConvergeEngine(
            resources=declare_database_from_config(config),
            providers=registry,
            store=state_store,
            ctx=dummy_ctx,
            sleep=fake_sleep,
        )

    return _make
