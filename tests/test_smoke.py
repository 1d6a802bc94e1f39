# tests/test_smoke.py
"""
Testes de sanidade estrutural (smoke tests) do Atlas Converge.

Este módulo contém testes mínimos cujo único objetivo é garantir que:
- o repositório está estruturalmente válido
- o ambiente de testes (pytest) está funcional
- o pacote pode ser importado sem falhas estruturais

Invariantes:
    - Estes testes devem sempre passar em um setup correto
    - Não dependem de configuração, providers, filesystem ou I/O

Limites explícitos:
    - Não testar lógica de negócio
    - Não acumular asserts funcionais
"""


def test_smoke():
    """
    Smoke test mínimo do repositório.

    Valida que o pytest descobre e executa testes e que o pacote
    `atlas_converge` expõe sua versão.
    """
    import atlas_converge

    assert isinstance(atlas_converge.__version__, str)
