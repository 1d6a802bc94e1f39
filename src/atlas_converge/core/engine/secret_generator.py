"""
Gerador de segredos (senhas aleatórias).

Valores são produzidos a partir de uma fonte criptograficamente segura
(`secrets.SystemRandom`) sobre um alfabeto alfanumérico mais um conjunto
limitado de símbolos, removendo os caracteres inseguros para o consumidor
(ex.: `/`, `@`, `"` e espaço na senha master do PostgreSQL gerenciado).

O executor é o único chamador: segredos são gerados apenas em Create ou
Replace do recurso dono. Com 32 caracteres sobre ~80 símbolos, a chance
de colisão entre dois recursos é desprezível.
"""

from __future__ import annotations

import secrets
import string
from random import Random
from typing import Optional

from atlas_converge.core.config.settings import MIN_SECRET_LENGTH
from atlas_converge.core.exceptions import EngineConfigurationError
from atlas_converge.core.graph.resource import SecretSpec

DEFAULT_SPECIAL = "!#$%&*()-_=+[]{}<>:?"


def build_alphabet(spec: SecretSpec) -> str:
    special = spec.override_special if spec.override_special is not None else DEFAULT_SPECIAL
    chars = string.ascii_letters + string.digits + (special if spec.special else "")
    excluded = set(spec.exclude_characters)
    # dict.fromkeys preserva a ordem e remove duplicatas de override_special
    return "".join(c for c in dict.fromkeys(chars) if c not in excluded)


def generate_secret(spec: SecretSpec, *, rng: Optional[Random] = None) -> str:
    """
    Gera um segredo de tamanho fixo segundo `spec`.

    Raises:
        EngineConfigurationError: Se o tamanho estiver abaixo do mínimo ou o
            alfabeto resultante for vazio.
    """
    if spec.length < MIN_SECRET_LENGTH:
        raise EngineConfigurationError(
            message=f"Secret length must be >= {MIN_SECRET_LENGTH}",
            details={"length": spec.length, "minimum": MIN_SECRET_LENGTH},
            hint="Aumente o tamanho do segredo (secrets.length).",
        )

    alphabet = build_alphabet(spec)
    if not alphabet:
        raise EngineConfigurationError(
            message="Secret alphabet is empty after exclusions",
            details={"exclude_characters": spec.exclude_characters},
        )

    source = rng if rng is not None else secrets.SystemRandom()
    return "".join(source.choice(alphabet) for _ in range(spec.length))
