"""
Hashing canônico do Atlas Converge.

O mesmo algoritmo identifica a configuração efetiva e o plano aprovado:
ambos são registrados no Manifest do apply para auditoria.

Política de hashing (v1):
    - Serialização JSON canônica (chaves ordenadas, separadores compactos)
    - Codificação UTF-8
    - SHA-256, retornado como hexadecimal de 64 caracteres

Estruturas equivalentes produzem o mesmo hash, independentemente da
ordem original das chaves.
"""

import hashlib
import json
from typing import Any, Dict


def canonical_hash(data: Any) -> str:
    """Hash SHA-256 de uma estrutura serializável em JSON canônico."""
    canonical_json = json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Gera o hash determinístico da configuração efetiva.

    Args:
        config (Dict[str, Any]): Configuração resolvida.

    Returns:
        str: Hash SHA-256 hexadecimal da configuração.

    Raises:
        TypeError: Se o objeto fornecido não for um dicionário.
    """
    if not isinstance(config, dict):
        raise TypeError(
            f"Config para hashing deve ser dict, recebido: {type(config).__name__}"
        )
    return canonical_hash(config)
