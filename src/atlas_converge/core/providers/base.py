"""
Contrato genérico de provider consumido pelo executor.

O executor não conhece APIs de domínio (grupos de segurança, instâncias de
banco, secret stores). Ele fala apenas com `ResourceProvider`, indexado por
tipo de recurso no `ProviderRegistry`. Adaptadores traduzem esse contrato
para as interfaces de capacidade de `interfaces.py`.

Contrato:
    - create(inputs)        → atributos atribuídos pelo provider (outputs)
    - update(prior, inputs) → outputs após a alteração no lugar
    - delete(prior)         → remove o recurso remoto
    - read(prior)           → outputs atuais, ou None se o recurso sumiu

`inputs` são os atributos declarados já resolvidos, incluindo segredos
gerados pelo engine. Falhas devem ser levantadas como `ProviderError`;
`transient=True` indica que o executor pode repetir a operação.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from atlas_converge.core.state.snapshot import StateEntry


class ResourceProvider(Protocol):
    def create(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        """Cria o recurso e retorna os atributos atribuídos pelo provider."""

    def update(self, prior: StateEntry, inputs: Dict[str, Any]) -> Dict[str, Any]:
        """Altera o recurso no lugar e retorna os atributos atuais."""

    def delete(self, prior: StateEntry) -> None:
        """Remove o recurso descrito pela entrada de estado."""

    def read(self, prior: StateEntry) -> Optional[Dict[str, Any]]:
        """Relê o recurso; `None` indica que ele não existe mais."""
