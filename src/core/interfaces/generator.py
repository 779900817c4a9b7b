"""Contrato del servicio generativo.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- `client.aio.models` del SDK google-genai lo cumple tal cual; los tests
  sustituyen un stub que registra cada intento sin tocar la red.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable


@runtime_checkable
class ContentGenerator(Protocol):
    """Superficie mínima que usa el orquestador.

    Reglas de diseño:
    - `generate_content` es asíncrono (I/O de red).
    - La respuesta expone `.text` (plan/categorías) o
      `.candidates[0].content.parts[*].inline_data` (imágenes).
    """

    async def generate_content(self, *, model: str, contents: Any, config: Any = None) -> Any:
        ...


# Construye un generador a partir de una credencial ya resuelta.
GeneratorFactory = Callable[[str], ContentGenerator]
