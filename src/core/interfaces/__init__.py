"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan adaptadores concretos.
- Permite invertir dependencias: el Core depende de abstracciones.
"""

from core.interfaces.generator import ContentGenerator, GeneratorFactory

__all__ = ["ContentGenerator", "GeneratorFactory"]
