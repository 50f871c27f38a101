"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan adaptadores concretos.
- Permite invertir dependencias: el pipeline depende de abstracciones y los
  tests sustituyen procesos reales por fakes.
"""
