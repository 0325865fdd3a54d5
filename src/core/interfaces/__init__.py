"""Contratos de persistencia del Core.

Por qué:
- El store local y el cliente remoto son intercambiables para el selector de
  backend; ambos cumplen Protocols definidos aquí.
"""
