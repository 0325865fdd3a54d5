"""Modelos y entidades del dominio.

Por qué:
- Aquí viven las estructuras de datos puras (Pydantic v2) y las reglas que no
  dependen de dónde se guardan: ids, normalización, checklist y progreso.
"""
