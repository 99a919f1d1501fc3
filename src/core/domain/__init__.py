"""Modelos y reglas puras del dominio.

Por qué:
- Aquí viven los tipos estrictos (Pydantic v2), las tablas de servicios y el
  parser de respuestas.
- El dominio no conoce HTTP, subprocess ni CLI: solo conceptos del problema.
"""
