"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan adaptadores concretos
  (curl, dig, scutil, httpx, ficheros).
- Permite invertir dependencias: los resolvers dependen de capacidades, no de
  la plataforma.
"""
