"""Errores del dominio.

Ningún error de este paquete es fatal: los resolvers los capturan y avanzan al
siguiente servicio de la lista.
"""

from __future__ import annotations


class NetIdentError(Exception):
    """Base de los errores propios del proyecto."""


class FetchError(NetIdentError):
    """Un intento de consulta individual falló (transporte, subprocess, formato)."""

    def __init__(self, endpoint: str, reason: str) -> None:
        super().__init__(f"{endpoint}: {reason}")
        self.endpoint = endpoint
        self.reason = reason
