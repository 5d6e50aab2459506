"""
Core: lógica de reconciliación pura.

ENFORCEMENT (arquitectura limpia):
- Este paquete NO debe importar: wasplane.cli ni wasplane.providers.*.
- No lee documentos XML ni lanza procesos; eso lo hacen los providers.
- Permitido: typing, pathlib.Path, pydantic, rich (solo salida), wasplane.core.*.
- Los providers y la CLI importan desde core; nunca al revés.
"""

from wasplane.core.errors import (
    ConfigError,
    DocumentError,
    ReconcileError,
    ScopeError,
    ScriptError,
    ValidationError,
    WasPlaneError,
)

__all__ = [
    "WasPlaneError",
    "ValidationError",
    "ConfigError",
    "ScopeError",
    "DocumentError",
    "ScriptError",
    "ReconcileError",
]
