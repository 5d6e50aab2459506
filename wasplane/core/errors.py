"""
Errores del Control Plane de WebSphere.

El core solo define excepciones; las capas (CLI) se encargan del formato de salida.
Los fallos del intérprete (wsadmin) NO son excepciones: se clasifican en ExecutionResult.
"""


class WasPlaneError(Exception):
    """Error base de wasplane."""
    pass


class ValidationError(WasPlaneError):
    """Error de validación de una declaración (antes de cualquier llamada remota)."""

    def __init__(self, message: str, resource: str = ""):
        super().__init__(message)
        self.resource = resource

    def __str__(self) -> str:
        message = super().__str__()
        if self.resource:
            return f"{self.resource}: {message}"
        return message


class ConfigError(WasPlaneError):
    """Error de configuración (archivo faltante, formato inválido)."""
    pass


class ScopeError(ConfigError):
    """Tipo de scope desconocido o incompleto (cell, cluster, node, server)."""
    pass


class DocumentError(WasPlaneError):
    """Documento XML de configuración mal formado."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class ScriptError(ValidationError):
    """Un valor no puede representarse en el dialecto del script."""
    pass


class ReconcileError(WasPlaneError):
    """Violación del ciclo de reconciliación (p. ej. aplicar dos veces en un pase)."""
    pass
