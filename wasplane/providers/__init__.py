"""
Providers de recursos de WebSphere.

Registro tipo → clase de provider. Cada provider trae su modelo de declaración
(tabla de esquema) y sabe leer su estado y emitir sus scripts.
"""

from typing import Any, Dict, Mapping, Optional, Type

from pydantic import ValidationError as PydanticValidationError
from rich.console import Console

from wasplane.core.errors import ValidationError
from wasplane.core.infra.base import BaseProvider
from wasplane.core.models import ResourceDeclaration
from wasplane.providers.cf import CFProvider
from wasplane.providers.cluster_member import ClusterMemberProvider
from wasplane.providers.group import GroupProvider
from wasplane.providers.jdbc_provider import JDBCProviderProvider
from wasplane.providers.jvm_log import JvmLogProvider
from wasplane.providers.profile import ProfileProvider
from wasplane.providers.sdk import SdkProvider


PROVIDERS: Dict[str, Type[BaseProvider]] = {
    provider.kind: provider
    for provider in (
        ClusterMemberProvider,
        CFProvider,
        JDBCProviderProvider,
        JvmLogProvider,
        SdkProvider,
        GroupProvider,
        ProfileProvider,
    )
}


def get_provider_class(kind: str) -> Type[BaseProvider]:
    try:
        return PROVIDERS[kind]
    except KeyError:
        raise ValidationError(
            f"Tipo de recurso desconocido: {kind}. Soportados: {', '.join(sorted(PROVIDERS))}"
        ) from None


def _format_errors(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ())) or "declaración"
        parts.append(f"{location}: {item.get('msg')}")
    return "; ".join(parts)


def declare(
    kind: str,
    data: Mapping[str, Any],
    defaults: Optional[Mapping[str, Any]] = None,
) -> ResourceDeclaration:
    """
    Valida una declaración y la convierte en el modelo inmutable de su tipo.

    Args:
        kind: Tipo de recurso (cluster_member, cf, ...)
        data: Campos declarados (incluye title)
        defaults: Valores heredados; solo se aplican los campos que el tipo conoce

    Returns:
        Declaración validada

    Raises:
        ValidationError: tipo desconocido o campos inválidos (con el título del recurso)
    """
    model = get_provider_class(kind).declaration_class
    values = {k: v for k, v in (defaults or {}).items() if k in model.model_fields}
    values.update(data)
    title = str(values.get("title", ""))
    try:
        return model(**values)
    except PydanticValidationError as e:
        raise ValidationError(_format_errors(e), resource=f"{kind}[{title}]") from e


def build_provider(
    declaration: ResourceDeclaration,
    timeout: Optional[float] = None,
    console: Optional[Console] = None,
) -> BaseProvider:
    return get_provider_class(declaration.kind)(declaration, timeout=timeout, console=console)


__all__ = ["PROVIDERS", "declare", "build_provider", "get_provider_class"]
