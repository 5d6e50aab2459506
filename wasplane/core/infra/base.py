"""
Base para providers: implementación por defecto del diff y del contexto de ejecución.

Un provider recibe la declaración ya validada y expone:
- read_state(executor): estado actual o None (no existe)
- diff(builder): registra cambios pendientes (sin ejecutar nada)
- create_script / update_script / destroy_script: un Script por operación
"""

from typing import Any, Dict, Optional, Tuple

from rich.console import Console
from rich.markup import escape

from wasplane.core.classifier import Signature
from wasplane.core.errors import ReconcileError
from wasplane.core.infra.contracts import ExecutionContext, Executor
from wasplane.core.models import ResourceDeclaration
from wasplane.core.runtime.state import ChangeSet, ChangeSetBuilder, CurrentState, values_differ
from wasplane.core.script import Script


class BaseProvider:
    """Base opcional para providers; no obligatorio usar herencia."""

    kind: str = "base"
    declaration_class = ResourceDeclaration
    # Atributos compuestos (listas) que se aplican con altas/bajas incrementales
    membership: Tuple[str, ...] = ()
    # Atributos cuyo cambio requiere recargar la autorización
    refresh_on: Tuple[str, ...] = ()
    # Firmas de salida específicas de este tipo
    signatures: Tuple[Signature, ...] = ()

    def __init__(
        self,
        resource: ResourceDeclaration,
        timeout: Optional[float] = None,
        console: Optional[Console] = None,
    ):
        self.resource = resource
        self.timeout = timeout
        self.console = console

    @property
    def label(self) -> str:
        return self.resource.label

    @property
    def ensurable(self) -> bool:
        return self.resource.ensurable

    def context(self) -> ExecutionContext:
        return ExecutionContext(
            user=self.resource.user,
            profile_dir=self.resource.profile_dir(self.resource.run_profile),
            wsadmin_user=self.resource.wsadmin_user,
            wsadmin_pass=self.resource.wsadmin_pass,
            timeout=self.timeout,
            resource=self.label,
            signatures=self.signatures,
            secrets=self.secrets(),
        )

    def secrets(self) -> Tuple[str, ...]:
        """Contraseñas de la declaración que pueden acabar en el script."""
        return tuple(s for s in (self.resource.wsadmin_pass,) if s)

    def debug(self, message: str) -> None:
        if self.console:
            self.console.print(f"[dim]{escape(self.label)}: {escape(message)}[/dim]")

    def read_state(self, executor: Executor) -> Optional[CurrentState]:
        """Por defecto: el objeto no existe."""
        return None

    def enforce_membership(self, attribute: str) -> bool:
        return True

    def diff(self, builder: ChangeSetBuilder) -> None:
        """Compara deseado vs actual atributo a atributo y registra las diferencias."""
        desired = self.resource.desired()
        for attribute, value in desired.items():
            if attribute in self.membership:
                builder.set_members(
                    attribute,
                    list(value),
                    enforce=self.enforce_membership(attribute),
                    refresh=attribute in self.refresh_on,
                )
            elif values_differ(value, builder.get(attribute)):
                builder.set(attribute, value)

    def create_script(self) -> Script:
        raise ReconcileError(f"{self.kind} no admite creación")

    def update_script(self, changes: ChangeSet) -> Optional[Script]:
        """Por defecto: no gestiona atributos tras la creación."""
        return None

    def destroy_script(self) -> Script:
        raise ReconcileError(f"{self.kind} no admite eliminación")

    def created_state(self) -> CurrentState:
        """Estado cacheado tras una creación exitosa: lo declarado."""
        return CurrentState(self.resource.desired())

    def describe(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "title": self.resource.title,
            "identity": dict(zip(self.resource.identity_fields, self.resource.identity())),
            "ensure": self.resource.ensure,
        }
