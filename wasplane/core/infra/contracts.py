"""
Contratos que deben implementar los providers y el ejecutor.

El core solo define interfaces y resultados; la implementación vive en wasplane/providers/*.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple

from wasplane.core.runtime.state import StateDiff


class Outcome(str, Enum):
    """Clasificación del resultado de un script."""
    SUCCESS = "success"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


class FailureReason(str, Enum):
    INVALID_DECLARATION = "invalid_declaration"
    DEPENDENCY_NOT_READY = "dependency_not_ready"
    ALREADY_EXISTS = "already_exists"
    MALFORMED_DOCUMENT = "malformed_document"
    UNKNOWN_SCOPE = "unknown_scope"
    INTERPRETER_CRASH = "interpreter_crash"
    INTERPRETER_ERROR = "interpreter_error"
    UNRECOGNIZED_OUTPUT = "unrecognized_output"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class ExecutionResult:
    """Resultado efímero de ejecutar un script: salida cruda + clasificación."""
    output: str
    exit_status: Optional[int]
    outcome: Outcome
    reason: Optional[FailureReason] = None
    hint: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.SUCCESS

    @property
    def is_recoverable(self) -> bool:
        return self.outcome == Outcome.RECOVERABLE

    @property
    def is_fatal(self) -> bool:
        return self.outcome == Outcome.FATAL


@dataclass
class ExecutionContext:
    """
    Contexto explícito de ejecución (quién y dónde corre el intérprete).

    Se pasa como parámetro por toda la cadena lector/emisor/ejecutor.
    """
    user: str
    profile_dir: Path
    wsadmin_user: Optional[str] = None
    wsadmin_pass: Optional[str] = None
    timeout: Optional[float] = None
    resource: str = ""
    signatures: Tuple[Any, ...] = ()  # firmas de salida propias del provider
    secrets: Tuple[str, ...] = ()  # valores a ocultar al mostrar comandos y scripts


class PlanResult:
    """Resultado de un plan (qué se aplicaría) sin ejecutar."""
    def __init__(
        self,
        actions: List[str],
        diffs: List[StateDiff],
        summary: str = "",
        reports: Optional[List[Any]] = None,
    ):
        self.actions = actions
        self.diffs = diffs
        self.summary = summary
        self.reports = reports or []


class Executor(Protocol):
    """Contrato del ejecutor: una invocación del intérprete por script."""

    def execute(self, script: Any, context: ExecutionContext) -> ExecutionResult:
        """Ejecuta el script una sola vez y clasifica la salida."""
        ...

    def query(self, argv: List[str], context: ExecutionContext) -> ExecutionResult:
        """Ejecuta un comando de solo lectura (p. ej. managesdk -listEnabledProfile)."""
        ...


class ProviderContract(Protocol):
    """
    Contrato mínimo de un provider (cluster_member, cf, jdbc_provider, ...).
    No ejecuta lógica directa; expone lectura de estado y emisión de scripts.
    """
    @property
    def kind(self) -> str:
        """Identificador del tipo de recurso (ej: cluster_member)."""
        ...

    def read_state(self, executor: Executor) -> Any:
        """Estado actual o None si el objeto no existe."""
        ...

    def create_script(self) -> Any:
        ...

    def update_script(self, changes: Any) -> Any:
        ...

    def destroy_script(self) -> Any:
        ...

    def describe(self) -> Dict[str, Any]:
        ...
