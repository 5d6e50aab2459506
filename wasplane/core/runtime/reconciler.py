"""
Reconciliation Engine: compara estado deseado (manifiesto) vs real (documentos XML de WebSphere)
y converge con a lo sumo UNA ejecución remota por recurso y pase.

Máquina de estados por recurso:
    UNCHECKED → ABSENT | PRESENT
    PRESENT   → UNCHANGED | PENDING_APPLY
    PENDING_APPLY → APPLIED | FAILED
Los estados APPLIED, UNCHANGED y FAILED terminan el pase. FAILED nunca reintenta.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from rich.console import Console

from wasplane.core.errors import ConfigError, DocumentError, ReconcileError, ScopeError, ValidationError
from wasplane.core.infra.base import BaseProvider
from wasplane.core.infra.contracts import (
    ExecutionResult,
    Executor,
    FailureReason,
    Outcome,
    PlanResult,
)
from wasplane.core.runtime.state import ChangeSet, ChangeSetBuilder, CurrentState, StateDiff
from wasplane.core.script import Script, redact


class PassState(str, Enum):
    UNCHECKED = "unchecked"
    ABSENT = "absent"
    PRESENT = "present"
    UNCHANGED = "unchanged"
    PENDING_APPLY = "pending_apply"
    APPLIED = "applied"
    FAILED = "failed"


class Action(str, Enum):
    NONE = "none"
    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"


@dataclass
class PassReport:
    """Resultado de un pase de reconciliación para un recurso."""
    resource: str
    state: PassState = PassState.UNCHECKED
    action: Action = Action.NONE
    changes: ChangeSet = field(default_factory=ChangeSet)
    current: Optional[CurrentState] = None
    script: Optional[str] = None
    result: Optional[ExecutionResult] = None
    message: str = ""
    diffs: List[StateDiff] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.state == PassState.FAILED

    @property
    def fatal(self) -> bool:
        return self.failed and (self.result is None or self.result.is_fatal)

    @property
    def recoverable(self) -> bool:
        return self.failed and self.result is not None and self.result.is_recoverable

    @property
    def executed(self) -> bool:
        return self.result is not None and self.result.exit_status is not None


def _failure(output: str, reason: FailureReason, outcome: Outcome = Outcome.FATAL, hint: str = "") -> ExecutionResult:
    """Resultado sintético para fallos detectados antes de ejecutar."""
    return ExecutionResult(output=output, exit_status=None, outcome=outcome, reason=reason, hint=hint or output)


class ReconciliationPass:
    """
    Un pase para un recurso.

    Garantiza a lo sumo una ejecución mutante: un segundo intento de aplicar en el
    mismo pase es un error de programación (ReconcileError).
    """

    def __init__(
        self,
        provider: BaseProvider,
        executor: Executor,
        console: Optional[Console] = None,
        dry_run: bool = False,
    ):
        self.provider = provider
        self.executor = executor
        self.console = console
        self.dry_run = dry_run
        self.report = PassReport(resource=provider.label)
        self._executed = False

    def run(self) -> PassReport:
        try:
            return self._run()
        except (ValidationError, ScopeError) as e:
            reason = FailureReason.UNKNOWN_SCOPE if isinstance(e, ScopeError) else FailureReason.INVALID_DECLARATION
            return self._fail(_failure(str(e), reason))
        except DocumentError as e:
            return self._fail(_failure(str(e), FailureReason.MALFORMED_DOCUMENT))
        except ConfigError as e:
            return self._fail(_failure(str(e), FailureReason.INVALID_DECLARATION))

    def _run(self) -> PassReport:
        provider = self.provider
        resource = provider.resource
        report = self.report

        current = provider.read_state(self.executor)
        report.current = current
        report.state = PassState.PRESENT if current is not None else PassState.ABSENT
        provider.debug(f"estado inicial: {report.state.value}")

        if current is None:
            if resource.ensure == "absent":
                return self._done(PassState.UNCHANGED, "ausente, como se declara")
            if not provider.ensurable:
                return self._fail(_failure(
                    f"{provider.label}: no se encontró el objeto a gestionar",
                    FailureReason.DEPENDENCY_NOT_READY,
                    Outcome.RECOVERABLE,
                    "El servidor o perfil destino todavía no existe; un pase posterior debería converger.",
                ))
            report.action = Action.CREATE
            return self._apply(provider.create_script(), on_success=provider.created_state)

        if resource.ensure == "absent":
            report.action = Action.DESTROY
            return self._apply(provider.destroy_script(), on_success=lambda: None)

        builder = ChangeSetBuilder(current)
        provider.diff(builder)
        changes = builder.finalize()
        report.changes = changes
        report.diffs = [StateDiff.from_change(provider.label, c, current) for c in changes]
        if not changes:
            return self._done(PassState.UNCHANGED, "sin cambios")

        report.state = PassState.PENDING_APPLY
        report.action = Action.UPDATE
        script = provider.update_script(changes)
        if script is None or not script.mutating:
            # El tipo no gestiona esos atributos tras la creación: se descarta el ChangeSet
            return self._done(PassState.UNCHANGED, "cambios no gestionables tras la creación")
        return self._apply(script, on_success=lambda: current.merged(changes))

    def _apply(self, script: Script, on_success) -> PassReport:
        report = self.report
        # Lo que se muestra nunca lleva contraseñas; el ejecutor recibe el script real
        report.script = redact(script.render(), self.provider.secrets())
        if self.dry_run:
            report.message = "plan (sin ejecutar)"
            return report

        result = self._execute_once(script)
        report.result = result
        if result.ok:
            report.current = on_success()
            return self._done(PassState.APPLIED, f"{report.action.value} aplicado")
        return self._fail(result)

    def _execute_once(self, script: Script) -> ExecutionResult:
        if self._executed:
            raise ReconcileError(f"{self.provider.label}: el ChangeSet ya se ejecutó en este pase")
        self._executed = True
        context = self.provider.context()
        self.provider.debug(f"ejecutando como {context.user} desde {context.profile_dir}")
        return self.executor.execute(script, context)

    def _done(self, state: PassState, message: str) -> PassReport:
        self.report.state = state
        self.report.message = message
        return self.report

    def _fail(self, result: ExecutionResult) -> PassReport:
        self.report.state = PassState.FAILED
        self.report.result = result
        self.report.message = result.hint or result.output
        return self.report


class Reconciler:
    """Motor de reconciliación: un pase secuencial por recurso declarado."""

    def __init__(self, executor: Executor, console: Optional[Console] = None, dry_run: bool = False):
        self.executor = executor
        self.console = console
        self.dry_run = dry_run

    def reconcile(self, provider: BaseProvider) -> PassReport:
        return ReconciliationPass(provider, self.executor, self.console, self.dry_run).run()

    def reconcile_all(self, providers: Iterable[BaseProvider]) -> List[PassReport]:
        return [self.reconcile(provider) for provider in providers]

    def plan(self, providers: Iterable[BaseProvider]) -> PlanResult:
        """Calcula qué se aplicaría (sin ejecutar)."""
        planner = Reconciler(self.executor, self.console, dry_run=True)
        reports = planner.reconcile_all(providers)
        actions = [f"{r.action.value} {r.resource}" for r in reports if r.action != Action.NONE]
        diffs = [d for r in reports for d in r.diffs]
        failed = sum(1 for r in reports if r.failed)
        summary = f"{len(actions)} acción(es), {len(diffs)} cambio(s), {failed} error(es)"
        return PlanResult(actions=actions, diffs=diffs, summary=summary, reports=reports)
