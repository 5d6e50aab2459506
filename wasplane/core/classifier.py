"""
Clasificador de resultados de wsadmin.

wsadmin no tiene un canal de error estructurado: la clasificación se hace sobre el
texto de salida con una tabla de firmas (patrón → resultado, razón, sugerencia).
La tabla es extensible (register) sin tocar el flujo de control.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern, Union

from wasplane.core.infra.contracts import ExecutionResult, FailureReason, Outcome


@dataclass(frozen=True)
class Signature:
    """Firma conocida en la salida del intérprete."""
    pattern: Pattern[str]
    outcome: Outcome
    reason: FailureReason
    hint: str = ""

    @classmethod
    def of(
        cls,
        pattern: Union[str, Pattern[str]],
        outcome: Outcome,
        reason: FailureReason,
        hint: str = "",
    ) -> "Signature":
        if isinstance(pattern, str):
            pattern = re.compile(pattern, re.IGNORECASE)
        return cls(pattern, outcome, reason, hint)

    def matches(self, output: str) -> bool:
        return bool(self.pattern.search(output or ""))


DEPENDENCY_NOT_READY_HINT = (
    "El recurso remoto aún no está disponible. Verifica que los servicios necesarios "
    "existan y estén corriendo en este host y en el DMGR. Si es la primera ejecución, "
    "puede que el miembro del cluster deba crearse antes en el DMGR; "
    "un pase posterior debería converger."
)

# Gana la primera firma que coincide: el orden de la tabla importa
DEFAULT_SIGNATURES: List[Signature] = [
    Signature.of(
        r'invalid (parameter value "" for parameter ")?parent config id',
        Outcome.RECOVERABLE,
        FailureReason.DEPENDENCY_NOT_READY,
        DEPENDENCY_NOT_READY_HINT,
    ),
    Signature.of(
        r"already exists",
        Outcome.RECOVERABLE,
        FailureReason.ALREADY_EXISTS,
        "El objeto ya existe en la configuración; el próximo pase lo leerá como presente.",
    ),
    Signature.of(
        r"WASX7017E|WASX7015E|ScriptLibraryException|Traceback \(",
        Outcome.FATAL,
        FailureReason.INTERPRETER_ERROR,
        "wsadmin lanzó una excepción ejecutando el script.",
    ),
    Signature.of(
        r"WASX7246E|WASX7023E",
        Outcome.FATAL,
        FailureReason.INTERPRETER_CRASH,
        "wsadmin no pudo conectar con el proceso servidor (¿DMGR detenido?).",
    ),
]


class Classifier:
    """
    Clasifica (salida, código de salida) en Success / Recoverable / Fatal.

    Orden de decisión:
    1. primera firma de la tabla que coincide, en orden (las del provider van primero)
    2. código de salida distinto de 0 → FATAL (INTERPRETER_CRASH)
    3. marcador de éxito esperado ausente → FATAL (UNRECOGNIZED_OUTPUT)
    4. SUCCESS
    """

    def __init__(self, signatures: Optional[Iterable[Signature]] = None):
        self._signatures: List[Signature] = list(
            DEFAULT_SIGNATURES if signatures is None else signatures
        )

    @property
    def signatures(self) -> List[Signature]:
        return list(self._signatures)

    def register(self, signature: Signature) -> None:
        self._signatures.append(signature)

    def extended(self, signatures: Iterable[Signature]) -> "Classifier":
        """Copia con firmas de un provider; tienen prioridad sobre las genéricas."""
        return Classifier([*signatures, *self._signatures])

    def classify(
        self,
        output: str,
        exit_status: Optional[int],
        expect: Optional[Pattern[str]] = None,
        expect_hint: str = "",
    ) -> ExecutionResult:
        output = output or ""
        for signature in self._signatures:
            if signature.matches(output):
                return ExecutionResult(output, exit_status, signature.outcome, signature.reason, signature.hint)

        if exit_status != 0:
            return ExecutionResult(
                output,
                exit_status,
                Outcome.FATAL,
                FailureReason.INTERPRETER_CRASH,
                f"El intérprete terminó con código {exit_status}",
            )

        if expect is not None and not expect.search(output):
            return ExecutionResult(
                output,
                exit_status,
                Outcome.FATAL,
                FailureReason.UNRECOGNIZED_OUTPUT,
                expect_hint or "La salida no contiene el marcador de éxito esperado",
            )

        return ExecutionResult(output, exit_status, Outcome.SUCCESS)
