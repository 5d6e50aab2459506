"""
Estado de una reconciliación: estado actual observado y conjunto de cambios pendientes.

El core NO lee documentos ni ejecuta scripts; aquí solo vive la contabilidad en memoria
(CurrentState, ChangeSetBuilder) y los protocolos que implementan los providers.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Protocol, Sequence, Tuple, Union


def normalize(value: Any) -> Any:
    """Normaliza un valor para compararlo con lo que guarda WebSphere (todo texto)."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return [normalize(v) for v in value]
    if isinstance(value, Mapping):
        return {str(k): normalize(v) for k, v in value.items()}
    return str(value)


def values_differ(desired: Any, current: Any) -> bool:
    """
    True si el valor deseado no coincide con el actual.

    Un valor deseado None no se gestiona. Los mapas se comparan solo en las
    claves declaradas (WebSphere devuelve muchos más atributos de los declarados).
    """
    if desired is None:
        return False
    if isinstance(desired, Mapping):
        current = current or {}
        return any(normalize(v) != normalize(current.get(k)) for k, v in desired.items())
    return normalize(desired) != normalize(current)


def membership_delta(desired: Sequence[str], current: Sequence[str]) -> Tuple[List[str], List[str]]:
    """
    Diferencia de conjuntos para atributos compuestos (miembros, roles).

    Returns:
        (additions, removals) con additions = desired - current y
        removals = current - desired, conservando el orden de origen.
    """
    current_set = set(current or [])
    desired_set = set(desired or [])
    additions: List[str] = []
    for item in desired or []:
        if item not in current_set and item not in additions:
            additions.append(item)
    removals: List[str] = []
    for item in current or []:
        if item not in desired_set and item not in removals:
            removals.append(item)
    return additions, removals


class CurrentState(Mapping[str, Any]):
    """
    Estado observado de un objeto remoto (atributo → valor).

    Inmutable: se reconstruye en cada pase y solo se reemplaza (merged).
    Una entrada ausente significa "no presente en remoto".
    """

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        self._values = MappingProxyType(dict(values or {}))

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"CurrentState({dict(self._values)!r})"

    def merged(self, changes: "ChangeSet") -> "CurrentState":
        """Nuevo estado con el ChangeSet aplicado (tras una ejecución exitosa)."""
        values = dict(self._values)
        for change in changes:
            if isinstance(change, MembershipChange):
                members = [m for m in values.get(change.attribute) or [] if m not in change.removals]
                members.extend(m for m in change.additions if m not in members)
                values[change.attribute] = members
            elif isinstance(change.value, Mapping) and isinstance(values.get(change.attribute), Mapping):
                values[change.attribute] = {**values[change.attribute], **change.value}
            else:
                values[change.attribute] = change.value
        return CurrentState(values)


@dataclass(frozen=True)
class PendingChange:
    """Un atributo con su nuevo valor deseado."""
    attribute: str
    value: Any


@dataclass(frozen=True)
class MembershipChange:
    """Cambio incremental de un atributo compuesto (add/remove, nunca reemplazo total)."""
    attribute: str
    additions: Tuple[str, ...] = ()
    removals: Tuple[str, ...] = ()
    refresh: bool = False  # cambio relevante para seguridad → recargar autorización

    @property
    def is_empty(self) -> bool:
        return not self.additions and not self.removals


Change = Union[PendingChange, MembershipChange]


@dataclass(frozen=True)
class ChangeSet:
    """Secuencia ordenada (orden de llamada a los setters) de cambios pendientes."""
    changes: Tuple[Change, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[Change]:
        return iter(self.changes)

    def __len__(self) -> int:
        return len(self.changes)

    def __bool__(self) -> bool:
        return bool(self.changes)

    def get(self, attribute: str) -> Optional[Change]:
        for change in self.changes:
            if change.attribute == attribute:
                return change
        return None

    @property
    def attributes(self) -> List[str]:
        return [c.attribute for c in self.changes]

    @property
    def values(self) -> Dict[str, Any]:
        """Solo los cambios de valor simple (no membresías)."""
        return {c.attribute: c.value for c in self.changes if isinstance(c, PendingChange)}

    @property
    def memberships(self) -> List[MembershipChange]:
        return [c for c in self.changes if isinstance(c, MembershipChange)]

    @property
    def needs_refresh(self) -> bool:
        return any(c.refresh for c in self.memberships)


class ChangeSetBuilder:
    """
    Registra cambios pendientes sin ejecutar nada.

    get() devuelve el valor actual; set() registra un cambio. Llamar set() dos veces
    para el mismo atributo conserva solo el último valor.
    """

    def __init__(self, current: Optional[CurrentState] = None):
        self._current = current if current is not None else CurrentState()
        self._pending: Dict[str, Change] = {}

    def get(self, attribute: str) -> Any:
        return self._current.get(attribute)

    def set(self, attribute: str, value: Any) -> None:
        self._pending[attribute] = PendingChange(attribute, value)

    def set_members(
        self,
        attribute: str,
        desired: Sequence[str],
        enforce: bool = True,
        refresh: bool = False,
    ) -> Optional[MembershipChange]:
        """
        Registra la diferencia de conjuntos entre deseado y actual.

        Con enforce=False no se eliminan miembros sobrantes. Si no hay nada que
        añadir ni quitar, se descarta cualquier cambio previo del atributo.
        """
        additions, removals = membership_delta(desired, self.get(attribute) or [])
        if not enforce:
            removals = []
        change = MembershipChange(attribute, tuple(additions), tuple(removals), refresh)
        if change.is_empty:
            self._pending.pop(attribute, None)
            return None
        self._pending[attribute] = change
        return change

    def finalize(self) -> ChangeSet:
        return ChangeSet(tuple(self._pending.values()))


class StateDiff:
    """Diferencia entre estado deseado y real (para mostrar un plan)."""
    def __init__(
        self,
        resource_id: str,
        field: str,
        desired: Any,
        actual: Any,
        severity: str = "warning"
    ):
        self.resource_id = resource_id
        self.field = field
        self.desired = desired
        self.actual = actual
        self.severity = severity  # "error", "warning", "info"

    @classmethod
    def from_change(cls, resource_id: str, change: Change, current: Mapping[str, Any]) -> "StateDiff":
        if isinstance(change, MembershipChange):
            desired = " ".join([f"+{m}" for m in change.additions] + [f"-{m}" for m in change.removals])
            return cls(resource_id, change.attribute, desired, current.get(change.attribute), "info")
        return cls(resource_id, change.attribute, change.value, current.get(change.attribute))


class StateReader(Protocol):
    """Protocolo: quien lee el estado real (documento XML, salida de herramienta)."""
    def read_state(self, context: Any) -> Optional[CurrentState]:
        ...
