"""
Emisor de scripts: AST mínimo de operaciones remotas y un serializador por dialecto.

Los providers NO interpolan cadenas: construyen operaciones (CreateOp, ModifyOp, TaskOp,
MemberOp, DeleteOp, SaveOp, RefreshOp) y el serializador del dialecto (Jython para
wsadmin, shell para managesdk/manageprofiles) es el único que cita valores.

Formato: un bloque separado por línea en blanco por cada sentencia lógica.
Orden dentro de un update: bind → modificaciones → membresías → save → refresh.
"""

import shlex
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, List, Optional, Pattern, Sequence, Tuple, Union

from wasplane.core.errors import ScriptError, ValidationError


class Dialect(str, Enum):
    JYTHON = "jython"
    SHELL = "shell"


class ArgStyle(str, Enum):
    LIST = "list"        # ['-name', 'x', '-jndiName', 'y']
    BRACKET = "bracket"  # '[-name "x" -memberConfig [-memberNode "n"]]'


class Phase(IntEnum):
    BIND = 0
    MODIFY = 1
    MEMBERSHIP = 2
    SAVE = 3
    REFRESH = 4


@dataclass(frozen=True)
class Var:
    """Referencia a una variable del script (no se cita)."""
    name: str


Pair = Tuple[str, Any]

PARENT_NOT_FOUND = 'Invalid parameter value "" for parameter "parent config id" on command "create"'

MASK = "****"


def redact(text: str, secrets: Sequence[str]) -> str:
    """Copia del texto apta para mostrar: cada secreto no vacío se sustituye por ****."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, MASK)
    return text


@dataclass(frozen=True)
class ConfigRef:
    """
    Referencia a un objeto de configuración; el script la resuelve a un config id.

    - containment: AdminConfig.getid('/Cell:C/Node:N/Server:S/')
    - object_type (+ scope o parent): AdminConfig.list(type, scope) filtrado
    - attribute (+ parent): AdminConfig.showAttribute(parent, attribute)
    """
    containment: Optional[str] = None
    object_type: Optional[str] = None
    scope: Optional[str] = None
    parent: Optional["ConfigRef"] = None
    attribute: Optional[str] = None
    contains: Optional[str] = None
    named: Optional[str] = None
    id_suffix: Optional[str] = None

    def describe(self) -> str:
        if self.containment:
            return self.containment
        if self.attribute:
            return f"{self.parent.describe() if self.parent else ''}.{self.attribute}"
        return f"{self.object_type}[{self.named or self.contains or self.id_suffix or ''}]"


@dataclass(frozen=True)
class BindOp:
    """Asigna a una variable el resultado de un AdminTask (ej: searchGroups)."""
    name: str
    task: str
    args: Tuple[Pair, ...] = ()
    phase: Phase = field(default=Phase.BIND, init=False)


@dataclass(frozen=True)
class CreateOp:
    """Creación: AdminTask.<task>(...) o AdminConfig.create(object_type, parent, attrs)."""
    required: Tuple[Pair, ...]
    optional: Tuple[Pair, ...] = ()
    task: Optional[str] = None
    object_type: Optional[str] = None
    parent: Optional[ConfigRef] = None
    style: ArgStyle = ArgStyle.LIST
    phase: Phase = field(default=Phase.MODIFY, init=False)

    def validate(self) -> None:
        """Los campos obligatorios no pueden estar vacíos: no se crean objetos 'dummy'."""
        empty = [name for name, value in self.required if value is None or str(value) == ""]
        if empty:
            raise ValidationError(f"Campos obligatorios vacíos para crear: {', '.join(empty)}")
        if not self.task and not self.object_type:
            raise ScriptError("CreateOp requiere task u object_type")


@dataclass(frozen=True)
class ModifyOp:
    ref: ConfigRef
    attributes: Tuple[Pair, ...]
    phase: Phase = field(default=Phase.MODIFY, init=False)


@dataclass(frozen=True)
class TaskOp:
    task: str
    args: Tuple[Pair, ...] = ()
    target: Optional[ConfigRef] = None
    style: ArgStyle = ArgStyle.LIST
    phase: Phase = field(default=Phase.MODIFY, init=False)


@dataclass(frozen=True)
class MemberOp:
    """
    Alta/baja incremental de miembros o roles: un AdminTask por nombre.

    lookups: búsquedas (task, argumento) para resolver el uniqueName del miembro;
    se prueban en orden (ej: searchUsers -uid y luego searchGroups -cn).
    """
    task: str
    names: Tuple[str, ...]
    member_arg: str
    args: Tuple[Pair, ...] = ()
    lookups: Tuple[Tuple[str, str], ...] = ()
    phase: Phase = field(default=Phase.MEMBERSHIP, init=False)


@dataclass(frozen=True)
class DeleteOp:
    ref: Optional[ConfigRef] = None
    task: Optional[str] = None
    args: Tuple[Pair, ...] = ()
    style: ArgStyle = ArgStyle.LIST
    phase: Phase = field(default=Phase.MODIFY, init=False)


@dataclass(frozen=True)
class SaveOp:
    phase: Phase = field(default=Phase.SAVE, init=False)


@dataclass(frozen=True)
class RefreshOp:
    """Recarga de la configuración de autorización tras cambios de seguridad."""
    query: str = "type=AuthorizationGroupManager,process=dmgr,*"
    operation: str = "refreshAll"
    phase: Phase = field(default=Phase.REFRESH, init=False)


@dataclass(frozen=True)
class CommandOp:
    """Comando de herramienta del producto (dialecto shell)."""
    argv: Tuple[str, ...]
    phase: Phase = field(default=Phase.MODIFY, init=False)


Op = Union[BindOp, CreateOp, ModifyOp, TaskOp, MemberOp, DeleteOp, SaveOp, RefreshOp, CommandOp]


@dataclass(frozen=True)
class Script:
    """Payload ejecutable: operaciones ordenadas + dialecto + marcador de éxito esperado."""
    ops: Tuple[Op, ...]
    dialect: Dialect = Dialect.JYTHON
    expect: Optional[Pattern[str]] = None
    expect_hint: str = ""

    @classmethod
    def create(
        cls,
        op: Union[CreateOp, CommandOp],
        dialect: Dialect = Dialect.JYTHON,
        expect: Optional[Pattern[str]] = None,
        expect_hint: str = "",
    ) -> "Script":
        if isinstance(op, CreateOp):
            op.validate()
        ops: Tuple[Op, ...] = (op,)
        if dialect == Dialect.JYTHON:
            ops += (SaveOp(),)
        return cls(ops, dialect, expect, expect_hint)

    @classmethod
    def update(
        cls,
        ops: Sequence[Op],
        refresh: bool = False,
        dialect: Dialect = Dialect.JYTHON,
    ) -> "Script":
        """Un único script para todos los cambios pendientes, con un solo save al final."""
        body = sorted(
            (op for op in ops if not isinstance(op, (SaveOp, RefreshOp))),
            key=lambda op: op.phase,
        )
        if dialect == Dialect.JYTHON:
            body.append(SaveOp())
            if refresh:
                body.append(RefreshOp())
        return cls(tuple(body), dialect)

    @classmethod
    def destroy(cls, op: Union[DeleteOp, CommandOp], dialect: Dialect = Dialect.JYTHON) -> "Script":
        ops: Tuple[Op, ...] = (op,)
        if dialect == Dialect.JYTHON:
            ops += (SaveOp(),)
        return cls(ops, dialect)

    @property
    def mutating(self) -> bool:
        return any(not isinstance(op, (BindOp, SaveOp, RefreshOp)) for op in self.ops)

    def render(self) -> str:
        if self.dialect == Dialect.SHELL:
            return ShellSerializer().serialize(self.ops)
        return JythonSerializer().serialize(self.ops)


# --- Dialecto Jython (wsadmin) ---

def jython_literal(value: Any) -> str:
    """Único punto de citado para Jython: cadena entre comillas simples con escapes."""
    if isinstance(value, Var):
        return value.name
    if isinstance(value, bool):
        value = "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(jython_literal(v) for v in value) + "]"
    text = str(value)
    text = (
        text.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
    return f"'{text}'"


def _bracket_value(value: Any) -> str:
    if isinstance(value, Var):
        raise ScriptError(f"Variable {value.name} no admitida en argumentos entre corchetes")
    if isinstance(value, (list, tuple)):
        return _bracket(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value)
    if '"' in text:
        raise ScriptError(f"Valor con comillas dobles no representable en wsadmin: {text}")
    return f'"{text}"'


def _bracket(pairs: Sequence[Pair]) -> str:
    return "[" + " ".join(f"-{name} {_bracket_value(value)}" for name, value in pairs) + "]"


def task_args(pairs: Sequence[Pair], style: ArgStyle = ArgStyle.LIST) -> str:
    """Argumentos de AdminTask en estilo lista o corchetes."""
    if style == ArgStyle.BRACKET:
        return jython_literal(_bracket(pairs))
    flat: List[Any] = []
    for name, value in pairs:
        if isinstance(value, (list, tuple)) and not isinstance(value, str):
            raise ScriptError(f"Argumento anidado -{name} requiere estilo BRACKET")
        flat.extend([f"-{name}", value])
    return jython_literal(flat)


def config_attrs(pairs: Sequence[Pair]) -> str:
    """Atributos de AdminConfig: [['k', 'v'], ...]"""
    return jython_literal([[name, value] for name, value in pairs])


class JythonSerializer:
    """Serializa operaciones a un script Jython para wsadmin -lang jython -f."""

    def __init__(self):
        self._counter = 0

    def _var(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}{self._counter}"

    def serialize(self, ops: Sequence[Op]) -> str:
        blocks = [self.render(op) for op in ops]
        return "\n\n".join(blocks) + "\n"

    def render(self, op: Op) -> str:
        method = getattr(self, f"_render_{type(op).__name__}", None)
        if method is None:
            raise ScriptError(f"Operación no soportada en Jython: {type(op).__name__}")
        return "\n".join(method(op))

    def resolve(self, ref: ConfigRef, missing: Optional[str] = None) -> Tuple[str, List[str]]:
        """Líneas que resuelven la referencia a un config id; devuelve (variable, líneas)."""
        var = self._var("target")
        lines: List[str] = []
        if ref.containment:
            lines.append(f"{var} = AdminConfig.getid({jython_literal(ref.containment)})")
        elif ref.attribute:
            if ref.parent is None:
                raise ScriptError(f"ConfigRef.attribute requiere parent: {ref.attribute}")
            parent, parent_lines = self.resolve(ref.parent)
            lines.extend(parent_lines)
            lines.append(f"{var} = AdminConfig.showAttribute({parent}, {jython_literal(ref.attribute)})")
            lines.append(f"if {var} is None:")
            lines.append(f"    {var} = ''")
        elif ref.object_type:
            if ref.parent is not None:
                scope, parent_lines = self.resolve(ref.parent)
                lines.extend(parent_lines)
                listing = f"AdminConfig.list({jython_literal(ref.object_type)}, {scope})"
            elif ref.scope:
                listing = f"AdminConfig.list({jython_literal(ref.object_type)}, {jython_literal(ref.scope)})"
            else:
                listing = f"AdminConfig.list({jython_literal(ref.object_type)})"
            lines.append(f"{var}_list = {listing}.splitlines()")
            if ref.named:
                lines.append(f"{var}_list = [c for c in {var}_list if c.startswith({jython_literal(ref.named + '(')})]")
            if ref.contains:
                lines.append(f"{var}_list = [c for c in {var}_list if c.count({jython_literal(ref.contains)}) > 0]")
            if ref.id_suffix:
                lines.append(f"{var}_list = [c for c in {var}_list if c.endswith({jython_literal('#' + ref.id_suffix + ')')})]")
            lines.append(f"if len({var}_list) == 0:")
            lines.append(f"    {var} = ''")
            lines.append("else:")
            lines.append(f"    {var} = {var}_list[0]")
        else:
            raise ScriptError("ConfigRef vacío")

        message = missing or f"Configuration object not found: {ref.describe()}"
        lines.append(f"if len({var}) == 0:")
        lines.append(f"    raise AttributeError({jython_literal(message)})")
        return var, lines

    def _render_BindOp(self, op: BindOp) -> List[str]:
        return [f"{op.name} = AdminTask.{op.task}({task_args(op.args)})"]

    def _render_CreateOp(self, op: CreateOp) -> List[str]:
        lines = [
            f"for attr, value in {jython_literal([[n, v] for n, v in op.required])}:",
            "    if len(value) == 0:",
            "        raise AttributeError('Invalid parameter value \"\" for required parameter ' + attr)",
        ]
        parent = None
        if op.parent is not None:
            parent, parent_lines = self.resolve(op.parent, missing=PARENT_NOT_FOUND)
            lines.extend(parent_lines)

        pairs = list(op.required) + list(op.optional)
        if op.task:
            args = task_args(pairs, op.style)
            call = f"AdminTask.{op.task}({parent + ', ' if parent else ''}{args})"
        else:
            if parent is None:
                raise ScriptError(f"AdminConfig.create de {op.object_type} requiere parent")
            call = f"AdminConfig.create({jython_literal(op.object_type)}, {parent}, {config_attrs(pairs)})"
        lines.append(f"newId = {call}")
        lines.append("print(newId)")
        return lines

    def _render_ModifyOp(self, op: ModifyOp) -> List[str]:
        var, lines = self.resolve(op.ref)
        lines.append(f"AdminConfig.modify({var}, {config_attrs(op.attributes)})")
        return lines

    def _render_TaskOp(self, op: TaskOp) -> List[str]:
        lines: List[str] = []
        target = ""
        if op.target is not None:
            var, lines = self.resolve(op.target)
            target = var + ", "
        lines.append(f"AdminTask.{op.task}({target}{task_args(op.args, op.style)})")
        return lines

    def _render_MemberOp(self, op: MemberOp) -> List[str]:
        lines = [f"for member in {jython_literal(list(op.names))}:"]
        if op.lookups:
            first_task, first_arg = op.lookups[0]
            lines.append(f"    memberId = AdminTask.{first_task}([{jython_literal('-' + first_arg)}, member])")
            for task, arg in op.lookups[1:]:
                lines.append("    if len(memberId) == 0:")
                lines.append(f"        memberId = AdminTask.{task}([{jython_literal('-' + arg)}, member])")
        else:
            lines.append("    memberId = member")
        items = [jython_literal("-" + op.member_arg), "memberId"]
        for name, value in op.args:
            items.extend([jython_literal("-" + name), jython_literal(value)])
        lines.append("    if len(memberId):")
        lines.append(f"        AdminTask.{op.task}([{', '.join(items)}])")
        return lines

    def _render_DeleteOp(self, op: DeleteOp) -> List[str]:
        if op.task:
            return [f"AdminTask.{op.task}({task_args(op.args, op.style)})"]
        if op.ref is None:
            raise ScriptError("DeleteOp requiere ref o task")
        var, lines = self.resolve(op.ref)
        lines.append(f"AdminConfig.remove({var})")
        return lines

    def _render_SaveOp(self, op: SaveOp) -> List[str]:
        return ["AdminConfig.save()"]

    def _render_RefreshOp(self, op: RefreshOp) -> List[str]:
        return [
            f"agmBean = AdminControl.queryNames({jython_literal(op.query)})",
            f"AdminControl.invoke(agmBean, {jython_literal(op.operation)})",
        ]


# --- Dialecto shell (managesdk.sh / manageprofiles.sh) ---

class ShellSerializer:
    """Serializa CommandOp a un script sh; se detiene en el primer error (set -e)."""

    def serialize(self, ops: Sequence[Op]) -> str:
        blocks = ["set -e"]
        for op in ops:
            if not isinstance(op, CommandOp):
                raise ScriptError(f"Operación no soportada en shell: {type(op).__name__}")
            blocks.append(shlex.join(op.argv))
        return "\n\n".join(blocks) + "\n"
