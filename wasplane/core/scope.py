"""
ScopePath: dirección jerárquica (cell → cluster | node → server) de un objeto de configuración.

Derivada de forma pura desde la identidad de la declaración. Determina:
- qué documento XML se lee para el estado actual (config_dir / document)
- qué cadena de scope se incrusta en los scripts (containment / task_scope)
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from wasplane.core.errors import ScopeError


class ScopeKind(str, Enum):
    CELL = "cell"
    CLUSTER = "cluster"
    NODE = "node"
    SERVER = "server"


# Partes de la identidad que exige cada tipo de scope
_REQUIRED = {
    ScopeKind.CELL: ("cell",),
    ScopeKind.CLUSTER: ("cell", "cluster"),
    ScopeKind.NODE: ("cell", "node"),
    ScopeKind.SERVER: ("cell", "node", "server"),
}


@dataclass(frozen=True)
class ScopePath:
    kind: ScopeKind
    cell: str
    cluster: Optional[str] = None
    node: Optional[str] = None
    server: Optional[str] = None

    @classmethod
    def from_identity(
        cls,
        scope: str,
        cell: Optional[str],
        cluster: Optional[str] = None,
        node: Optional[str] = None,
        server: Optional[str] = None,
    ) -> "ScopePath":
        """
        Construye el ScopePath desde la identidad declarada.

        Un scope desconocido o sin sus partes obligatorias es un error de
        configuración fatal, nunca un valor por defecto silencioso.
        """
        try:
            kind = ScopeKind(str(scope).lower())
        except ValueError:
            raise ScopeError(
                f"Scope desconocido: {scope!r}. Debe ser cell, cluster, node o server"
            ) from None

        parts = {"cell": cell, "cluster": cluster, "node": node, "server": server}
        missing = [name for name in _REQUIRED[kind] if not parts[name]]
        if missing:
            raise ScopeError(f"Scope {kind.value} requiere: {', '.join(missing)}")

        # Solo se conservan las partes que aplican al tipo de scope
        kept = {name: parts[name] for name in _REQUIRED[kind]}
        return cls(kind=kind, **kept)

    def containment(self) -> str:
        """Containment path de wsadmin (AdminConfig.getid), ej: /Cell:C/Node:N/Server:S/"""
        path = f"/Cell:{self.cell}"
        if self.kind == ScopeKind.CLUSTER:
            path += f"/ServerCluster:{self.cluster}"
        elif self.kind in (ScopeKind.NODE, ScopeKind.SERVER):
            path += f"/Node:{self.node}"
            if self.kind == ScopeKind.SERVER:
                path += f"/Server:{self.server}"
        return path + "/"

    def config_dir(self) -> str:
        """Ruta relativa dentro de config/, ej: cells/C/nodes/N/servers/S"""
        path = f"cells/{self.cell}"
        if self.kind == ScopeKind.CLUSTER:
            path += f"/clusters/{self.cluster}"
        elif self.kind in (ScopeKind.NODE, ScopeKind.SERVER):
            path += f"/nodes/{self.node}"
            if self.kind == ScopeKind.SERVER:
                path += f"/servers/{self.server}"
        return path

    def config_id_prefix(self, filename: str = "resources.xml") -> str:
        """
        Parte de documento de un config id de este scope, ej: (cells/C|resources.xml#

        AdminConfig.list(tipo, scope) también devuelve objetos de scopes inferiores;
        filtrar por este prefijo deja solo los definidos en el documento del scope.
        """
        return f"({self.config_dir()}|{filename}#"

    def task_scope(self) -> str:
        """Scope en formato AdminTask (-scope), ej: Cell=C,Cluster=X"""
        parts = [f"Cell={self.cell}"]
        if self.kind == ScopeKind.CLUSTER:
            parts.append(f"Cluster={self.cluster}")
        elif self.kind in (ScopeKind.NODE, ScopeKind.SERVER):
            parts.append(f"Node={self.node}")
            if self.kind == ScopeKind.SERVER:
                parts.append(f"Server={self.server}")
        return ",".join(parts)

    def document(self, profile_dir: Path, filename: str = "resources.xml") -> Path:
        """Documento XML de este scope dentro de un perfil."""
        return Path(profile_dir) / "config" / self.config_dir() / filename

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.config_dir()}"
