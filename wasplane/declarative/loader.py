"""
Loader de manifiestos declarativos.

Un manifiesto YAML tiene la forma:

    defaults:            # se fusionan en cada recurso (sin pisar lo declarado)
      dmgr_profile: PROFILE_DMGR_01
      cell: CELL_01
    resources:
      - type: cluster_member
        title: SRV_01
        cluster: CLUSTER_01
        node_name: NODE_01
        jvm_maximum_heap_size: 512
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console
from rich.markup import escape

from wasplane.core.errors import ConfigError, ValidationError
from wasplane.core.models import ResourceDeclaration
from wasplane.core.runtime.settings import Settings
from wasplane.providers import declare


class ManifestLoader:
    """Carga un manifiesto y lo valida contra los esquemas de cada tipo."""

    def __init__(self, settings: Optional[Settings] = None, console: Optional[Console] = None):
        self.settings = settings or Settings()
        self.console = console

    def read(self, path: Path) -> Dict[str, Any]:
        """Lee el YAML crudo del manifiesto."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Manifiesto no encontrado: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Error al cargar {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: el manifiesto debe ser un mapa con 'resources'")
        return data

    def parse(self, data: Dict[str, Any], source: str = "<manifest>") -> List[ResourceDeclaration]:
        defaults = dict(self.settings.declaration_defaults())
        manifest_defaults = data.get("defaults") or {}
        if not isinstance(manifest_defaults, dict):
            raise ConfigError(f"{source}: 'defaults' debe ser un mapa")
        defaults.update(manifest_defaults)

        resources = data.get("resources") or []
        if not isinstance(resources, list):
            raise ConfigError(f"{source}: 'resources' debe ser una lista")

        declarations: List[ResourceDeclaration] = []
        seen = set()
        for index, entry in enumerate(resources):
            if not isinstance(entry, dict):
                raise ValidationError(f"{source}: el recurso #{index + 1} no es un mapa")
            entry = dict(entry)
            kind = entry.pop("type", None)
            if not kind:
                raise ValidationError(f"{source}: el recurso #{index + 1} no declara 'type'")
            if not entry.get("title"):
                raise ValidationError(f"{source}: el recurso #{index + 1} ({kind}) no declara 'title'")

            declaration = declare(kind, entry, defaults)
            key = (declaration.kind, declaration.identity())
            if key in seen:
                raise ValidationError(
                    f"Declaración duplicada de {declaration.label}", resource=source,
                )
            seen.add(key)
            declarations.append(declaration)
            if self.console:
                self.console.print(f"[dim]  {escape(declaration.label)}[/dim]")
        return declarations

    def load(self, path: Path) -> List[ResourceDeclaration]:
        """Lee y valida el manifiesto completo (antes de cualquier llamada remota)."""
        return self.parse(self.read(path), source=str(path))
