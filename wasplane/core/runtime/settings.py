"""
Configuración de wasplane.

Precedencia: variables de entorno (WASPLANE_*, tras cargar .env) > ~/.wasplane/config.yaml > defaults.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from wasplane.core.errors import ConfigError
from wasplane.core.runtime.resolver import config_file, project_base


ENV_PREFIX = "WASPLANE_"


class Settings(BaseModel):
    """Defaults globales aplicados a todas las declaraciones."""
    profile_base: str = Field("/opt/IBM/WebSphere/AppServer/profiles", description="Directorio de perfiles")
    instance_base: str = Field("/opt/IBM/WebSphere/AppServer", description="Instalación de WebSphere")
    user: str = Field("root", description="Usuario del sistema que ejecuta wsadmin")
    timeout: Optional[float] = Field(None, description="Timeout en segundos por invocación (None = sin límite)")
    sanitize: bool = Field(True, description="Excluir blobs embebidos antes de parsear resources.xml")
    ignored_names: List[str] = Field(
        default_factory=lambda: ["zip", "ear", "war", "jar", "xml", "XML"],
        description="Sufijos de resourceProperties a excluir",
    )
    wsadmin_user: Optional[str] = None
    wsadmin_pass: Optional[str] = None

    @field_validator("profile_base", "instance_base")
    @classmethod
    def _absolute(cls, value: str) -> str:
        if not Path(value).is_absolute():
            raise ValueError(f"debe ser una ruta absoluta: {value}")
        return value

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            return None
        return value

    @field_validator("ignored_names", mode="before")
    @classmethod
    def _split_names(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [v for v in value.replace(",", " ").split() if v]
        return value

    def declaration_defaults(self) -> Dict[str, Any]:
        """Valores que heredan las declaraciones si no los fijan."""
        defaults: Dict[str, Any] = {
            "profile_base": self.profile_base,
            "instance_base": self.instance_base,
            "user": self.user,
            "sanitize": self.sanitize,
            "ignored_names": list(self.ignored_names),
        }
        if self.wsadmin_user:
            defaults["wsadmin_user"] = self.wsadmin_user
        if self.wsadmin_pass:
            defaults["wsadmin_pass"] = self.wsadmin_pass
        return defaults


def _load_dotenv() -> None:
    """Carga .env del proyecto si existe (no pisa variables ya definidas)."""
    base = project_base()
    if base is not None and (base / ".env").exists():
        load_dotenv(base / ".env")


def _from_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for name in Settings.model_fields:
        raw = environ.get(ENV_PREFIX + name.upper())
        if raw is not None and raw.strip() != "":
            values[name] = raw.strip()
    return values


def load_settings(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Construye Settings desde YAML + entorno.

    Args:
        path: YAML de configuración (default: ~/.wasplane/config.yaml)
        environ: Entorno a usar (default: os.environ tras cargar .env)

    Returns:
        Settings validado
    """
    if environ is None:
        _load_dotenv()
        environ = os.environ

    data: Dict[str, Any] = {}
    yaml_path = path or config_file()
    if yaml_path.exists():
        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Error al cargar {yaml_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{yaml_path} debe contener un mapa de claves")

    data.update(_from_env(environ))
    try:
        return Settings(**data)
    except PydanticValidationError as e:
        raise ConfigError(f"Configuración inválida: {e}") from e
