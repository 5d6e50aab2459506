"""
Modelos de declaración (estado deseado) agnósticos de provider.

Cada tipo de recurso define su esquema como tabla declarativa: campos de identidad,
validación por campo, defaults y patrones de título. Se resuelve una sola vez al
cargar el manifiesto en un modelo Pydantic inmutable.
"""

import re
from pathlib import Path
from typing import Any, ClassVar, Dict, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


IDENTIFIER = re.compile(r"^[-0-9A-Za-z._]+$")

Ensure = Literal["present", "absent"]


def check_identifier(name: str, value: Any) -> None:
    """Valida el charset de identificadores de WebSphere ([-0-9A-Za-z._]+)."""
    if value is None:
        return
    if not IDENTIFIER.match(str(value)):
        raise ValueError(f"Invalid {name}: {value!r}")


def check_range(name: str, value: Any, low: int, high: int) -> Optional[int]:
    if value is None:
        return None
    text = str(value)
    if not text.isdigit() or not low <= int(text) <= high:
        raise ValueError(f"Invalid {name}: {value}. Must be an integer between {low}-{high}.")
    return int(text)


class ResourceDeclaration(BaseModel):
    """
    Declaración base: identidad + atributos deseados.

    Las subclases fijan:
    - kind: nombre del tipo en el manifiesto
    - identity_fields: campos que identifican el objeto remoto
    - properties: atributos gestionados (se comparan con el estado actual)
    - identifier_fields: campos validados con el charset de identificadores
    - title_patterns: (regex, campos) para derivar la identidad desde el título
    """
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    kind: ClassVar[str] = "resource"
    identity_fields: ClassVar[Tuple[str, ...]] = ()
    properties: ClassVar[Tuple[str, ...]] = ()
    identifier_fields: ClassVar[Tuple[str, ...]] = ("user", "dmgr_profile", "profile")
    title_patterns: ClassVar[Sequence[Tuple[str, Tuple[str, ...]]]] = ()
    ensurable: ClassVar[bool] = True

    title: str = Field(..., description="Título del recurso en el manifiesto")
    ensure: Ensure = "present"
    profile_base: str = Field("/opt/IBM/WebSphere/AppServer/profiles", description="Directorio de perfiles")
    dmgr_profile: Optional[str] = None
    profile: Optional[str] = Field(None, description="Perfil para ejecutar wsadmin (default: dmgr_profile)")
    user: str = Field("root", description="Usuario del sistema que ejecuta wsadmin")
    wsadmin_user: Optional[str] = None
    wsadmin_pass: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _apply_title(cls, data: Any) -> Any:
        """Deriva campos de identidad desde el título (sin pisar valores explícitos)."""
        if not isinstance(data, dict) or not data.get("title"):
            return data
        data = dict(data)
        title = str(data["title"])
        for pattern, fields in cls.title_patterns:
            match = re.fullmatch(pattern, title)
            if match:
                for name, value in zip(fields, match.groups()):
                    if data.get(name) is None and value != "":
                        data[name] = value
                break
        if "name" in cls.model_fields and data.get("name") is None:
            data["name"] = title
        if data.get("dmgr_profile") is None and data.get("profile") is not None:
            data["dmgr_profile"] = data["profile"]
        return data

    @model_validator(mode="after")
    def _check_identifiers(self) -> "ResourceDeclaration":
        for name in self.identifier_fields:
            check_identifier(name, getattr(self, name, None))
        if not self.ensurable and self.ensure != "present":
            raise ValueError(f"{self.kind} no admite ensure={self.ensure}")
        return self

    @field_validator("profile_base")
    @classmethod
    def _absolute_profile_base(cls, value: str) -> str:
        if not Path(value).is_absolute():
            raise ValueError(f"Invalid profile_base {value}")
        return value

    def identity(self) -> Tuple[Any, ...]:
        return tuple(getattr(self, name) for name in self.identity_fields)

    def desired(self) -> Dict[str, Any]:
        """Atributos gestionados con valor declarado."""
        values = {}
        for name in self.properties:
            value = getattr(self, name)
            if value is not None:
                values[name] = value
        return values

    @property
    def run_profile(self) -> Optional[str]:
        """Perfil desde el que se ejecuta wsadmin."""
        return self.profile or self.dmgr_profile

    def profile_dir(self, profile: Optional[str] = None) -> Path:
        name = profile or self.dmgr_profile or self.profile
        return Path(self.profile_base) / (name or "")

    @property
    def label(self) -> str:
        return f"{self.kind}[{self.title}]"
