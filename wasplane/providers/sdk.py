"""
Provider sdk: SDK/JDK habilitado para un perfil (managesdk.sh).

El estado se lee de los listados de managesdk (no hay documento XML) y los cambios
se aplican con un script sh que invoca managesdk una vez por propiedad.
"""

import re
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import Field, field_validator

from wasplane.core.errors import DocumentError
from wasplane.core.infra.base import BaseProvider
from wasplane.core.infra.contracts import Executor
from wasplane.core.models import ResourceDeclaration
from wasplane.core.runtime.state import ChangeSet, CurrentState
from wasplane.core.script import CommandOp, Dialect, Script


ALL = "all"

_SDK_LINE = re.compile(r"\b(Profile|Node|Server)\s+(\S+)\s+SDK name:\s*(\S+)")
_KEY_LINE = re.compile(r"\b([A-Z][A-Z_]+)\s*=\s*(\S+)")


def parse_listing(output: str) -> Dict[str, Dict[str, str]]:
    """
    Parsea la salida de managesdk.

    Returns:
        {"profile": {...}, "node": {...}, "server": {...}, "keys": {...}}
        con nombre → SDK para cada nivel y CLAVE → valor para las líneas "CLAVE = valor".
    """
    parsed: Dict[str, Dict[str, str]] = {"profile": {}, "node": {}, "server": {}, "keys": {}}
    for line in (output or "").splitlines():
        match = _SDK_LINE.search(line)
        if match:
            parsed[match.group(1).lower()][match.group(2)] = match.group(3)
            continue
        match = _KEY_LINE.search(line)
        if match:
            parsed["keys"][match.group(1)] = match.group(2)
    return parsed


class SdkDeclaration(ResourceDeclaration):
    kind: ClassVar[str] = "sdk"
    ensurable: ClassVar[bool] = False
    identity_fields: ClassVar[Tuple[str, ...]] = ("profile", "sdkname")
    properties: ClassVar[Tuple[str, ...]] = ("sdkname", "command_default", "new_profile_default")
    identifier_fields: ClassVar[Tuple[str, ...]] = ("user", "profile", "server")
    title_patterns: ClassVar = (
        (r"(.*?)_(.*)", ("profile", "sdkname")),
        (r"(.*)", ("sdkname",)),
    )

    sdkname: str = Field(..., description="SDK a habilitar, ej: 1.7.1_64")
    instance_base: str = Field("/opt/IBM/WebSphere/AppServer", description="Instalación de WebSphere")
    server: Optional[str] = Field(None, description="Servidor concreto o 'all' (-enableServers)")
    node_name: Optional[str] = None
    command_default: Optional[str] = None
    new_profile_default: Optional[str] = None
    username: Optional[str] = Field(None, description="Usuario para managesdk.sh")
    password: Optional[str] = None

    @field_validator("instance_base")
    @classmethod
    def _absolute_instance_base(cls, value: str) -> str:
        if not Path(value).is_absolute():
            raise ValueError(f"Invalid instance_base {value}")
        return value


class SdkProvider(BaseProvider):
    kind = "sdk"
    declaration_class = SdkDeclaration

    @property
    def managesdk(self) -> str:
        return str(Path(self.resource.instance_base) / "bin" / "managesdk.sh")

    def _auth(self) -> List[str]:
        r = self.resource
        args = []
        if r.username:
            args += ["-user", r.username]
        if r.password:
            args += ["-password", r.password]
        return args

    def secrets(self) -> Tuple[str, ...]:
        return tuple(s for s in (self.resource.wsadmin_pass, self.resource.password) if s)

    def _query(self, executor: Executor, *args: str) -> Dict[str, Dict[str, str]]:
        result = executor.query([self.managesdk, *args, *self._auth()], self.context())
        if not result.ok:
            raise DocumentError(f"managesdk {args[0]} falló: {result.hint}\n{result.output}", path=self.managesdk)
        return parse_listing(result.output)

    def read_state(self, executor: Executor) -> Optional[CurrentState]:
        r = self.resource
        if r.profile == ALL or not r.profile:
            listing = self._query(executor, "-listEnabledProfileAll")
        else:
            listing = self._query(executor, "-listEnabledProfile", "-profileName", r.profile)

        sdkname = self._enabled_sdk(listing)
        if sdkname is None:
            self.debug("managesdk no lista el perfil")
            return None

        values: Dict[str, Any] = {"sdkname": sdkname}
        if r.command_default is not None:
            values["command_default"] = self._query(executor, "-getCommandDefault")["keys"].get("COMMAND_DEFAULT_SDK")
        if r.new_profile_default is not None:
            keys = self._query(executor, "-getNewProfileDefault")["keys"]
            values["new_profile_default"] = next(iter(keys.values()), None)
        return CurrentState(values)

    def _enabled_sdk(self, listing: Dict[str, Dict[str, str]]) -> Optional[str]:
        """SDK del perfil (o del servidor declarado); 'mixed' si 'all' no es uniforme."""
        r = self.resource
        if r.server and r.server != ALL:
            return listing["server"].get(r.server)
        if r.profile and r.profile != ALL:
            return (
                listing["keys"].get("PROFILE_COMMAND_SDK")
                or listing["profile"].get(r.profile)
                or next(iter(listing["node"].values()), None)
            )
        found = set(listing["profile"].values()) | set(listing["server"].values())
        if not found:
            return None
        return found.pop() if len(found) == 1 else "mixed"

    def update_script(self, changes: ChangeSet) -> Optional[Script]:
        r = self.resource
        values = changes.values
        ops = []
        if "sdkname" in values:
            if r.profile == ALL or not r.profile:
                argv = [self.managesdk, "-enableProfileAll", "-sdkname", values["sdkname"]]
            else:
                argv = [self.managesdk, "-enableProfile", "-profileName", r.profile, "-sdkname", values["sdkname"]]
            if r.server == ALL:
                argv.append("-enableServers")
            ops.append(CommandOp(tuple(argv + self._auth())))
        if "command_default" in values:
            ops.append(CommandOp((
                self.managesdk, "-setCommandDefault", "-sdkname", values["command_default"], *self._auth(),
            )))
        if "new_profile_default" in values:
            ops.append(CommandOp((
                self.managesdk, "-setNewProfileDefault", "-sdkname", values["new_profile_default"], *self._auth(),
            )))
        if not ops:
            return None
        return Script.update(ops, dialect=Dialect.SHELL)
