"""
Provider profile: perfiles de WebSphere (DMGR, servidor de aplicaciones, nodo custom).

Existencia según <instance_base>/properties/profileRegistry.xml; alta y baja con
manageprofiles.sh, cuyo resultado se reconoce por INSTCONFSUCCESS / INSTCONFFAILED.
"""

import re
from pathlib import Path
from typing import ClassVar, Dict, List, Literal, Optional, Tuple

from pydantic import Field, field_validator

from wasplane.core.classifier import Signature
from wasplane.core.infra.base import BaseProvider
from wasplane.core.infra.contracts import Executor, FailureReason, Outcome
from wasplane.core.models import ResourceDeclaration
from wasplane.core.runtime.state import CurrentState
from wasplane.core.script import CommandOp, Dialect, Script
from wasplane.providers.xml_state import open_document


TEMPLATES: Dict[str, str] = {
    "dmgr": "management",
    "app": "default",
    "custom": "managed",
}

SUCCESS = re.compile(r"\bINSTCONFSUCCESS\b")


class ProfileDeclaration(ResourceDeclaration):
    kind: ClassVar[str] = "profile"
    identity_fields: ClassVar[Tuple[str, ...]] = ("profile_name",)
    identifier_fields: ClassVar[Tuple[str, ...]] = ("user", "profile_name", "cell", "node_name")
    title_patterns: ClassVar = ((r"(.+)", ("profile_name",)),)

    profile_name: str
    profile_type: Literal["dmgr", "app", "custom"] = "dmgr"
    instance_base: str = Field("/opt/IBM/WebSphere/AppServer", description="Instalación de WebSphere")
    cell: Optional[str] = None
    node_name: Optional[str] = None
    hostname: Optional[str] = None
    dmgr_host: Optional[str] = Field(None, description="DMGR al que federar (perfil custom)")
    dmgr_port: Optional[int] = None
    options: List[str] = Field(default_factory=list, description="Argumentos extra de manageprofiles")

    @field_validator("instance_base")
    @classmethod
    def _absolute_instance_base(cls, value: str) -> str:
        if not Path(value).is_absolute():
            raise ValueError(f"Invalid instance_base {value}")
        return value


class ProfileProvider(BaseProvider):
    kind = "profile"
    declaration_class = ProfileDeclaration
    signatures = (
        Signature.of(
            r"\bINSTCONFFAILED\b",
            Outcome.FATAL,
            FailureReason.INTERPRETER_ERROR,
            "manageprofiles no pudo completar la operación; revisa los logs en <instance_base>/logs/manageprofiles.",
        ),
    )

    @property
    def manageprofiles(self) -> str:
        return str(Path(self.resource.instance_base) / "bin" / "manageprofiles.sh")

    def registry(self) -> Path:
        return Path(self.resource.instance_base) / "properties" / "profileRegistry.xml"

    def read_state(self, executor: Executor) -> Optional[CurrentState]:
        doc = open_document(self.registry())
        if doc is None:
            return None
        profile = doc.attributes("//profile[@name=$name]", name=self.resource.profile_name)
        if profile is None:
            return None
        return CurrentState({"path": profile.get("path"), "template": profile.get("template")})

    def create_command(self) -> List[str]:
        r = self.resource
        argv = [
            self.manageprofiles,
            "-create",
            "-profileName", r.profile_name,
            "-profilePath", str(Path(r.profile_base) / r.profile_name),
            "-templatePath", str(Path(r.instance_base) / "profileTemplates" / TEMPLATES[r.profile_type]),
        ]
        for flag, value in (("-cellName", r.cell), ("-nodeName", r.node_name), ("-hostName", r.hostname)):
            if value:
                argv += [flag, value]
        if r.profile_type == "custom" and r.dmgr_host:
            argv += ["-dmgrHost", r.dmgr_host]
            if r.dmgr_port:
                argv += ["-dmgrPort", str(r.dmgr_port)]
        if r.wsadmin_user and r.wsadmin_pass:
            argv += ["-enableAdminSecurity", "true", "-adminUserName", r.wsadmin_user, "-adminPassword", r.wsadmin_pass]
        return argv + list(r.options)

    def create_script(self) -> Script:
        return Script.create(
            CommandOp(tuple(self.create_command())),
            dialect=Dialect.SHELL,
            expect=SUCCESS,
            expect_hint=f"manageprofiles no confirmó la creación de {self.resource.profile_name}",
        )

    def destroy_script(self) -> Script:
        argv = (self.manageprofiles, "-delete", "-profileName", self.resource.profile_name)
        return Script(
            (CommandOp(argv),),
            Dialect.SHELL,
            expect=SUCCESS,
            expect_hint=f"manageprofiles no confirmó la eliminación de {self.resource.profile_name}",
        )
