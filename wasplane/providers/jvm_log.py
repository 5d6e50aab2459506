"""
Provider jvm_log: redirección y rotación de SystemOut / SystemErr de un servidor.

No es "ensurable": el servidor debe existir; si su server.xml aún no está, el pase
termina como DependencyNotReady y uno posterior converge.
"""

from typing import Any, ClassVar, Dict, Literal, Optional, Tuple

from pydantic import ValidationInfo, field_validator, model_validator

from wasplane.core.infra.base import BaseProvider
from wasplane.core.infra.contracts import Executor
from wasplane.core.models import ResourceDeclaration, check_range
from wasplane.core.runtime.state import ChangeSet, CurrentState
from wasplane.core.scope import ScopePath
from wasplane.core.script import ConfigRef, ModifyOp, Script
from wasplane.providers.xml_state import open_document


NODE_AGENT = "nodeagent"

STREAMS: Dict[str, str] = {
    "out": "outputStreamRedirect",
    "err": "errorStreamRedirect",
}

# sufijo del atributo declarado → atributo de StreamRedirect
STREAM_ATTRIBUTES: Dict[str, str] = {
    "filename": "fileName",
    "rollover_type": "rolloverType",
    "rollover_size": "rolloverSize",
    "maxnum": "maxNumberOfBackupFiles",
    "start_hour": "baseHour",
    "rollover_period": "rolloverPeriod",
}

RolloverType = Literal["SIZE", "TIME", "BOTH"]


class JvmLogDeclaration(ResourceDeclaration):
    kind: ClassVar[str] = "jvm_log"
    ensurable: ClassVar[bool] = False
    identity_fields: ClassVar[Tuple[str, ...]] = ("cell", "node_name", "scope", "server")
    properties: ClassVar[Tuple[str, ...]] = tuple(
        f"{stream}_{suffix}" for stream in STREAMS for suffix in STREAM_ATTRIBUTES
    )
    identifier_fields: ClassVar[Tuple[str, ...]] = (
        "user", "dmgr_profile", "profile", "cell", "node_name", "server",
    )
    title_patterns: ClassVar = (
        (r"(.*):(.*):(.*):(.*)", ("cell", "node_name", "scope", "server")),
        (r"(.*):(.*):(.*)", ("cell", "node_name", "scope")),
        (r"(.*):(.*)", ("cell", "node_name")),
        (r"(.*)", ("cell",)),
    )

    cell: str
    node_name: str
    scope: Literal["node", "server"]
    server: Optional[str] = None

    out_filename: Optional[str] = None
    err_filename: Optional[str] = None
    out_rollover_type: Optional[RolloverType] = None
    err_rollover_type: Optional[RolloverType] = None
    out_rollover_size: Optional[int] = None
    err_rollover_size: Optional[int] = None
    out_maxnum: Optional[int] = None
    err_maxnum: Optional[int] = None
    out_start_hour: Optional[int] = None
    err_start_hour: Optional[int] = None
    out_rollover_period: Optional[int] = None
    err_rollover_period: Optional[int] = None

    @field_validator("scope", mode="before")
    @classmethod
    def _lower_scope(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @field_validator("out_rollover_type", "err_rollover_type", mode="before")
    @classmethod
    def _upper_rollover(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @field_validator("out_rollover_size", "err_rollover_size", mode="before")
    @classmethod
    def _integer_size(cls, value: Any, info: ValidationInfo) -> Any:
        if value is not None and not str(value).isdigit():
            raise ValueError(f"Invalid {info.field_name}: {value}. Must be integer.")
        return value

    @field_validator("out_maxnum", "err_maxnum", mode="before")
    @classmethod
    def _maxnum(cls, value: Any, info: ValidationInfo) -> Any:
        return check_range(info.field_name, value, 1, 200)

    @field_validator(
        "out_start_hour", "err_start_hour", "out_rollover_period", "err_rollover_period", mode="before"
    )
    @classmethod
    def _hours(cls, value: Any, info: ValidationInfo) -> Any:
        return check_range(info.field_name, value, 1, 24)

    @model_validator(mode="after")
    def _require_target(self) -> "JvmLogDeclaration":
        if self.scope == "server" and not self.server:
            raise ValueError("server is required")
        if not self.profile:
            raise ValueError("profile is required")
        return self

    @property
    def target_server(self) -> str:
        """Servidor cuyo server.xml se gestiona (scope node → nodeagent)."""
        if self.scope == "node":
            return NODE_AGENT
        return self.server


class JvmLogProvider(BaseProvider):
    kind = "jvm_log"
    declaration_class = JvmLogDeclaration

    @property
    def server_scope(self) -> ScopePath:
        r = self.resource
        return ScopePath.from_identity("server", r.cell, node=r.node_name, server=r.target_server)

    def read_state(self, executor: Executor) -> Optional[CurrentState]:
        r = self.resource
        doc = open_document(self.server_scope.document(r.profile_dir(r.dmgr_profile), "server.xml"))
        if doc is None:
            return None
        values: Dict[str, Any] = {}
        for stream, element in STREAMS.items():
            redirect = doc.attributes(f"/*/{element}") or {}
            for suffix, attribute in STREAM_ATTRIBUTES.items():
                values[f"{stream}_{suffix}"] = redirect.get(attribute)
        return CurrentState(values)

    def update_script(self, changes: ChangeSet) -> Optional[Script]:
        values = changes.values
        server = ConfigRef(containment=self.server_scope.containment())
        ops = []
        for stream, element in STREAMS.items():
            pairs = tuple(
                (attribute, values[f"{stream}_{suffix}"])
                for suffix, attribute in STREAM_ATTRIBUTES.items()
                if f"{stream}_{suffix}" in values
            )
            if pairs:
                ops.append(ModifyOp(ConfigRef(attribute=element, parent=server), pairs))
        if not ops:
            return None
        return Script.update(ops)
