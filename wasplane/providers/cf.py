"""
Provider cf: connection factories del proveedor de mensajería IBM MQ en un scope.

No se permite crear una factoría "dummy" (sin queue manager destino) ni cambiar el tipo
de una existente: hay que destruirla y crear otra del tipo deseado.
"""

from typing import Any, ClassVar, Dict, List, Literal, Optional, Tuple

from pydantic import Field, model_validator

from wasplane.core.infra.base import BaseProvider
from wasplane.core.infra.contracts import Executor
from wasplane.core.models import ResourceDeclaration
from wasplane.core.runtime.state import ChangeSet, ChangeSetBuilder, CurrentState
from wasplane.core.scope import ScopePath
from wasplane.core.script import ConfigRef, CreateOp, DeleteOp, ModifyOp, Script
from wasplane.providers.xml_state import open_document


CF_TYPES: Dict[str, str] = {
    "CF": "MQConnectionFactory",
    "QCF": "MQQueueConnectionFactory",
    "TCF": "MQTopicConnectionFactory",
}

# Atributo de AdminConfig (tal como aparece en resources.xml) → parámetro de createWMQConnectionFactory
CREATE_PARAMETERS: Dict[str, str] = {
    "host": "qmgrHostname",
    "port": "qmgrPortNumber",
    "channel": "qmgrSvrconnChannel",
    "transportType": "wmqTransportType",
    "CCSID": "ccsid",
    "clientID": "clientId",
    "tempModel": "modelQueue",
    "connameList": "connectionNameList",
    "sslConfiguration": "sslConfiguration",
    "sslType": "sslType",
    "pollingInterval": "pollingInterval",
    "rescanInterval": "rescanInterval",
    "sslResetCount": "sslResetCount",
    "failIfQuiesce": "failIfQuiescing",
}

# atributo declarado → atributo de la factoría que contiene el sub-objeto
POOLS: Dict[str, str] = {
    "conn_pool_data": "connectionPool",
    "sess_pool_data": "sessionPool",
    "mapping_data": "mapping",
}


class CFDeclaration(ResourceDeclaration):
    kind: ClassVar[str] = "cf"
    identity_fields: ClassVar[Tuple[str, ...]] = ("cf_name", "jms_provider", "scope")
    properties: ClassVar[Tuple[str, ...]] = (
        "jndi_name", "description", "qmgr_data", "conn_pool_data", "sess_pool_data", "mapping_data",
    )
    identifier_fields: ClassVar[Tuple[str, ...]] = (
        "user", "dmgr_profile", "profile", "cf_name", "cell", "cluster", "node_name", "server",
    )
    title_patterns: ClassVar = ((r"(.+)", ("cf_name",)),)

    cf_name: str
    cf_type: Optional[Literal["CF", "QCF", "TCF"]] = Field(None, description="Solo en creación")
    jms_provider: str = "builtin_mqprovider"
    scope: Literal["cell", "cluster", "node", "server"]
    cell: Optional[str] = None
    cluster: Optional[str] = None
    node_name: Optional[str] = None
    server: Optional[str] = None

    jndi_name: Optional[str] = None
    description: Optional[str] = None
    qmgr_data: Optional[Dict[str, Any]] = None
    conn_pool_data: Optional[Dict[str, Any]] = None
    sess_pool_data: Optional[Dict[str, Any]] = None
    mapping_data: Optional[Dict[str, Any]] = None

    sanitize: bool = True
    ignored_names: List[str] = Field(default_factory=lambda: ["zip", "ear", "war", "jar", "xml", "XML"])

    @model_validator(mode="before")
    @classmethod
    def _upcase_type(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("cf_type"), str):
            data = {**data, "cf_type": data["cf_type"].upper()}
        return data


class CFProvider(BaseProvider):
    kind = "cf"
    declaration_class = CFDeclaration
    # Tipo (QCF, TCF, CF) y xmi:id observados en resources.xml
    current_type: Optional[str] = None
    current_id: Optional[str] = None

    @property
    def scope(self) -> ScopePath:
        r = self.resource
        return ScopePath.from_identity(r.scope, r.cell, cluster=r.cluster, node=r.node_name, server=r.server)

    @property
    def factory_query(self) -> str:
        return "//*[local-name()='JMSProvider'][@xmi:id=$provider]/factories[@name=$name]"

    def read_state(self, executor: Executor) -> Optional[CurrentState]:
        r = self.resource
        path = self.scope.document(r.profile_dir(r.dmgr_profile))
        doc = open_document(path, r.ignored_names, r.sanitize)
        if doc is None:
            return None
        self.debug(f"leyendo {r.jms_provider}/{r.cf_name} de {path}")
        variables = {"provider": r.jms_provider, "name": r.cf_name}
        factory = doc.attributes(self.factory_query, **variables)
        if factory is None:
            return None

        cf_type = None
        for short, object_type in CF_TYPES.items():
            if factory.get("xmi:type", "").endswith(":" + object_type):
                cf_type = short
        self.current_type = cf_type
        self.current_id = factory.get("xmi:id")
        state: Dict[str, Any] = {
            "config_id": self.current_id,
            "cf_type": cf_type,
            "jndi_name": factory.get("jndiName"),
            "description": factory.get("description"),
            "qmgr_data": factory,
        }
        for attribute, child in POOLS.items():
            state[attribute] = doc.attributes(f"{self.factory_query}/{child}", **variables) or {}
        return CurrentState(state)

    def diff(self, builder: ChangeSetBuilder) -> None:
        current_type = builder.get("cf_type")
        if self.resource.cf_type and current_type and current_type != self.resource.cf_type:
            # No existe "cambiar tipo": destruir y recrear
            self.debug(f"cf_type {current_type} → {self.resource.cf_type} no se gestiona tras la creación")
        super().diff(builder)

    def factory_ref(self) -> ConfigRef:
        """
        Referencia a la factoría leída: el tipo observado manda sobre el declarado.

        Se filtra por el documento del scope y por el xmi:id leído para no tocar
        una factoría homónima de un scope inferior.
        """
        cf_type = self.current_type or self.resource.cf_type or "CF"
        return ConfigRef(
            object_type=CF_TYPES[cf_type],
            parent=ConfigRef(containment=self.scope.containment()),
            named=self.resource.cf_name,
            contains=self.scope.config_id_prefix(),
            id_suffix=self.current_id,
        )

    def create_script(self) -> Script:
        r = self.resource
        qmgr = dict(r.qmgr_data or {})
        optional = []
        if r.description:
            optional.append(("description", r.description))
        for attribute, parameter in CREATE_PARAMETERS.items():
            if qmgr.get(attribute) not in (None, ""):
                optional.append((parameter, qmgr[attribute]))
        op = CreateOp(
            task="createWMQConnectionFactory",
            required=(
                ("name", r.cf_name),
                ("jndiName", r.jndi_name),
                ("type", r.cf_type),
                ("qmgrName", qmgr.get("queueManager")),
            ),
            optional=tuple(optional),
            parent=ConfigRef(containment=self.scope.containment()),
        )
        return Script.create(op)

    def update_script(self, changes: ChangeSet) -> Optional[Script]:
        values = changes.values
        factory = self.factory_ref()

        attributes = []
        if "jndi_name" in values:
            attributes.append(("jndiName", values["jndi_name"]))
        if "description" in values:
            attributes.append(("description", values["description"]))
        for key, value in (values.get("qmgr_data") or {}).items():
            attributes.append((key, value))

        ops = []
        if attributes:
            ops.append(ModifyOp(factory, tuple(attributes)))
        for attribute, child in POOLS.items():
            if values.get(attribute):
                ops.append(ModifyOp(ConfigRef(attribute=child, parent=factory), tuple(values[attribute].items())))
        if not ops:
            return None
        return Script.update(ops)

    def destroy_script(self) -> Script:
        return Script.destroy(DeleteOp(ref=self.factory_ref()))
