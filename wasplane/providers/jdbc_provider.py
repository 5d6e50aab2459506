"""
Provider jdbc_provider: proveedores JDBC en un scope.

Solo existencia: se crea con AdminTask.createJDBCProvider y se elimina con
AdminConfig.remove; sus atributos no se gestionan tras la creación.
"""

from typing import ClassVar, Literal, Optional, Tuple

from wasplane.core.infra.base import BaseProvider
from wasplane.core.infra.contracts import Executor
from wasplane.core.models import ResourceDeclaration
from wasplane.core.runtime.state import CurrentState
from wasplane.core.scope import ScopePath
from wasplane.core.script import ConfigRef, CreateOp, DeleteOp, Script
from wasplane.providers.xml_state import open_document


class JDBCProviderDeclaration(ResourceDeclaration):
    kind: ClassVar[str] = "jdbc_provider"
    identity_fields: ClassVar[Tuple[str, ...]] = ("name", "scope")
    identifier_fields: ClassVar[Tuple[str, ...]] = (
        "user", "dmgr_profile", "profile", "cell", "cluster", "node_name", "server",
    )

    name: str
    scope: Literal["cell", "cluster", "node", "server"]
    cell: str
    cluster: Optional[str] = None
    node_name: Optional[str] = None
    server: Optional[str] = None
    dbtype: Optional[str] = None
    providertype: Optional[str] = None
    implementation: Optional[str] = None
    description: str = "Created by wasplane"
    classpath: Optional[str] = None
    nativepath: Optional[str] = None


class JDBCProviderProvider(BaseProvider):
    kind = "jdbc_provider"
    declaration_class = JDBCProviderDeclaration
    # xmi:id observado en resources.xml del scope
    current_id: Optional[str] = None

    @property
    def scope(self) -> ScopePath:
        r = self.resource
        return ScopePath.from_identity(r.scope, r.cell, cluster=r.cluster, node=r.node_name, server=r.server)

    def read_state(self, executor: Executor) -> Optional[CurrentState]:
        r = self.resource
        doc = open_document(self.scope.document(r.profile_dir(r.dmgr_profile)))
        if doc is None:
            return None
        provider = doc.attributes("//*[local-name()='JDBCProvider'][@name=$name]", name=r.name)
        if provider is None:
            return None
        self.current_id = provider.get("xmi:id")
        return CurrentState({"config_id": self.current_id, "description": provider.get("description")})

    def create_script(self) -> Script:
        r = self.resource
        optional = [("description", r.description)]
        if r.classpath:
            optional.append(("classpath", r.classpath))
        if r.nativepath:
            optional.append(("nativePath", r.nativepath))
        op = CreateOp(
            task="createJDBCProvider",
            required=(
                ("scope", self.scope.task_scope()),
                ("databaseType", r.dbtype),
                ("providerType", r.providertype),
                ("implementationType", r.implementation),
                ("name", r.name),
            ),
            optional=tuple(optional),
        )
        return Script.create(op)

    def destroy_script(self) -> Script:
        ref = ConfigRef(
            object_type="JDBCProvider",
            parent=ConfigRef(containment=self.scope.containment()),
            named=self.resource.name,
            contains=self.scope.config_id_prefix(),
            id_suffix=self.current_id,
        )
        return Script.destroy(DeleteOp(ref=ref))
