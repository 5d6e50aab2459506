"""
Provider cluster_member: miembros de un cluster de WebSphere.

Existencia: cells/<cell>/clusters/<cluster>/cluster.xml (perfil DMGR).
Atributos: server.xml del miembro, buscado primero en su propio perfil y luego en el DMGR.
Cambios: setJVMProperties (forma cadena entre corchetes: los valores que empiezan por '-'
rompen la forma lista) y AdminConfig.modify sobre ProcessExecution, TransactionService
y los ThreadPool WebContainer / Message.Listener.Pool.
"""

import re
from pathlib import Path
from typing import ClassVar, Dict, List, Optional, Tuple

from pydantic import Field

from wasplane.core.errors import DocumentError
from wasplane.core.infra.base import BaseProvider
from wasplane.core.infra.contracts import Executor
from wasplane.core.models import ResourceDeclaration
from wasplane.core.runtime.state import ChangeSet, CurrentState
from wasplane.core.scope import ScopePath
from wasplane.core.script import (
    ArgStyle,
    ConfigRef,
    CreateOp,
    DeleteOp,
    ModifyOp,
    Script,
    TaskOp,
)
from wasplane.providers.xml_state import XmlDocument, open_document


APP_SERVER = 'components[@xmi:type="applicationserver:ApplicationServer"]'
TRANSACTION_SERVICE = 'services[@xmi:type="applicationserver:TransactionService"]'
EJB_CONTAINER = 'components[@xmi:type="applicationserver.ejbcontainer:EJBContainer"]'
MESSAGE_LISTENER = 'services[@xmi:type="applicationserver.ejbcontainer.messagelistener:MessageListenerService"]'
THREAD_POOL_MANAGER = 'services[@xmi:type="threadpoolmanager:ThreadPoolManager"]'

# atributo declarado → (pasos XPath en server.xml, atributo XML)
SERVER_XML_PATHS: Dict[str, Tuple[Tuple[str, ...], str]] = {
    "runas_user": (("processDefinitions", "execution"), "runAsUser"),
    "runas_group": (("processDefinitions", "execution"), "runAsGroup"),
    "umask": (("processDefinitions", "execution"), "umask"),
    "jvm_maximum_heap_size": (("processDefinitions", "jvmEntries"), "maximumHeapSize"),
    "jvm_initial_heap_size": (("processDefinitions", "jvmEntries"), "initialHeapSize"),
    "jvm_verbose_mode_class": (("processDefinitions", "jvmEntries"), "verboseModeClass"),
    "jvm_verbose_garbage_collection": (("processDefinitions", "jvmEntries"), "verboseModeGarbageCollection"),
    "jvm_verbose_mode_jni": (("processDefinitions", "jvmEntries"), "verboseModeJNI"),
    "jvm_debug_mode": (("processDefinitions", "jvmEntries"), "debugMode"),
    "jvm_debug_args": (("processDefinitions", "jvmEntries"), "debugArgs"),
    "jvm_run_hprof": (("processDefinitions", "jvmEntries"), "runHProf"),
    "jvm_hprof_arguments": (("processDefinitions", "jvmEntries"), "hprofArguments"),
    "jvm_executable_jar_filename": (("processDefinitions", "jvmEntries"), "executableJarFilename"),
    "jvm_generic_jvm_arguments": (("processDefinitions", "jvmEntries"), "genericJvmArguments"),
    "jvm_disable_jit": (("processDefinitions", "jvmEntries"), "disableJIT"),
    "total_transaction_timeout": ((APP_SERVER, TRANSACTION_SERVICE), "totalTranLifetimeTimeout"),
    # Sic: así lo escribe IBM
    "max_transaction_timeout": ((APP_SERVER, TRANSACTION_SERVICE), "propogatedOrBMTTranLifetimeTimeout"),
    "client_inactivity_timeout": ((APP_SERVER, TRANSACTION_SERVICE), "clientInactivityTimeout"),
    "threadpool_webcontainer_min_size": ((THREAD_POOL_MANAGER, 'threadPools[@name="WebContainer"]'), "minimumSize"),
    "threadpool_webcontainer_max_size": ((THREAD_POOL_MANAGER, 'threadPools[@name="WebContainer"]'), "maximumSize"),
    "mls_thread_inactivity_timeout": (
        (APP_SERVER, EJB_CONTAINER, MESSAGE_LISTENER, 'threadPool[@name="Message.Listener.Pool"]'),
        "inactivityTimeout",
    ),
    "mls_threadpool_min_size": (
        (APP_SERVER, EJB_CONTAINER, MESSAGE_LISTENER, 'threadPool[@name="Message.Listener.Pool"]'),
        "minimumSize",
    ),
    "mls_threadpool_max_size": (
        (APP_SERVER, EJB_CONTAINER, MESSAGE_LISTENER, 'threadPool[@name="Message.Listener.Pool"]'),
        "maximumSize",
    ),
}

# atributo declarado → parámetro de AdminTask.setJVMProperties
JVM_PROPERTIES: Dict[str, str] = {
    "jvm_maximum_heap_size": "maximumHeapSize",
    "jvm_initial_heap_size": "initialHeapSize",
    "jvm_verbose_mode_class": "verboseModeClass",
    "jvm_verbose_garbage_collection": "verboseModeGarbageCollection",
    "jvm_verbose_mode_jni": "verboseModeJNI",
    "jvm_debug_mode": "debugMode",
    "jvm_debug_args": "debugArgs",
    "jvm_run_hprof": "runHProf",
    "jvm_hprof_arguments": "hprofArguments",
    "jvm_executable_jar_filename": "executableJarFileName",
    "jvm_generic_jvm_arguments": "genericJvmArguments",
    "jvm_disable_jit": "disableJIT",
}

# (tipo de objeto, filtro por nombre) → {atributo declarado: atributo de AdminConfig}
CONFIG_OBJECTS: Dict[Tuple[str, Optional[str]], Dict[str, str]] = {
    ("ProcessExecution", None): {
        "runas_user": "runAsUser",
        "runas_group": "runAsGroup",
        "umask": "umask",
    },
    ("TransactionService", None): {
        "total_transaction_timeout": "totalTranLifetimeTimeout",
        "max_transaction_timeout": "propogatedOrBMTTranLifetimeTimeout",
        "client_inactivity_timeout": "clientInactivityTimeout",
    },
    ("ThreadPool", "WebContainer"): {
        "threadpool_webcontainer_min_size": "minimumSize",
        "threadpool_webcontainer_max_size": "maximumSize",
    },
    ("ThreadPool", "Message.Listener.Pool"): {
        "mls_thread_inactivity_timeout": "inactivityTimeout",
        "mls_threadpool_min_size": "minimumSize",
        "mls_threadpool_max_size": "maximumSize",
    },
}


class ClusterMemberDeclaration(ResourceDeclaration):
    kind: ClassVar[str] = "cluster_member"
    identity_fields: ClassVar[Tuple[str, ...]] = ("name", "cluster", "node_name", "cell")
    properties: ClassVar[Tuple[str, ...]] = tuple(SERVER_XML_PATHS)
    identifier_fields: ClassVar[Tuple[str, ...]] = (
        "user", "dmgr_profile", "profile", "name", "cluster", "node_name", "cell",
    )

    name: str = Field(..., description="Nombre del servidor miembro")
    cluster: str
    node_name: str
    cell: str
    weight: int = Field(2, ge=0, le=20, description="memberWeight de createClusterMember")
    gen_unique_ports: bool = True

    runas_user: Optional[str] = None
    runas_group: Optional[str] = None
    umask: Optional[str] = Field(None, pattern=r"^[0-7]{3,4}$")
    jvm_maximum_heap_size: Optional[int] = None
    jvm_initial_heap_size: Optional[int] = None
    jvm_verbose_mode_class: Optional[bool] = None
    jvm_verbose_garbage_collection: Optional[bool] = None
    jvm_verbose_mode_jni: Optional[bool] = None
    jvm_debug_mode: Optional[bool] = None
    jvm_debug_args: Optional[str] = None
    jvm_run_hprof: Optional[bool] = None
    jvm_hprof_arguments: Optional[str] = None
    jvm_executable_jar_filename: Optional[str] = None
    jvm_generic_jvm_arguments: Optional[str] = None
    jvm_disable_jit: Optional[bool] = None
    total_transaction_timeout: Optional[int] = None
    max_transaction_timeout: Optional[int] = None
    client_inactivity_timeout: Optional[int] = None
    threadpool_webcontainer_min_size: Optional[int] = None
    threadpool_webcontainer_max_size: Optional[int] = None
    mls_thread_inactivity_timeout: Optional[int] = None
    mls_threadpool_min_size: Optional[int] = None
    mls_threadpool_max_size: Optional[int] = None


class ClusterMemberProvider(BaseProvider):
    kind = "cluster_member"
    declaration_class = ClusterMemberDeclaration

    @property
    def server_scope(self) -> ScopePath:
        r = self.resource
        return ScopePath.from_identity("server", r.cell, node=r.node_name, server=r.name)

    def cluster_document(self) -> Path:
        r = self.resource
        scope = ScopePath.from_identity("cluster", r.cell, cluster=r.cluster)
        return scope.document(r.profile_dir(r.dmgr_profile), "cluster.xml")

    def server_documents(self) -> List[Path]:
        """server.xml candidatos: perfil propio del servidor primero, luego el DMGR."""
        r = self.resource
        candidates = []
        if r.profile:
            candidates.append(self.server_scope.document(r.profile_dir(r.profile), "server.xml"))
        candidates.append(self.server_scope.document(r.profile_dir(r.dmgr_profile), "server.xml"))
        return candidates

    def read_state(self, executor: Executor) -> Optional[CurrentState]:
        r = self.resource
        cluster = open_document(self.cluster_document())
        if cluster is None:
            self.debug(f"{self.cluster_document()} no existe")
            return None
        member = cluster.first("//members[@memberName=$name][@nodeName=$node]", name=r.name, node=r.node_name)
        if member is None:
            self.debug(f"{r.name} no existe en el nodo {r.node_name}")
            return None

        for path in self.server_documents():
            server = open_document(path)
            if server is not None:
                self.debug(f"usando {path}")
                return CurrentState(self.read_attributes(server))
        raise DocumentError(
            f"{self.label}: no se encontró server.xml. Verifica que el perfil exista, que el nodo "
            "esté federado y que los nombres sean correctos; el DMGR puede necesitar otro pase.",
            path=str(self.server_documents()[-1]),
        )

    def read_attributes(self, server: XmlDocument) -> Dict[str, Optional[str]]:
        values = {}
        for attribute, (steps, xml_attribute) in SERVER_XML_PATHS.items():
            if len(steps) == 2:
                values[attribute] = server.value(steps[0], steps[1], xml_attribute)
            else:
                values[attribute] = server.value_at(steps, xml_attribute)
        # WebSphere guarda vacío cuando el umask es el de defecto
        if not values.get("umask"):
            values["umask"] = "022"
        for attribute in ("jvm_executable_jar_filename", "jvm_generic_jvm_arguments"):
            values[attribute] = values.get(attribute) or ""
        return values

    def create_script(self) -> Script:
        r = self.resource
        op = CreateOp(
            task="createClusterMember",
            required=(
                ("clusterName", r.cluster),
                ("memberConfig", (
                    ("memberNode", r.node_name),
                    ("memberName", r.name),
                    ("memberWeight", r.weight),
                    ("genUniquePorts", r.gen_unique_ports),
                )),
            ),
            style=ArgStyle.BRACKET,
        )
        expect = re.compile(re.escape(f"{r.name}(cells/{r.cell}/clusters/{r.cluster}"))
        return Script.create(
            op,
            expect=expect,
            expect_hint=(
                f"No se pudo añadir el miembro {r.name} al cluster {r.cluster}. "
                "Verifica que el servicio del nodo esté corriendo en el servidor remoto."
            ),
        )

    def update_script(self, changes: ChangeSet) -> Optional[Script]:
        r = self.resource
        values = changes.values
        ops = []

        jvm_args = [(JVM_PROPERTIES[name], values[name]) for name in JVM_PROPERTIES if name in values]
        if jvm_args:
            ops.append(TaskOp(
                "setJVMProperties",
                (("nodeName", r.node_name), ("serverName", r.name), *jvm_args),
                style=ArgStyle.BRACKET,
            ))

        server = ConfigRef(containment=self.server_scope.containment())
        for (object_type, named), attributes in CONFIG_OBJECTS.items():
            pairs = tuple((attr, values[name]) for name, attr in attributes.items() if name in values)
            if pairs:
                ops.append(ModifyOp(ConfigRef(object_type=object_type, parent=server, named=named), pairs))

        if not ops:
            return None
        return Script.update(ops)

    def destroy_script(self) -> Script:
        r = self.resource
        return Script.destroy(DeleteOp(
            task="deleteClusterMember",
            args=(("clusterName", r.cluster), ("memberNode", r.node_name), ("memberName", r.name)),
        ))
