from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

# Los tests importan siempre el árbol local, no una versión instalada.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from wasplane.core.classifier import Classifier
from wasplane.core.infra.contracts import ExecutionResult, Outcome

DMGR = "PROFILE_DMGR_01"
CELL = "CELL_01"
CLUSTER = "CLUSTER_01"
NODE = "NODE_01"
SERVER = "SRV_01"

XMI = 'xmlns:xmi="http://www.omg.org/XMI"'

CLUSTER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<topology.cluster:ServerCluster xmi:version="2.0" {xmi}
    xmlns:topology.cluster="http://www.ibm.com/websphere/appserver/schemas/5.0/topology.cluster.xmi"
    xmi:id="ServerCluster_1" name="{cluster}">
  {members}
</topology.cluster:ServerCluster>
"""

SERVER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<process:Server xmi:version="2.0" {xmi}
    xmlns:process="http://www.ibm.com/websphere/appserver/schemas/5.0/process.xmi"
    xmlns:processexec="http://www.ibm.com/websphere/appserver/schemas/5.0/processexec.xmi"
    xmlns:applicationserver="http://www.ibm.com/websphere/appserver/schemas/5.0/applicationserver.xmi"
    xmlns:applicationserver.ejbcontainer="http://www.ibm.com/websphere/appserver/schemas/5.0/applicationserver.ejbcontainer.xmi"
    xmlns:applicationserver.ejbcontainer.messagelistener="http://www.ibm.com/websphere/appserver/schemas/5.0/applicationserver.ejbcontainer.messagelistener.xmi"
    xmlns:threadpoolmanager="http://www.ibm.com/websphere/appserver/schemas/5.0/threadpoolmanager.xmi"
    xmi:id="Server_1" name="{server}">
  <outputStreamRedirect xmi:id="StreamRedirect_1" fileName="${{SERVER_LOG_ROOT}}/SystemOut.log"
      rolloverType="SIZE" maxNumberOfBackupFiles="5" rolloverSize="1" baseHour="24" rolloverPeriod="24"/>
  <errorStreamRedirect xmi:id="StreamRedirect_2" fileName="${{SERVER_LOG_ROOT}}/SystemErr.log"
      rolloverType="SIZE" maxNumberOfBackupFiles="5" rolloverSize="1" baseHour="24" rolloverPeriod="24"/>
  <services xmi:type="threadpoolmanager:ThreadPoolManager" xmi:id="ThreadPoolManager_1" enable="true">
    <threadPools xmi:id="ThreadPool_1" minimumSize="10" maximumSize="50" name="WebContainer"/>
  </services>
  <components xmi:type="applicationserver:ApplicationServer" xmi:id="ApplicationServer_1">
    <services xmi:type="applicationserver:TransactionService" xmi:id="TransactionService_1"
        totalTranLifetimeTimeout="120" clientInactivityTimeout="60" propogatedOrBMTTranLifetimeTimeout="300"/>
    <components xmi:type="applicationserver.ejbcontainer:EJBContainer" xmi:id="EJBContainer_1">
      <services xmi:type="applicationserver.ejbcontainer.messagelistener:MessageListenerService" xmi:id="MessageListenerService_1">
        <threadPool xmi:id="ThreadPool_2" minimumSize="10" maximumSize="50" inactivityTimeout="3500" name="Message.Listener.Pool"/>
      </services>
    </components>
  </components>
  <processDefinitions xmi:type="processexec:JavaProcessDef" xmi:id="JavaProcessDef_1">
    <execution xmi:id="ProcessExecution_1" runAsUser="wasadmin" runAsGroup="wasgroup" umask=""/>
    <jvmEntries xmi:id="JavaVirtualMachine_1" verboseModeClass="false" verboseModeGarbageCollection="false"
        verboseModeJNI="false" initialHeapSize="256" maximumHeapSize="{heap}" runHProf="false"
        debugMode="false" debugArgs="-agentlib:jdwp=transport=dt_socket" genericJvmArguments="" disableJIT="false"/>
  </processDefinitions>
</process:Server>
"""

RESOURCES_XML = """<?xml version="1.0" encoding="UTF-8"?>
<xmi:XMI xmi:version="2.0" {xmi}
    xmlns:resources.jms="http://www.ibm.com/websphere/appserver/schemas/5.0/resources.jms.xmi"
    xmlns:resources.jms.mqseries="http://www.ibm.com/websphere/appserver/schemas/5.0/resources.jms.mqseries.xmi"
    xmlns:resources.jdbc="http://www.ibm.com/websphere/appserver/schemas/5.0/resources.jdbc.xmi"
    xmlns:resources.env="http://www.ibm.com/websphere/appserver/schemas/5.0/resources.env.xmi">
  <resources.jms:JMSProvider xmi:id="builtin_mqprovider" name="WebSphere MQ JMS Provider">
    <factories xmi:type="resources.jms.mqseries:MQQueueConnectionFactory" xmi:id="MQQueueConnectionFactory_1"
        name="QCF_01" jndiName="jms/QCF_01" description="Colas de pedidos" queueManager="QM01"
        host="mq.example.com" port="1414" channel="SYSTEM.DEF.SVRCONN" transportType="CLIENT">
      <connectionPool xmi:id="ConnectionPool_1" connectionTimeout="180" maxConnections="10" minConnections="1"/>
      <sessionPool xmi:id="ConnectionPool_2" connectionTimeout="180" maxConnections="10" minConnections="1"/>
      <mapping xmi:id="MappingModule_1" mappingConfigAlias="DefaultPrincipalMapping"/>
    </factories>
  </resources.jms:JMSProvider>
  <resources.jdbc:JDBCProvider xmi:id="JDBCProvider_1" name="Oracle JDBC Driver" description="Oracle JDBC Driver"
      implementationClassName="oracle.jdbc.pool.OracleConnectionPoolDataSource"/>
  <resources.env:ResourceEnvironmentProvider xmi:id="ResourceEnvironmentProvider_1" name="Blobs">
    <propertySet xmi:id="J2EEResourcePropertySet_1">
      <resourceProperties xmi:id="J2EEResourceProperty_1" name="bundle.zip" value="UEsDBBQAAAAIAA" type="java.lang.String"/>
      <resourceProperties xmi:id="J2EEResourceProperty_2" name="timeout" value="30" type="java.lang.String"/>
    </propertySet>
  </resources.env:ResourceEnvironmentProvider>
</xmi:XMI>
"""

FILE_REGISTRY_XML = """<?xml version="1.0" encoding="UTF-8"?>
<sdo:datagraph xmlns:sdo="commonj.sdo" xmlns:wim="http://www.ibm.com/websphere/wim"
    xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">
  <wim:Root>
    <wim:entities xsi:type="wim:PersonAccount">
      <wim:identifier uniqueName="uid=alice,o=defaultWIMFileBasedRealm"/>
      <wim:uid>alice</wim:uid>
    </wim:entities>
    <wim:entities xsi:type="wim:Group">
      <wim:identifier uniqueName="cn={group},o=defaultWIMFileBasedRealm"/>
      <wim:cn>{group}</wim:cn>
      <wim:members>
        <wim:identifier uniqueName="uid=alice,o=defaultWIMFileBasedRealm"/>
      </wim:members>
      <wim:members>
        <wim:identifier uniqueName="uid=carol,o=defaultWIMFileBasedRealm"/>
      </wim:members>
      <wim:description>Operadores de middleware</wim:description>
    </wim:entities>
  </wim:Root>
</sdo:datagraph>
"""

AUTHZ_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rolebasedauthz:AuthorizationTableExt xmi:version="2.0" {xmi}
    xmlns:rolebasedauthz="http://www.ibm.com/websphere/appserver/schemas/5.0/rolebasedauthz.xmi"
    xmi:id="AuthorizationTableExt_1" context="domain">
  <authorizations xmi:id="RoleAssignmentExt_1" role="SecurityRoleExt_1">
    <groups xmi:id="GroupExt_1" name="{group}"/>
  </authorizations>
  <authorizations xmi:id="RoleAssignmentExt_2" role="SecurityRoleExt_2">
    <groups xmi:id="GroupExt_2" name="otros"/>
  </authorizations>
  <roles xmi:id="SecurityRoleExt_1" roleName="{role}"/>
  <roles xmi:id="SecurityRoleExt_2" roleName="monitor"/>
</rolebasedauthz:AuthorizationTableExt>
"""

PROFILE_REGISTRY_XML = """<?xml version="1.0" encoding="UTF-8"?>
<profiles>
  <profile isAReservedProfile="false" isDefault="true" name="{name}"
      path="{base}/profiles/{name}" template="{base}/profileTemplates/management"/>
</profiles>
"""


class ConfigTree:
    """Árbol config/ mínimo de un perfil DMGR bajo tmp_path."""

    def __init__(self, base: Path):
        self.base = base

    @property
    def cell_dir(self) -> Path:
        return self.base / DMGR / "config" / "cells" / CELL

    def write(self, path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def cluster(self, members: Tuple[Tuple[str, str], ...] = ((SERVER, NODE),)) -> Path:
        rows = "\n  ".join(
            f'<members xmi:id="ClusterMember_{i}" memberName="{name}" nodeName="{node}" weight="2"/>'
            for i, (name, node) in enumerate(members, 1)
        )
        content = CLUSTER_XML.format(xmi=XMI, cluster=CLUSTER, members=rows)
        return self.write(self.cell_dir / "clusters" / CLUSTER / "cluster.xml", content)

    def server(self, server: str = SERVER, heap: int = 256, content: Optional[str] = None) -> Path:
        content = content if content is not None else SERVER_XML.format(xmi=XMI, server=server, heap=heap)
        return self.write(self.cell_dir / "nodes" / NODE / "servers" / server / "server.xml", content)

    def resources(self, relative: str = "", content: Optional[str] = None) -> Path:
        directory = self.cell_dir / relative if relative else self.cell_dir
        return self.write(directory / "resources.xml", content or RESOURCES_XML.format(xmi=XMI))

    def file_registry(self, group: str) -> Path:
        return self.write(self.cell_dir / "fileRegistry.xml", FILE_REGISTRY_XML.format(group=group))

    def authz(self, filename: str, group: str, role: str) -> Path:
        return self.write(self.cell_dir / filename, AUTHZ_XML.format(xmi=XMI, group=group, role=role))

    def profile_registry(self, name: str = DMGR) -> Path:
        content = PROFILE_REGISTRY_XML.format(name=name, base=self.base)
        return self.write(self.base / "properties" / "profileRegistry.xml", content)


class FakeExecutor:
    """
    Ejecutor de pruebas: no lanza procesos.

    outputs: (código, salida) por cada execute(), en orden; se clasifican con el
    Classifier real igual que haría WsadminExecutor.
    queries: bandera de managesdk → salida (str) o ExecutionResult ya clasificado.
    """

    def __init__(self, outputs: Optional[List[Tuple[int, str]]] = None, queries: Optional[Dict[str, Any]] = None):
        self.outputs = list(outputs or [])
        self.queries = dict(queries or {})
        self.executed: List[Any] = []
        self.contexts: List[Any] = []
        self.queried: List[List[str]] = []

    def execute(self, script, context) -> ExecutionResult:
        self.executed.append(script)
        self.contexts.append(context)
        status, output = self.outputs.pop(0) if self.outputs else (0, "")
        classifier = Classifier().extended(context.signatures)
        return classifier.classify(output, status, script.expect, script.expect_hint)

    def query(self, argv, context) -> ExecutionResult:
        self.queried.append(list(argv))
        for flag, output in self.queries.items():
            if flag in argv:
                if isinstance(output, ExecutionResult):
                    return output
                return ExecutionResult(output, 0, Outcome.SUCCESS)
        return ExecutionResult("", 0, Outcome.SUCCESS)


@pytest.fixture
def tree(tmp_path) -> ConfigTree:
    return ConfigTree(tmp_path)


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def make_executor():
    return FakeExecutor


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Sin ~/.wasplane ni .env del usuario."""
    root = tmp_path / "wasplane-config"
    monkeypatch.setenv("WASPLANE_CONFIG_ROOT", str(root))
    monkeypatch.setenv("WASPLANE_PROJECT_ROOT", str(tmp_path))
    for name in ("USER", "TIMEOUT", "PROFILE_BASE", "INSTANCE_BASE", "WSADMIN_USER", "WSADMIN_PASS"):
        monkeypatch.delenv(f"WASPLANE_{name}", raising=False)
    return root
