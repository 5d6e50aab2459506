import pytest

from conftest import CELL, CLUSTER, DMGR, NODE, SERVER
from wasplane.core.errors import ValidationError
from wasplane.core.runtime.state import ChangeSet, ChangeSetBuilder
from wasplane.providers import build_provider, declare


def provider(tree, **fields):
    data = {
        "title": SERVER,
        "cluster": CLUSTER,
        "node_name": NODE,
        "cell": CELL,
        "dmgr_profile": DMGR,
        "profile_base": str(tree.base),
    }
    data.update(fields)
    return build_provider(declare("cluster_member", data))


def test_name_comes_from_title(tree):
    p = provider(tree)

    assert p.resource.name == SERVER
    assert p.resource.identity() == (SERVER, CLUSTER, NODE, CELL)


def test_invalid_identifiers_and_values_are_rejected(tree):
    with pytest.raises(ValidationError, match="node_name"):
        provider(tree, node_name="NODE 01")
    with pytest.raises(ValidationError, match="umask"):
        provider(tree, umask="0999")
    with pytest.raises(ValidationError, match="weight"):
        provider(tree, weight=21)


def test_read_state_reads_every_managed_attribute(tree, executor):
    tree.cluster()
    tree.server(heap=768)

    state = provider(tree).read_state(executor)

    assert state["jvm_maximum_heap_size"] == "768"
    assert state["runas_user"] == "wasadmin"
    assert state["umask"] == "022"
    assert state["jvm_generic_jvm_arguments"] == ""
    assert state["jvm_executable_jar_filename"] == ""
    assert state["total_transaction_timeout"] == "120"
    assert state["max_transaction_timeout"] == "300"
    assert state["threadpool_webcontainer_max_size"] == "50"
    assert state["mls_thread_inactivity_timeout"] == "3500"
    assert state["jvm_hprof_arguments"] is None


def test_member_on_another_node_is_absent(tree, executor):
    tree.cluster(members=((SERVER, "NODE_02"),))
    tree.server()

    assert provider(tree).read_state(executor) is None


def test_own_profile_server_xml_wins_over_dmgr(tree, executor):
    tree.cluster()
    tree.server(heap=256)
    own = tree.base / "AppSrv01" / "config" / "cells" / CELL / "nodes" / NODE / "servers" / SERVER / "server.xml"
    tree.write(own, (tree.cell_dir / "nodes" / NODE / "servers" / SERVER / "server.xml").read_text().replace(
        'maximumHeapSize="256"', 'maximumHeapSize="2048"'
    ))

    state = provider(tree, profile="AppSrv01").read_state(executor)

    assert state["jvm_maximum_heap_size"] == "2048"


def test_update_script_groups_jvm_and_config_changes(tree, executor):
    tree.cluster()
    tree.server()
    p = provider(
        tree,
        jvm_maximum_heap_size=1024,
        jvm_generic_jvm_arguments="-Xshareclasses -Dfile.encoding=UTF-8",
        runas_user="was",
        total_transaction_timeout=600,
        mls_threadpool_max_size=100,
    )
    builder = ChangeSetBuilder(p.read_state(executor))
    p.diff(builder)

    text = p.update_script(builder.finalize()).render()

    assert text.count("AdminTask.setJVMProperties") == 1
    assert '-genericJvmArguments "-Xshareclasses -Dfile.encoding=UTF-8"' in text
    assert "AdminConfig.getid('/Cell:CELL_01/Node:NODE_01/Server:SRV_01/')" in text
    assert "AdminConfig.list('ProcessExecution'" in text
    assert "[['runAsUser', 'was']]" in text
    assert "[['totalTranLifetimeTimeout', '600']]" in text
    assert "c.startswith('Message.Listener.Pool(')" in text
    assert text.count("AdminConfig.save()") == 1


def test_update_script_without_managed_changes_is_none(tree):
    assert provider(tree).update_script(ChangeSet()) is None


def test_create_and_destroy_scripts(tree):
    p = provider(tree, gen_unique_ports=False)

    create = p.create_script()
    destroy = p.destroy_script().render()

    assert create.expect.search(f"{SERVER}(cells/{CELL}/clusters/{CLUSTER}|cluster.xml#ClusterMember_3)")
    assert "-genUniquePorts false" in create.render()
    assert "AdminTask.deleteClusterMember(['-clusterName', 'CLUSTER_01', '-memberNode', 'NODE_01', " \
           "'-memberName', 'SRV_01'])" in destroy
