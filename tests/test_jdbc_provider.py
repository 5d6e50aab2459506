from conftest import CELL, DMGR
from wasplane.core.runtime.reconciler import PassState, Reconciler
from wasplane.providers import build_provider, declare


def provider(tree, **fields):
    data = {
        "title": "Oracle JDBC Driver",
        "scope": "cell",
        "cell": CELL,
        "dmgr_profile": DMGR,
        "profile_base": str(tree.base),
        "dbtype": "Oracle",
        "providertype": "Oracle JDBC Driver",
        "implementation": "Connection pool data source",
        "classpath": "${ORACLE_JDBC_DRIVER_PATH}/ojdbc6.jar",
    }
    data.update(fields)
    return build_provider(declare("jdbc_provider", data))


def test_existing_provider_is_unchanged(tree, executor):
    tree.resources()

    report = Reconciler(executor).reconcile(provider(tree, description="otra"))

    assert report.state == PassState.UNCHANGED
    assert executor.executed == []


def test_missing_provider_is_created_in_scope(tree, executor):
    report = Reconciler(executor).reconcile(provider(tree, title="DB2 Universal"))

    assert report.state == PassState.APPLIED
    assert "AdminTask.createJDBCProvider(['-scope', 'Cell=CELL_01', '-databaseType', 'Oracle'" in report.script
    assert "'-classpath', '${ORACLE_JDBC_DRIVER_PATH}/ojdbc6.jar'" in report.script
    assert "'-description', 'Created by wasplane'" in report.script


def test_destroy_looks_up_provider_by_name(tree, executor):
    tree.resources()

    report = Reconciler(executor).reconcile(provider(tree, ensure="absent"))

    assert report.state == PassState.APPLIED
    assert "c.startswith('Oracle JDBC Driver(')" in report.script
    assert "AdminConfig.remove(" in report.script


def test_destroy_targets_the_provider_read_from_the_scope_document(tree, executor):
    tree.resources()

    report = Reconciler(executor).reconcile(provider(tree, ensure="absent"))

    assert report.current is None
    assert "c.count('(cells/CELL_01|resources.xml#') > 0" in report.script
    assert "c.endswith('#JDBCProvider_1)')" in report.script
