from wasplane.core.runtime.state import (
    ChangeSetBuilder,
    CurrentState,
    MembershipChange,
    PendingChange,
    StateDiff,
    membership_delta,
    values_differ,
)


def test_set_twice_keeps_only_last_value():
    builder = ChangeSetBuilder(CurrentState({"jvm_maximum_heap_size": "256"}))

    builder.set("jvm_maximum_heap_size", 512)
    builder.set("jvm_maximum_heap_size", 1024)
    changes = builder.finalize()

    assert len(changes) == 1
    assert changes.values == {"jvm_maximum_heap_size": 1024}


def test_changes_keep_setter_call_order():
    builder = ChangeSetBuilder()
    builder.set("umask", "022")
    builder.set("runas_user", "wasadmin")
    builder.set("umask", "027")

    assert builder.finalize().attributes == ["umask", "runas_user"]


def test_values_differ_compares_as_websphere_text():
    assert not values_differ(512, "512")
    assert not values_differ(False, "false")
    assert values_differ(True, "false")
    assert not values_differ(None, "anything")
    assert values_differ("", None)


def test_mappings_compare_only_declared_keys():
    current = {"queueManager": "QM01", "port": "1414", "host": "mq.example.com"}

    assert not values_differ({"queueManager": "QM01", "port": 1414}, current)
    assert values_differ({"queueManager": "QM02"}, current)
    assert values_differ({"queueManager": "QM01"}, None)


def test_membership_delta_preserves_order():
    additions, removals = membership_delta(["c", "a", "d", "d"], ["a", "b", "e"])

    assert additions == ["c", "d"]
    assert removals == ["b", "e"]


def test_set_members_without_enforce_never_removes():
    builder = ChangeSetBuilder(CurrentState({"members": ["alice", "carol"]}))

    change = builder.set_members("members", ["alice", "bob"], enforce=False)

    assert change == MembershipChange("members", ("bob",), ())


def test_set_members_with_nothing_to_do_drops_previous_change():
    builder = ChangeSetBuilder(CurrentState({"roles": ["monitor"]}))
    builder.set("roles", ["administrator"])

    assert builder.set_members("roles", ["monitor"]) is None
    assert not builder.finalize()


def test_needs_refresh_only_for_flagged_memberships():
    builder = ChangeSetBuilder(CurrentState({"members": [], "roles": []}))
    builder.set_members("members", ["bob"])
    assert not builder.finalize().needs_refresh

    builder.set_members("roles", ["monitor"], refresh=True)
    assert builder.finalize().needs_refresh


def test_merged_applies_values_mappings_and_memberships():
    current = CurrentState({
        "description": "vieja",
        "qmgr_data": {"queueManager": "QM01", "port": "1414"},
        "members": ["alice", "carol"],
    })
    builder = ChangeSetBuilder(current)
    builder.set("description", "nueva")
    builder.set("qmgr_data", {"port": "1415"})
    builder.set_members("members", ["alice", "bob"])

    merged = current.merged(builder.finalize())

    assert merged["description"] == "nueva"
    assert merged["qmgr_data"] == {"queueManager": "QM01", "port": "1415"}
    assert merged["members"] == ["alice", "bob"]
    # El estado original no cambia
    assert current["description"] == "vieja"


def test_state_diff_from_changes():
    current = CurrentState({"members": ["carol"], "umask": "022"})

    value = StateDiff.from_change("group[ops]", PendingChange("umask", "027"), current)
    members = StateDiff.from_change("group[ops]", MembershipChange("members", ("bob",), ("carol",)), current)

    assert (value.field, value.desired, value.actual) == ("umask", "027", "022")
    assert members.desired == "+bob -carol"
    assert members.severity == "info"
