import re

from wasplane.core.classifier import DEFAULT_SIGNATURES, Classifier, Signature
from wasplane.core.infra.contracts import FailureReason, Outcome
from wasplane.core.script import PARENT_NOT_FOUND

WSADMIN_EXCEPTION = (
    "WASX7209I: Connected to process \"dmgr\" on node DMGR_NODE using SOAP connector\n"
    "WASX7017E: Exception received while running file \"/tmp/wasplane_x.py\"; exception information: "
    "com.ibm.ws.scripting.ScriptingException: AttributeError: " + PARENT_NOT_FOUND + "\n"
)


def test_missing_parent_is_recoverable_even_inside_an_interpreter_error():
    result = Classifier().classify(WSADMIN_EXCEPTION, 105)

    assert result.outcome == Outcome.RECOVERABLE
    assert result.reason == FailureReason.DEPENDENCY_NOT_READY
    assert "pase posterior" in result.hint
    assert result.output == WSADMIN_EXCEPTION


def test_interpreter_exception_is_fatal():
    output = "WASX7017E: Exception received while running file; com.ibm.ws.scripting.ScriptingException"

    result = Classifier().classify(output, 105)

    assert result.is_fatal
    assert result.reason == FailureReason.INTERPRETER_ERROR


def test_dmgr_unreachable_is_a_crash():
    result = Classifier().classify("WASX7023E: Error creating \"SOAP\" connection to host", 103)

    assert result.reason == FailureReason.INTERPRETER_CRASH


def test_nonzero_exit_without_signature_is_fatal():
    result = Classifier().classify("algo raro", 2)

    assert result.is_fatal
    assert result.reason == FailureReason.INTERPRETER_CRASH
    assert "2" in result.hint


def test_missing_success_marker_is_unrecognized_output():
    expect = re.compile(r"SRV_01\(cells/CELL_01/clusters/CLUSTER_01")

    missing = Classifier().classify("WASX7209I: Connected", 0, expect, "No se pudo añadir el miembro")
    found = Classifier().classify("SRV_01(cells/CELL_01/clusters/CLUSTER_01|cluster.xml#ClusterMember_1)", 0, expect)

    assert missing.reason == FailureReason.UNRECOGNIZED_OUTPUT
    assert missing.hint == "No se pudo añadir el miembro"
    assert found.ok


def test_clean_exit_is_success():
    result = Classifier().classify("WASX7209I: Connected", 0)

    assert result.ok
    assert result.reason is None


def test_extended_does_not_touch_the_original_table():
    base = Classifier()
    signature = Signature.of(r"INSTCONFFAILED", Outcome.FATAL, FailureReason.INTERPRETER_ERROR, "falló")

    extended = base.extended([signature])

    assert extended.classify("INSTCONFFAILED: Profile failed", 0).is_fatal
    assert base.classify("INSTCONFFAILED: Profile failed", 0).ok
    assert len(base.signatures) == len(DEFAULT_SIGNATURES)


def test_registered_signature_is_used():
    classifier = Classifier([])
    classifier.register(Signature.of("already exists", Outcome.RECOVERABLE, FailureReason.ALREADY_EXISTS))

    assert classifier.classify("ADMG0247E: object already exists", 1).is_recoverable


def test_provider_fatal_signature_wins_over_generic_already_exists():
    signature = Signature.of(r"INSTCONFFAILED", Outcome.FATAL, FailureReason.INTERPRETER_ERROR, "falló")
    output = "INSTCONFFAILED: Cannot create profile: The profile already exists."

    result = Classifier().extended([signature]).classify(output, 0)

    assert result.is_fatal
    assert result.reason == FailureReason.INTERPRETER_ERROR
    assert Classifier().classify(output, 0).reason == FailureReason.ALREADY_EXISTS


def test_first_matching_signature_in_table_order_wins():
    classifier = Classifier([
        Signature.of("ADMG", Outcome.FATAL, FailureReason.INTERPRETER_ERROR),
        Signature.of("already exists", Outcome.RECOVERABLE, FailureReason.ALREADY_EXISTS),
    ])

    assert classifier.classify("ADMG0247E: object already exists", 1).is_fatal
