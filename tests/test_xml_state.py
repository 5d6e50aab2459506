import pytest

from wasplane.core.errors import DocumentError
from wasplane.providers.xml_state import XmlDocument, _sanitize, open_document


def test_missing_document_means_absent(tmp_path):
    assert open_document(tmp_path / "no" / "resources.xml") is None


def test_malformed_document_raises(tmp_path):
    path = tmp_path / "server.xml"
    path.write_text("<process:Server><broken", encoding="utf-8")

    with pytest.raises(DocumentError) as excinfo:
        open_document(path)

    assert excinfo.value.path == str(path)


def test_fixed_depth_and_deep_queries(tree):
    doc = open_document(tree.server(heap=512))

    assert doc.value("processDefinitions", "jvmEntries", "maximumHeapSize") == "512"
    assert doc.value("processDefinitions", "execution", "umask") == ""
    steps = (
        'components[@xmi:type="applicationserver:ApplicationServer"]',
        'components[@xmi:type="applicationserver.ejbcontainer:EJBContainer"]',
        "services",
        'threadPool[@name="Message.Listener.Pool"]',
    )
    assert doc.value_at(steps, "inactivityTimeout") == "3500"
    assert doc.value_at(("processDefinitions", "nothing"), "x") is None


def test_prefixed_attributes(tree):
    doc = open_document(tree.server())

    assert doc.value_at(("processDefinitions", "jvmEntries"), "xmi:id") == "JavaVirtualMachine_1"
    attrs = doc.attributes("//processDefinitions")
    assert attrs["xmi:type"] == "processexec:JavaProcessDef"
    assert attrs["xmi:id"] == "JavaProcessDef_1"


def test_query_variables_are_not_interpolated(tree):
    doc = open_document(tree.resources())

    assert doc.first("//factories[@name=$name]", name="QCF_01") is not None
    assert doc.first("//factories[@name=$name]", name="x' or '1'='1") is None


def test_invalid_query_raises_document_error(tree):
    doc = open_document(tree.resources())

    with pytest.raises(DocumentError, match="XPath"):
        doc.xpath("//factories[@name=")


def test_embedded_blobs_are_stripped_before_parsing(tree):
    path = tree.resources()

    doc = open_document(path, ignored_names=["zip", "xml"])
    names = doc.values("//resourceProperties/@name")
    assert names == ["timeout"]

    raw = open_document(path, ignored_names=["zip"], sanitize=False)
    assert raw.values("//resourceProperties/@name") == ["bundle.zip", "timeout"]


def test_sanitize_removes_paired_elements():
    content = (
        b'<root><resourceProperties name="a.XML" value="x"><description>d</description>'
        b'</resourceProperties><resourceProperties name="keep" value="1"/></root>'
    )

    cleaned = _sanitize(content, ["XML"])

    assert b"a.XML" not in cleaned
    assert b'name="keep"' in cleaned
    assert _sanitize(content, []) == content


def test_text_and_values():
    doc = XmlDocument.parse(b"<root><item>uno</item><item> dos </item></root>")

    assert doc.text("//item") == "uno"
    assert doc.values("//item") == ["uno", "dos"]
    assert doc.text("//missing") is None
