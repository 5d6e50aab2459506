"""
Lector de estado: consultas puntuales (XPath) sobre los documentos XML de configuración
de WebSphere (resources.xml, server.xml, cluster.xml, fileRegistry.xml, *-authz.xml).

Solo lectura: los documentos nunca se escriben; toda mutación pasa por wsadmin + save.
"""

import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from lxml import etree

from wasplane.core.errors import DocumentError


# Prefijos habituales en los documentos de WebSphere; se completan con el nsmap del documento
KNOWN_NAMESPACES: Dict[str, str] = {
    "xmi": "http://www.omg.org/XMI",
    "xsi": "http://www.w3.org/2001/XMLSchema-instance",
    "wim": "http://www.ibm.com/websphere/wim",
    "sdo": "commonj.sdo",
}


def _sanitize(content: bytes, ignored_names: Sequence[str]) -> bytes:
    """
    Elimina resourceProperties que guardan blobs (.zip, .xml, ...) como valor.

    Con esos blobs el parseo de resources.xml se vuelve lentísimo y a veces falla;
    nadie gestiona esos objetos con wasplane, así que se extirpan antes de parsear.
    """
    suffixes = [s for s in ignored_names if s]
    if not suffixes:
        return content
    alternatives = "|".join(re.escape(s) for s in suffixes)
    pattern = re.compile(
        rb'<resourceProperties\b[^>]*?\bname="[^"]*\.(?:' + alternatives.encode() + rb')"'
        rb"[^>]*?(?:/>|>.*?</resourceProperties>)",
        re.DOTALL,
    )
    return pattern.sub(b"", content)


class XmlDocument:
    """Documento XML ya parseado con helpers de consulta (variables XPath, nunca interpolación)."""

    def __init__(self, root: Any, path: Optional[Path] = None):
        self.root = root
        self.path = path
        namespaces = dict(KNOWN_NAMESPACES)
        namespaces.update({k: v for k, v in (root.nsmap or {}).items() if k})
        self.namespaces = namespaces
        self._prefixes = {uri: prefix for prefix, uri in namespaces.items()}

    @classmethod
    def parse(cls, content: bytes, path: Optional[Path] = None) -> "XmlDocument":
        parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
        try:
            root = etree.fromstring(content, parser)
        except etree.XMLSyntaxError as e:
            raise DocumentError(f"Documento XML mal formado: {e}", path=str(path or "")) from e
        return cls(root, path)

    def xpath(self, query: str, **variables: Any) -> List[Any]:
        try:
            return self.root.xpath(query, namespaces=self.namespaces, **variables)
        except etree.XPathError as e:
            raise DocumentError(f"Consulta XPath inválida '{query}': {e}", path=str(self.path or "")) from e

    def first(self, query: str, **variables: Any) -> Optional[Any]:
        """Primer elemento que cumple la consulta o None."""
        found = self.xpath(query, **variables)
        return found[0] if found else None

    def _attribute_name(self, key: str) -> str:
        qname = etree.QName(key)
        if qname.namespace is None:
            return key
        prefix = self._prefixes.get(qname.namespace)
        return f"{prefix}:{qname.localname}" if prefix else qname.localname

    def attributes(self, query: str, **variables: Any) -> Optional[Dict[str, str]]:
        """Atributos del primer elemento (xmi:id, xmi:type con prefijo) o None si no existe."""
        element = self.first(query, **variables)
        if element is None:
            return None
        return {self._attribute_name(k): v for k, v in element.attrib.items()}

    def value(self, section: str, element: str, attribute: str) -> Optional[str]:
        """Consulta de profundidad fija: //section/element/@attribute."""
        return self.value_at([section, element], attribute)

    def value_at(self, steps: Sequence[str], attribute: str) -> Optional[str]:
        """Consulta de profundidad arbitraria: //step1/step2/.../stepN/@attribute."""
        node = self.first("//" + "/".join(steps))
        if node is None:
            return None
        key = attribute
        if ":" in attribute:
            prefix, local = attribute.split(":", 1)
            key = f"{{{self.namespaces[prefix]}}}{local}"
        return node.get(key)

    def text(self, query: str, **variables: Any) -> Optional[str]:
        node = self.first(query, **variables)
        if node is None:
            return None
        if isinstance(node, str):
            return str(node)
        return node.text

    def values(self, query: str, **variables: Any) -> List[str]:
        """Resultados de texto/atributo de la consulta, en orden de documento."""
        result = []
        for node in self.xpath(query, **variables):
            if isinstance(node, str):
                result.append(str(node))
            elif node.text is not None:
                result.append(node.text.strip())
        return result


def open_document(
    path: Path,
    ignored_names: Sequence[str] = (),
    sanitize: bool = True,
) -> Optional[XmlDocument]:
    """
    Abre un documento de configuración.

    Args:
        path: Ruta al XML
        ignored_names: Sufijos de resourceProperties a extirpar antes de parsear
        sanitize: Si False, se parsea el documento tal cual

    Returns:
        XmlDocument, o None si el archivo no existe (el objeto se considera ausente)
    """
    path = Path(path)
    if not path.is_file():
        return None
    content = path.read_bytes()
    if sanitize:
        content = _sanitize(content, ignored_names)
    return XmlDocument.parse(content, path)
