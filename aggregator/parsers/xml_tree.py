"""
Typed, tolerant view over an XML document.

RSS feeds omit, repeat and nest elements inconsistently. XmlNode gives the
parser one place to ask for "zero, one or many children called X" and for an
element's text or attributes, without each call site dealing with None.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

# Bandit: parsing handled via defusedxml safe APIs
import xml.etree.ElementTree as ET  # nosec B405

from defusedxml.ElementTree import fromstring as safe_fromstring

ITUNES_NS = "http://www.itunes.com/dtds/podcast-1.0.dtd"

# Feeds spell the iTunes URI with varying case ("DTDs/Podcast-1.0.dtd") and scheme
_ITUNES_ALIASES = {
    ITUNES_NS,
    "https://www.itunes.com/dtds/podcast-1.0.dtd",
}

_UTF8_BOM = b"\xef\xbb\xbf"
_UTF16_BOMS = (b"\xff\xfe", b"\xfe\xff")


def _canonical_namespace(uri: str) -> str:
    if uri.lower() in _ITUNES_ALIASES:
        return ITUNES_NS
    return uri


def _split_tag(tag: str) -> Tuple[str, str]:
    """Splits an ElementTree '{uri}local' tag into (uri, local)."""
    if tag.startswith("{"):
        uri, _, local = tag[1:].partition("}")
        return _canonical_namespace(uri), local
    return "", tag


def _strip_leading_whitespace(xml: Union[str, bytes]) -> Union[str, bytes]:
    """Drops whitespace before the XML declaration, keeping a UTF-8 byte order mark."""
    if isinstance(xml, str):
        return xml.lstrip().lstrip("\ufeff").lstrip()
    if xml.startswith(_UTF16_BOMS):
        return xml
    if xml.startswith(_UTF8_BOM):
        return _UTF8_BOM + xml[len(_UTF8_BOM):].lstrip()
    return xml.lstrip()


@dataclass
class XmlNode:
    """One element of a parsed XML document."""

    name: str
    namespace: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    nodes: List["XmlNode"] = field(default_factory=list)

    @classmethod
    def from_element(cls, element: ET.Element) -> "XmlNode":
        """Builds a node tree from an ElementTree element."""
        namespace, name = _split_tag(element.tag)
        attributes = {}
        for key, value in element.attrib.items():
            # Namespaced attributes are addressed by local name
            attributes[_split_tag(key)[1]] = value
        return cls(
            name=name,
            namespace=namespace,
            attributes=attributes,
            text="".join(element.itertext()).strip(),
            nodes=[
                cls.from_element(child)
                for child in element
                if isinstance(child.tag, str)
            ],
        )

    def children(self, name: str, namespace: str = "") -> List["XmlNode"]:
        """Returns every direct child with this name, as a list even for 0 or 1 match."""
        return [n for n in self.nodes if n.name == name and n.namespace == namespace]

    def child(self, name: str, namespace: str = "") -> Optional["XmlNode"]:
        """Returns the first direct child with this name, if any."""
        matches = self.children(name, namespace)
        return matches[0] if matches else None

    def child_text(self, name: str, namespace: str = "") -> Optional[str]:
        """Returns the first matching child's text, or None when it is missing or blank."""
        node = self.child(name, namespace)
        if node is None or not node.text:
            return None
        return node.text

    def attribute(self, name: str) -> Optional[str]:
        """Returns an attribute value, or None when it is missing or blank."""
        value = self.attributes.get(name, "").strip()
        return value or None


def parse_xml(xml: Union[str, bytes]) -> XmlNode:
    """
    Parses an XML document into an XmlNode tree.

    Whitespace some servers emit before the XML declaration is ignored.

    Raises:
        xml.etree.ElementTree.ParseError: If the document is not well-formed.
        defusedxml.DefusedXmlException: If the document uses forbidden constructs.
    """
    return XmlNode.from_element(safe_fromstring(_strip_leading_whitespace(xml)))
