"""
Namespace-free tree view of an XISF header document.

The XML header is parsed with ElementTree and converted into PropertyNode
objects so that callers can traverse by plain tag name regardless of the
XISF namespace declaration.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional


@dataclass
class PropertyNode:
    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List['PropertyNode'] = field(default_factory=list)
    text: Optional[str] = None

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attributes.get(name, default)

    def iter(self, tag: Optional[str] = None) -> Iterator['PropertyNode']:
        """Depth-first, document-order traversal including this node."""
        if tag is None or self.tag == tag:
            yield self
        for child in self.children:
            yield from child.iter(tag)

    def find_all(self, tag: str) -> List['PropertyNode']:
        return list(self.iter(tag))

    def children_by_tag(self, tag: str) -> List['PropertyNode']:
        return [child for child in self.children if child.tag == tag]

    @property
    def stripped_text(self) -> Optional[str]:
        if self.text is None:
            return None
        return self.text.strip() or None


def local_name(name: str) -> str:
    """Drop an ElementTree "{namespace}" prefix."""
    if name.startswith('{'):
        return name.split('}', 1)[1]
    return name


def from_element(element: ET.Element) -> PropertyNode:
    return PropertyNode(
        tag=local_name(element.tag),
        attributes={local_name(k): v for k, v in element.attrib.items()},
        children=[from_element(child) for child in element],
        text=element.text,
    )


def parse_header_document(document: bytes) -> PropertyNode:
    """
    Parse XISF header bytes into a PropertyNode tree.

    Trailing NUL padding is removed before parsing.

    Raises:
        xml.etree.ElementTree.ParseError: If the document is not well-formed
    """
    document = document.rstrip(b'\x00')
    return from_element(ET.fromstring(document))
