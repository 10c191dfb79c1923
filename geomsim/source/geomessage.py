# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Geomessage record and its wire serialization."""

import xml.etree.ElementTree as ET
from typing import Dict, Optional

WIRE_ROOT_TAG = "geomessages"
WIRE_MESSAGE_TAG = "geomessage"


class Geomessage(dict):
    """One parsed event record: field name -> field text, in file order.

    The attributes of the source message element (e.g. ``v="1.0"``) are kept
    so the message can be re-encoded as it was read.
    """

    def __init__(self, fields=(), attributes: Optional[Dict[str, str]] = None,
                 tag: str = WIRE_MESSAGE_TAG):
        super().__init__(fields)
        self.attributes = dict(attributes or {})
        self.tag = tag

    @classmethod
    def from_element(cls, element: ET.Element) -> "Geomessage":
        """Build a message from an element whose immediate children are fields."""
        fields = [(child.tag, child.text or "") for child in element]
        return cls(fields, attributes=element.attrib, tag=element.tag)

    @property
    def field_names(self):
        return list(self.keys())

    @property
    def id(self):
        return self.get("_id") or self.get("id")

    def to_element(self) -> ET.Element:
        element = ET.Element(self.tag, self.attributes)
        for name, value in self.items():
            ET.SubElement(element, name).text = value
        return element

    def to_xml(self) -> str:
        """Serialize as a single-message ``<geomessages>`` document."""
        root = ET.Element(WIRE_ROOT_TAG)
        root.append(self.to_element())
        return ET.tostring(root, encoding="unicode")

    def __repr__(self):
        return f"Geomessage({dict.__repr__(self)})"
