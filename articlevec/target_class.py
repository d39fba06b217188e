"""
Target classes: which metadata attribute carries the class, how raw values map
to output labels, and which documents are left out (no mapping -> skipped).
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

from .document import AnnotatedDocument
from .errors import ConfigError


class TargetClass(Enum):
    VERACITY = ("veracity", {
        "true": "real",
        "false": "fake",
    })
    FAKE = ("veracity", {
        "mostly true": "real",
        "true": "real",
        "mostly false": "fake",
        "false": "fake",
    })
    ORIENTATION = ("orientation", {
        "left": "left",
        "right": "right",
        "mainstream": "mainstream",
    })
    HYPERPARTISAN = ("orientation", {
        "left": "hyperpartisan",
        "right": "hyperpartisan",
        "mainstream": "mainstream",
    })

    def __init__(self, attribute: str, mapping: Dict[str, str]):
        self.attribute = attribute
        self.mapping = mapping

    def get_class_value(self, document: AnnotatedDocument) -> Optional[str]:
        """Output label of a document, or None if it does not take part."""
        raw = getattr(document.meta, self.attribute, None)
        if raw is None:
            return None
        return self.mapping.get(str(raw).strip().lower())

    def get_class_feature(self) -> str:
        return self.attribute

    def get_class_mapping(self) -> Dict[str, str]:
        return dict(self.mapping)

    @classmethod
    def from_name(cls, name: str) -> "TargetClass":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            known = ", ".join(m.name for m in cls)
            raise ConfigError(f"Unknown target class {name!r} (known: {known})") from None
