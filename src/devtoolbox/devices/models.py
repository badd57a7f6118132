"""Shared dataclasses for attached devices."""

from dataclasses import dataclass, field
from typing import Dict


@dataclass
class Device:
    identifier: str
    status: str
    attributes: Dict[str, str] = field(default_factory=dict)
    family: str = ""

    def attribute(self, key: str, default: str = "") -> str:
        return self.attributes.get(key, default)

    def label(self) -> str:
        """Display text such as ``emulator-5554 (device) - Pixel_7``."""
        text = f"{self.identifier} ({self.status})"
        model = self.attributes.get("model")
        if model:
            text = f"{text} - {model}"
        return text
