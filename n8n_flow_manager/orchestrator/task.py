from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping
import uuid

from ..core.catalog import TaskType
from ..core.extractor import ExtractedParameters


@dataclass(frozen=True)
class Task:
    """Classified, parameterized instruction handed to the dispatcher."""

    raw_instruction: str
    normalized_instruction: str
    type: TaskType
    parameters: ExtractedParameters = field(default_factory=ExtractedParameters)
    context: Mapping[str, Any] = field(default_factory=dict)
    requires_confirmation: bool = False
    confidence: float = 0.0
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        object.__setattr__(self, "context", MappingProxyType(dict(self.context)))

    def summary(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "raw_instruction": self.raw_instruction,
            "parameters": self.parameters.to_dict(),
            "requires_confirmation": self.requires_confirmation,
            "confidence": self.confidence,
        }


__all__ = ["Task"]
