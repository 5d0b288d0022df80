#!/usr/bin/env python3
# CUI // SP-CTI
"""Catalog domain models.

Blueprint, ExtractionPattern, ProjectBlueprintMapping and FileContent are
shared by the catalog, the retrieval service and the MCP tool handlers.
Catalog entities are frozen: they are loaded once and never mutated.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class CloudProvider(str, Enum):
    """Cloud a blueprint targets. Values double as workspace directory names."""

    AWS = "aws"
    AZURE = "azure"
    GCP = "gcp"

    @classmethod
    def parse(cls, value) -> Optional["CloudProvider"]:
        """Case-insensitive lookup. Returns None for unknown values."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class Pattern(str, Enum):
    """Execution pattern of a blueprint."""

    SYNC = "Sync"
    ASYNC = "Async"
    NOT_APPLICABLE = "N/A"

    @classmethod
    def parse(cls, value) -> Optional["Pattern"]:
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        wanted = value.strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        return None


@dataclass(frozen=True)
class Blueprint:
    """A cataloged infrastructure pattern."""

    name: str
    description: str
    database: str
    pattern: Pattern
    use_case: str
    origin: CloudProvider
    provenance: str = "TBD"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "database": self.database,
            "pattern": self.pattern.value,
            "useCase": self.use_case,
            "origin": self.origin.value,
            "provenance": self.provenance,
        }


@dataclass(frozen=True)
class ExtractionPattern:
    """How to lift one capability (database, queue, ...) out of a blueprint."""

    capability: str
    blueprint_ref: str
    modules: Tuple[str, ...]
    description: str
    integration_steps: Tuple[str, ...]
    checklist: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "capability": self.capability,
            "blueprint": self.blueprint_ref,
            "modules": list(self.modules),
            "description": self.description,
            "integrationSteps": list(self.integration_steps),
            "checklist": list(self.checklist),
        }


@dataclass(frozen=True)
class ProjectBlueprintMapping:
    """Which blueprint a past client project was built on."""

    project_name: str
    blueprint: str
    cloud: CloudProvider
    description: str

    def to_dict(self) -> dict:
        return {
            "projectName": self.project_name,
            "blueprint": self.blueprint,
            "cloud": self.cloud.value,
            "description": self.description,
        }


@dataclass(frozen=True)
class FileContent:
    """Result of one blueprint file read. Never cached."""

    content: str
    mime_type: str

    def to_dict(self) -> dict:
        return {"content": self.content, "mimeType": self.mime_type}
