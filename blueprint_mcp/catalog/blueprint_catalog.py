#!/usr/bin/env python3
# CUI // SP-CTI
"""Static, read-only blueprint catalog.

Holds three maps loaded once at start-up from args/blueprint_catalog.yaml:
blueprints by name, extraction patterns by capability, and project-to-
blueprint mappings by project name. Load-time invariants:

    - blueprint names are unique lowercase-kebab
    - a seeded origin agrees with the name-prefix classifier
    - every extraction pattern / project mapping / cross-cloud entry
      references a loaded blueprint
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Union

import yaml

from blueprint_mcp.catalog.cloud_provider import get_cloud_provider
from blueprint_mcp.catalog.models import (
    Blueprint,
    CloudProvider,
    ExtractionPattern,
    Pattern,
    ProjectBlueprintMapping,
)
from blueprint_mcp.resilience.errors import ConfigurationError, ValidationError

logger = logging.getLogger("blueprints.catalog")

BLUEPRINT_NAME_RE = re.compile(r"^[a-z0-9-]+$")


@dataclass(frozen=True)
class BlueprintCriteria:
    """Filter options for BlueprintCatalog.filter(). None means wildcard.

    database:   case-insensitive substring of Blueprint.database
    pattern:    exact, case-insensitive match on the Pattern value
    keyword:    case-insensitive substring of name + description + use case
    cloud:      provider derived from the blueprint name
    auth:       True keeps cognito/amplify blueprints only
    containers: True keeps ECS/EKS blueprints, False drops them
    """

    database: Optional[str] = None
    pattern: Optional[str] = None
    keyword: Optional[str] = None
    cloud: Optional[str] = None
    auth: Optional[bool] = None
    containers: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping]) -> "BlueprintCriteria":
        if not data:
            return cls()
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict:
        return {k: getattr(self, k) for k in self.__dataclass_fields__ if getattr(self, k) is not None}


CriteriaLike = Union[BlueprintCriteria, Mapping, None]


def _normalize_capability(capability: str) -> str:
    return re.sub(r"[\s_]+", "-", capability.strip().lower())


def _is_container_blueprint(blueprint: Blueprint) -> bool:
    return "ecs" in blueprint.name or "eks" in blueprint.name


def _is_auth_blueprint(blueprint: Blueprint) -> bool:
    return "cognito" in blueprint.name or "amplify" in blueprint.name


class BlueprintCatalog:
    """In-memory catalog. All query methods are read-only."""

    def __init__(
        self,
        blueprints: Iterable[Blueprint],
        extraction_patterns: Optional[Mapping[str, ExtractionPattern]] = None,
        project_mappings: Optional[Mapping[str, ProjectBlueprintMapping]] = None,
        cross_cloud_equivalents: Optional[Mapping[str, Mapping[str, str]]] = None,
        capability_aliases: Optional[Mapping[str, str]] = None,
    ):
        self._blueprints: Dict[str, Blueprint] = {}
        for blueprint in blueprints:
            if blueprint.name in self._blueprints:
                raise ConfigurationError(
                    f"Duplicate blueprint name: {blueprint.name}", config_key="blueprints"
                )
            self._blueprints[blueprint.name] = blueprint

        self._patterns: Dict[str, ExtractionPattern] = dict(extraction_patterns or {})
        self._projects: Dict[str, ProjectBlueprintMapping] = dict(project_mappings or {})
        self._equivalents: Dict[str, Dict[str, str]] = {
            k: dict(v) for k, v in (cross_cloud_equivalents or {}).items()
        }
        self._aliases: Dict[str, str] = {
            _normalize_capability(k): v for k, v in (capability_aliases or {}).items()
        }
        self._check_references()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _check_references(self) -> None:
        for key, pattern in self._patterns.items():
            if pattern.blueprint_ref not in self._blueprints:
                raise ConfigurationError(
                    f"Extraction pattern '{key}' references unknown blueprint "
                    f"'{pattern.blueprint_ref}'",
                    config_key=f"extraction_patterns.{key}",
                )
        for key, mapping in self._projects.items():
            if mapping.blueprint not in self._blueprints:
                raise ConfigurationError(
                    f"Project '{key}' references unknown blueprint '{mapping.blueprint}'",
                    config_key=f"project_mappings.{key}",
                )
        for source, targets in self._equivalents.items():
            for cloud, target in targets.items():
                if source not in self._blueprints or target not in self._blueprints:
                    raise ConfigurationError(
                        f"Cross-cloud entry {source} -> {cloud}:{target} references "
                        f"an unknown blueprint",
                        config_key=f"cross_cloud_equivalents.{source}",
                    )
                if CloudProvider.parse(cloud) is None:
                    raise ConfigurationError(
                        f"Unknown cloud '{cloud}' in cross-cloud entry {source}",
                        config_key=f"cross_cloud_equivalents.{source}",
                    )
        for alias, capability in self._aliases.items():
            if capability not in self._patterns:
                raise ConfigurationError(
                    f"Capability alias '{alias}' points at unknown capability '{capability}'",
                    config_key="capability_aliases",
                )

    @staticmethod
    def _blueprint_from_dict(data: Mapping) -> Blueprint:
        name = data.get("name")
        if not isinstance(name, str) or not BLUEPRINT_NAME_RE.match(name):
            raise ConfigurationError(
                f"Invalid blueprint name: {name!r}", config_key="blueprints.name"
            )
        pattern = Pattern.parse(data.get("pattern"))
        if pattern is None:
            raise ConfigurationError(
                f"Blueprint '{name}' has invalid pattern {data.get('pattern')!r}",
                config_key=f"blueprints.{name}.pattern",
            )

        derived = get_cloud_provider(name)
        seeded = data.get("origin")
        origin = CloudProvider.parse(seeded) if seeded is not None else derived
        if seeded is not None and origin is None:
            raise ConfigurationError(
                f"Blueprint '{name}' has unknown origin {seeded!r}",
                config_key=f"blueprints.{name}.origin",
            )
        if origin is None:
            raise ConfigurationError(
                f"Cannot determine cloud provider for blueprint '{name}'",
                config_key=f"blueprints.{name}.origin",
            )
        if derived is not None and origin != derived:
            raise ConfigurationError(
                f"Blueprint '{name}' origin {origin.value} disagrees with name prefix "
                f"({derived.value})",
                config_key=f"blueprints.{name}.origin",
            )

        return Blueprint(
            name=name,
            description=str(data.get("description", "")),
            database=str(data.get("database", "N/A")),
            pattern=pattern,
            use_case=str(data.get("use_case", data.get("useCase", ""))),
            origin=origin,
            provenance=str(data.get("provenance", "TBD")),
        )

    @classmethod
    def from_dict(cls, data: Mapping) -> "BlueprintCatalog":
        """Build a catalog from the parsed YAML structure."""
        blueprints = [cls._blueprint_from_dict(b) for b in data.get("blueprints") or []]

        patterns = {}
        for key, raw in (data.get("extraction_patterns") or {}).items():
            patterns[key] = ExtractionPattern(
                capability=key,
                blueprint_ref=raw.get("blueprint", ""),
                modules=tuple(raw.get("modules") or ()),
                description=raw.get("description", ""),
                integration_steps=tuple(raw.get("integration_steps") or ()),
                checklist=tuple(raw.get("checklist") or ()),
            )

        projects = {}
        for key, raw in (data.get("project_mappings") or {}).items():
            cloud = CloudProvider.parse(raw.get("cloud"))
            if cloud is None:
                raise ConfigurationError(
                    f"Project '{key}' has unknown cloud {raw.get('cloud')!r}",
                    config_key=f"project_mappings.{key}.cloud",
                )
            projects[key] = ProjectBlueprintMapping(
                project_name=key,
                blueprint=raw.get("blueprint", ""),
                cloud=cloud,
                description=raw.get("description", ""),
            )

        return cls(
            blueprints,
            extraction_patterns=patterns,
            project_mappings=projects,
            cross_cloud_equivalents=data.get("cross_cloud_equivalents") or {},
            capability_aliases=data.get("capability_aliases") or {},
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._blueprints)

    def get_all(self) -> List[Blueprint]:
        """All blueprints in load order."""
        return list(self._blueprints.values())

    def get_by_name(self, name: str) -> Optional[Blueprint]:
        return self._blueprints.get(name)

    def filter(self, criteria: CriteriaLike = None) -> List[Blueprint]:
        """Return blueprints matching every supplied criterion, in load order.

        Omitted criteria are wildcards; no match is an empty list.
        """
        if not isinstance(criteria, BlueprintCriteria):
            criteria = BlueprintCriteria.from_dict(criteria)

        matches = self.get_all()

        if criteria.database:
            wanted = criteria.database.lower()
            matches = [b for b in matches if wanted in b.database.lower()]

        if criteria.pattern:
            wanted = criteria.pattern.strip().lower()
            matches = [b for b in matches if b.pattern.value.lower() == wanted]

        if criteria.keyword:
            wanted = criteria.keyword.lower()
            matches = [
                b for b in matches
                if wanted in f"{b.name} {b.description} {b.use_case}".lower()
            ]

        if criteria.cloud:
            provider = CloudProvider.parse(criteria.cloud)
            matches = [b for b in matches if provider is not None and get_cloud_provider(b.name) == provider]

        if criteria.auth is True:
            matches = [b for b in matches if _is_auth_blueprint(b)]

        if criteria.containers is True:
            matches = [b for b in matches if _is_container_blueprint(b)]
        elif criteria.containers is False:
            matches = [b for b in matches if not _is_container_blueprint(b)]

        return matches

    def capabilities(self) -> List[str]:
        return list(self._patterns)

    def get_extraction_pattern(self, capability: str) -> Optional[ExtractionPattern]:
        """Look up a capability by exact key, normalized key, then alias."""
        if not isinstance(capability, str) or not capability.strip():
            return None
        if capability in self._patterns:
            return self._patterns[capability]
        normalized = _normalize_capability(capability)
        if normalized in self._patterns:
            return self._patterns[normalized]
        alias = self._aliases.get(normalized)
        return self._patterns.get(alias) if alias else None

    def project_names(self) -> List[str]:
        return list(self._projects)

    def get_project_mapping(
        self, project_name: str, target_cloud: Optional[str] = None
    ) -> List[ProjectBlueprintMapping]:
        """Return project mappings whose key contains project_name.

        Matching is case-insensitive, in load order. With target_cloud the
        matches are further restricted to that provider.

        Raises:
            ValidationError: target_cloud is not aws, azure or gcp.
        """
        provider = None
        if target_cloud:
            provider = CloudProvider.parse(target_cloud)
            if provider is None:
                raise ValidationError(
                    f"Invalid cloud provider: {target_cloud}. Must be aws, azure, or gcp"
                )
        if not isinstance(project_name, str) or not project_name.strip():
            return []

        wanted = project_name.strip().lower()
        matches = [m for key, m in self._projects.items() if wanted in key.lower()]
        if provider is not None:
            matches = [m for m in matches if m.cloud == provider]
        return matches

    def get_cross_cloud_equivalent(
        self, blueprint_name: str, target_cloud: CloudProvider
    ) -> Optional[Blueprint]:
        """Equivalent blueprint on another cloud, or None if none is mapped."""
        target = self._equivalents.get(blueprint_name, {}).get(target_cloud.value)
        return self._blueprints.get(target) if target else None


def load_catalog(catalog_path: Path) -> BlueprintCatalog:
    """Load the catalog seed file.

    Raises:
        ConfigurationError: File missing, unreadable, or inconsistent.
    """
    catalog_path = Path(catalog_path)
    if not catalog_path.exists():
        raise ConfigurationError(
            f"Catalog file not found: {catalog_path}", config_key="catalog.path"
        )
    with open(catalog_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Catalog file {catalog_path} must contain a mapping", config_key="catalog.path"
        )
    catalog = BlueprintCatalog.from_dict(data)
    logger.info(
        "Loaded catalog: %d blueprints, %d capabilities, %d projects",
        len(catalog), len(catalog.capabilities()), len(catalog.project_names()),
    )
    return catalog
