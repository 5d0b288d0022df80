#!/usr/bin/env python3
# CUI // SP-CTI
"""Blueprint catalog: models, classifier, catalog and query engine."""

from blueprint_mcp.catalog.blueprint_catalog import (  # noqa: F401
    BlueprintCatalog,
    BlueprintCriteria,
    load_catalog,
)
from blueprint_mcp.catalog.cloud_provider import classify, get_cloud_provider  # noqa: F401
from blueprint_mcp.catalog.models import (  # noqa: F401
    Blueprint,
    CloudProvider,
    ExtractionPattern,
    FileContent,
    Pattern,
    ProjectBlueprintMapping,
)
from blueprint_mcp.catalog.query_engine import QueryEngine  # noqa: F401
