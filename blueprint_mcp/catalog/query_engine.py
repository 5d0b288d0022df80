#!/usr/bin/env python3
# CUI // SP-CTI
"""Blueprint query and recommendation engine.

recommend() uses a first-match policy: the first blueprint in catalog load
order that satisfies every criterion wins. There is no scoring; insertion
order is the tie-break.

CLI:
    python -m blueprint_mcp.catalog.query_engine --search serverless --json
    python -m blueprint_mcp.catalog.query_engine --recommend --database postgresql --pattern sync
"""

import argparse
import json
import sys
from typing import List, Optional

from blueprint_mcp.catalog.blueprint_catalog import (
    BlueprintCatalog,
    BlueprintCriteria,
    CriteriaLike,
    load_catalog,
)
from blueprint_mcp.catalog.models import Blueprint, CloudProvider
from blueprint_mcp.resilience.errors import BlueprintError, ValidationError


class QueryEngine:
    """Read-only queries over a BlueprintCatalog."""

    def __init__(self, catalog: BlueprintCatalog):
        self._catalog = catalog

    @property
    def catalog(self) -> BlueprintCatalog:
        return self._catalog

    def recommend(self, criteria: CriteriaLike = None) -> Optional[Blueprint]:
        """Return the first matching blueprint in catalog order, or None."""
        matches = self._catalog.filter(criteria)
        return matches[0] if matches else None

    def search(self, keyword: str, limit: Optional[int] = None) -> List[Blueprint]:
        """Return every blueprint whose name, description or use case contains keyword."""
        if not isinstance(keyword, str) or not keyword.strip():
            return []
        matches = self._catalog.filter(BlueprintCriteria(keyword=keyword.strip()))
        return matches[:limit] if limit else matches

    def find_cross_cloud_equivalent(
        self, blueprint_name: str, target_cloud: str
    ) -> Optional[Blueprint]:
        """Map a blueprint onto its equivalent for another cloud.

        Raises:
            ValidationError: target_cloud is not aws, azure or gcp.
        """
        provider = CloudProvider.parse(target_cloud)
        if provider is None:
            raise ValidationError(
                f"Invalid cloud provider: {target_cloud}. Must be aws, azure, or gcp"
            )
        if self._catalog.get_by_name(blueprint_name) is None:
            return None
        return self._catalog.get_cross_cloud_equivalent(blueprint_name, provider)


def main():
    parser = argparse.ArgumentParser(
        description="Blueprint catalog search and recommendation"
    )
    parser.add_argument("--search", metavar="KEYWORD", help="Search blueprints by keyword")
    parser.add_argument("--recommend", action="store_true", help="Recommend one blueprint")
    parser.add_argument("--database", help="Database filter (e.g. postgresql)")
    parser.add_argument("--pattern", help="Pattern filter: sync, async, n/a")
    parser.add_argument("--cloud", help="Cloud filter: aws, azure, gcp")
    parser.add_argument("--catalog", help="Catalog YAML path (default args/blueprint_catalog.yaml)")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    args = parser.parse_args()

    from blueprint_mcp.config import CATALOG_PATH

    try:
        engine = QueryEngine(load_catalog(args.catalog or CATALOG_PATH))
    except BlueprintError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.search:
        blueprints = engine.search(args.search)
        result = {"keyword": args.search, "blueprints": [b.to_dict() for b in blueprints]}
    elif args.recommend:
        criteria = BlueprintCriteria(database=args.database, pattern=args.pattern, cloud=args.cloud)
        blueprint = engine.recommend(criteria)
        result = {
            "criteria": criteria.to_dict(),
            "blueprint": blueprint.to_dict() if blueprint else None,
        }
    else:
        parser.print_help()
        return

    if args.json:
        print(json.dumps(result, indent=2))
    elif args.search:
        print(f"Found {len(result['blueprints'])} blueprint(s) for '{args.search}':")
        for b in result["blueprints"]:
            print(f"  {b['name']} ({b['origin'].upper()}) - {b['description']}")
    elif result["blueprint"]:
        b = result["blueprint"]
        print(f"Recommended: {b['name']}")
        print(f"  Database: {b['database']}  Pattern: {b['pattern']}  Cloud: {b['origin'].upper()}")
    else:
        print("No blueprint matches those requirements.")


if __name__ == "__main__":
    main()
