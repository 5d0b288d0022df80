#!/usr/bin/env python3
# CUI // SP-CTI
"""Cloud provider classification by blueprint name prefix.

Rules are evaluated top to bottom; the first matching prefix wins:
    functions-                               -> azure
    appengine-                               -> gcp
    apigw- | alb- | eks- | amplify- | appsync- -> aws

Anything else (including the empty string) is unknown and yields None.
"""

from typing import Optional, Tuple

from blueprint_mcp.catalog.models import CloudProvider

PREFIX_RULES: Tuple[Tuple[Tuple[str, ...], CloudProvider], ...] = (
    (("functions-",), CloudProvider.AZURE),
    (("appengine-",), CloudProvider.GCP),
    (("apigw-", "alb-", "eks-", "amplify-", "appsync-"), CloudProvider.AWS),
)


def get_cloud_provider(blueprint_name: str) -> Optional[CloudProvider]:
    """Return the provider a blueprint name belongs to, or None if unknown.

    Total over all inputs: never raises.

    Examples:
        get_cloud_provider("apigw-lambda-rds")          -> CloudProvider.AWS
        get_cloud_provider("functions-postgresql")      -> CloudProvider.AZURE
        get_cloud_provider("appengine-cloudsql-strapi") -> CloudProvider.GCP
        get_cloud_provider("custom-service")            -> None
    """
    if not isinstance(blueprint_name, str) or not blueprint_name:
        return None
    for prefixes, provider in PREFIX_RULES:
        if blueprint_name.startswith(prefixes):
            return provider
    return None


classify = get_cloud_provider
