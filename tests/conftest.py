#!/usr/bin/env python3
# CUI // SP-CTI
"""Shared pytest fixtures for the blueprint MCP test suite.

Builds a throwaway workspace ({root}/{provider}/{blueprint}/...) under
tmp_path and wires the real catalog, retrieval service, tools and server
on top of it.
"""

import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path
BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from blueprint_mcp.catalog.blueprint_catalog import load_catalog  # noqa: E402
from blueprint_mcp.config import CATALOG_PATH, load_config  # noqa: E402
from blueprint_mcp.mcp.blueprint_server import create_server  # noqa: E402
from blueprint_mcp.mcp.blueprint_tools import BlueprintTools  # noqa: E402
from blueprint_mcp.observability.wide_events import CapturingEventEmitter  # noqa: E402
from blueprint_mcp.retrieval.file_service import BlueprintFileService  # noqa: E402

README_TEXT = "# apigw-lambda-rds\n\nServerless REST API with PostgreSQL.\n"
MAIN_TF_TEXT = 'module "data" {\n  source = "../../modules/data"\n}\n'

WORKSPACE_FILES = {
    "aws/apigw-lambda-rds/README.md": README_TEXT,
    "aws/apigw-lambda-rds/environments/dev/main.tf": MAIN_TF_TEXT,
    "aws/apigw-lambda-rds/modules/data/main.tf": 'resource "aws_db_instance" "main" {}\n',
    "aws/apigw-lambda-rds/modules/data/variables.tf": 'variable "db_name" {}\n',
    "aws/apigw-lambda-rds/modules/data/notes.txt": "not a relevant extension\n",
    "aws/apigw-lambda-rds/modules/vpc/main.tf": 'resource "aws_vpc" "main" {}\n',
    "aws/apigw-lambda-rds/modules/.terraform/cache.tf": "# hidden\n",
    "aws/apigw-lambda-dynamodb-cognito/modules/auth/main.tf": 'resource "aws_cognito_user_pool" "main" {}\n',
    "gcp/appengine-cloudsql-strapi/README.md": "# Strapi on App Engine\n",
    "azure/functions-postgresql/README.md": "# Azure Functions + PostgreSQL\n",
}


@pytest.fixture(scope="session")
def catalog():
    """The shipped catalog (args/blueprint_catalog.yaml)."""
    return load_catalog(CATALOG_PATH)


@pytest.fixture
def workspace(tmp_path):
    """Workspace root with a handful of blueprint files and an empty aws/test dir."""
    root = tmp_path / "workspace"
    for rel, text in WORKSPACE_FILES.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    (root / "aws" / "test").mkdir(parents=True)
    return root


@pytest.fixture
def file_service(workspace, catalog):
    return BlueprintFileService(workspace, catalog)


@pytest.fixture
def emitter():
    return CapturingEventEmitter(context={"service": "infra-blueprints-test"})


@pytest.fixture
def tools(catalog, file_service, emitter):
    return BlueprintTools(catalog, file_service, emitter)


@pytest.fixture
def server_config(workspace):
    return load_config(overrides={"workspace_root": str(workspace)}, environ={})


@pytest.fixture
def server(server_config, emitter):
    return create_server(server_config, emitter)
