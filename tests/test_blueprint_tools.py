#!/usr/bin/env python3
# CUI // SP-CTI
"""Tests for blueprint_mcp.mcp.blueprint_tools: the six tool handlers and their wide events."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from blueprint_mcp.mcp.blueprint_tools import MAX_INPUT_LENGTH, TOOL_DEFINITIONS, ToolResponse
from blueprint_mcp.resilience.errors import (
    BlueprintFileNotFoundError,
    BlueprintNotFoundError,
    InvalidUriError,
    ValidationError,
)


class TestSearchBlueprints:
    """search_blueprints."""

    def test_search_matches(self, tools, emitter):
        """A known keyword lists matches and records result_count."""
        response = tools.search_blueprints({"keyword": "serverless"})
        found = response.structured["blueprints"]
        assert found
        assert len(found) <= 10
        assert response.text.startswith(f"Found {len(found)} blueprint(s):")
        assert emitter.last["tool"] == "search_blueprints"
        assert emitter.last["status_code"] == 200
        assert emitter.last["result_count"] == len(found)

    def test_query_alias(self, tools):
        """'query' is accepted in place of 'keyword'."""
        response = tools.search_blueprints({"query": "Strapi"})
        assert response.structured["keyword"] == "strapi"
        assert [b["name"] for b in response.structured["blueprints"]] == ["appengine-cloudsql-strapi"]

    def test_no_match_is_404(self, tools, emitter):
        """No match returns suggestions and a not_found event."""
        response = tools.search_blueprints({"keyword": "mainframe"})
        assert response.structured["blueprints"] == []
        assert 'No blueprints found for "mainframe"' in response.text
        assert emitter.last["status_code"] == 404
        assert emitter.last["outcome"] == "not_found"

    def test_missing_keyword_raises(self, tools, emitter):
        """A missing keyword is a ValidationError recorded as a 500 event."""
        with pytest.raises(ValidationError, match="'keyword' is required"):
            tools.search_blueprints({})
        assert emitter.last["status_code"] == 500
        assert emitter.last["error"]["type"] == "ValidationError"

    def test_over_length_keyword_raises(self, tools, emitter):
        """Inputs over the length cap are rejected; the event input is truncated."""
        with pytest.raises(ValidationError, match="exceeds maximum length"):
            tools.search_blueprints({"keyword": "a" * (MAX_INPUT_LENGTH + 1)})
        recorded = emitter.last["input"]["keyword"]
        assert recorded.endswith("...")
        assert len(recorded) == 203

    def test_non_string_keyword_raises(self, tools):
        """Non-string inputs are rejected."""
        with pytest.raises(ValidationError, match="must be a string"):
            tools.search_blueprints({"keyword": 42})


class TestRecommendBlueprint:
    """recommend_blueprint."""

    def test_postgresql_sync(self, tools, emitter):
        """PostgreSQL + sync recommends apigw-lambda-rds with file URIs."""
        response = tools.recommend_blueprint({"database": "postgresql", "pattern": "sync"})
        assert response.text.startswith("# Recommended: apigw-lambda-rds")
        assert "cd terraform-infrastructure-blueprints/aws/apigw-lambda-rds/environments/dev" in response.text
        assert response.structured["files"] == {
            "readme": "blueprints://aws/apigw-lambda-rds/README.md",
            "main": "blueprints://aws/apigw-lambda-rds/environments/dev/main.tf",
        }
        assert emitter.last["status_code"] == 200
        assert emitter.last["recommended_blueprint"] == "apigw-lambda-rds"

    def test_cloud_filter(self, tools):
        """cloud=gcp recommends the GCP blueprint."""
        response = tools.recommend_blueprint({"cloud": "gcp"})
        assert response.structured["blueprint"]["name"] == "appengine-cloudsql-strapi"
        assert response.structured["files"]["readme"] == "blueprints://gcp/appengine-cloudsql-strapi/README.md"

    def test_containers_filter(self, tools):
        """containers=true with PostgreSQL picks the ECS blueprint."""
        response = tools.recommend_blueprint({"database": "postgresql", "containers": True})
        assert response.structured["blueprint"]["name"] == "alb-ecs-fargate-rds"

    def test_no_criteria_returns_first(self, tools, catalog):
        """No criteria recommends the first cataloged blueprint."""
        response = tools.recommend_blueprint({})
        assert response.structured["blueprint"]["name"] == catalog.get_all()[0].name

    def test_no_match_is_404(self, tools, emitter):
        """Unsatisfiable criteria give a 404 event and no blueprint."""
        response = tools.recommend_blueprint({"database": "mongodb"})
        assert response.structured["blueprint"] is None
        assert "No blueprint matches" in response.text
        assert emitter.last["status_code"] == 404
        assert "recommended_blueprint" not in emitter.last

    @pytest.mark.parametrize("args,message", [
        ({"pattern": "batch"}, "Invalid pattern"),
        ({"cloud": "oracle"}, "Invalid cloud provider"),
        ({"auth": "yes"}, "must be a boolean"),
    ])
    def test_invalid_inputs(self, tools, emitter, args, message):
        """Invalid enums and booleans raise ValidationError."""
        with pytest.raises(ValidationError, match=message):
            tools.recommend_blueprint(args)
        assert emitter.last["status_code"] == 500


class TestExtractPattern:
    """extract_pattern."""

    def test_database_capability(self, tools, emitter):
        """The database capability lists modules, steps, checklist and files."""
        response = tools.extract_pattern({"capability": "database"})
        assert response.text.startswith("# Extract: database")
        assert "**Blueprint**: `apigw-lambda-rds`" in response.text
        assert "1. Copy modules/data/" in response.text
        assert "✅ Encryption enabled" in response.text
        assert response.structured["files"] == [
            "blueprints://aws/apigw-lambda-rds/README.md",
            "blueprints://aws/apigw-lambda-rds/environments/dev/main.tf",
            "blueprints://aws/apigw-lambda-rds/modules/data/main.tf",
            "blueprints://aws/apigw-lambda-rds/modules/vpc/main.tf",
        ]
        assert "contents" not in response.structured
        assert emitter.last["result_count"] == 4

    def test_alias_resolves(self, tools):
        """Aliases such as 'cognito' resolve to their capability."""
        response = tools.extract_pattern({"capability": "cognito"})
        assert response.structured["blueprint"] == "apigw-lambda-dynamodb-cognito"

    def test_include_files(self, tools):
        """include_files inlines every file that exists on disk."""
        response = tools.extract_pattern({"capability": "database", "include_files": True})
        contents = response.structured["contents"]
        assert len(contents) == 4
        assert contents["blueprints://aws/apigw-lambda-rds/modules/vpc/main.tf"].startswith('resource "aws_vpc"')
        assert "## File Contents" in response.text
        assert "```hcl" in response.text

    def test_include_files_skips_missing(self, tools):
        """Files absent from the workspace are left out of contents."""
        response = tools.extract_pattern({"capability": "queue", "include_files": True})
        assert response.structured["contents"] == {}
        assert "*No files found*" in response.text

    def test_unknown_capability_is_404(self, tools, emitter):
        """An unknown capability lists the available ones."""
        response = tools.extract_pattern({"capability": "blockchain"})
        assert response.text.startswith('Unknown capability "blockchain". Available: database')
        assert "notifications" in response.structured["available"]
        assert emitter.last["status_code"] == 404

    def test_capability_required(self, tools):
        """capability is required."""
        with pytest.raises(ValidationError, match="'capability' is required"):
            tools.extract_pattern({"include_files": True})


class TestFindByProject:
    """find_by_project."""

    def test_mavie_to_aws(self, tools, emitter):
        """Mavie maps to the GCP blueprint with an AWS equivalent."""
        response = tools.find_by_project({"project_name": "Mavie", "target_cloud": "aws"})
        mapping = response.structured["mappings"][0]
        assert mapping["blueprint"] == "appengine-cloudsql-strapi"
        assert mapping["cloud"] == "gcp"
        assert mapping["equivalent"]["name"] == "alb-ecs-fargate-rds"
        assert "**AWS Equivalent**: `alb-ecs-fargate-rds`" in response.text
        assert emitter.last["status_code"] == 200

    def test_same_cloud_has_no_equivalent(self, tools):
        """A target equal to the project's cloud adds no equivalent."""
        response = tools.find_by_project({"project_name": "backlot", "target_cloud": "aws"})
        assert "equivalent" not in response.structured["mappings"][0]

    def test_unmapped_equivalent(self, tools):
        """A blueprint without a mapping for the target says so."""
        response = tools.find_by_project({"project_name": "Sproufiful", "target_cloud": "gcp"})
        assert response.structured["mappings"][0]["equivalent"] is None
        assert "No GCP equivalent is cataloged" in response.text

    def test_partial_name_matches_several(self, tools):
        """A partial name can match several projects, each under its own heading."""
        response = tools.find_by_project({"project_name": "quitbuddy"})
        assert len(response.structured["mappings"]) == 2
        assert "## rvo quitbuddy" in response.text

    def test_unknown_project_is_404(self, tools, emitter):
        """Unknown projects list the known ones."""
        response = tools.find_by_project({"project_name": "Unknown Corp"})
        assert response.text.startswith('Project "Unknown Corp" not found. Known projects: mavie')
        assert emitter.last["status_code"] == 404

    def test_invalid_target_cloud(self, tools):
        """target_cloud must be a known provider."""
        with pytest.raises(ValidationError, match="Invalid cloud provider"):
            tools.find_by_project({"project_name": "Mavie", "target_cloud": "ibm"})


class TestFetchBlueprintFile:
    """fetch_blueprint_file."""

    def test_fetch_by_uri(self, tools, emitter):
        """A URI fetch returns the file as a fenced markdown block."""
        uri = "blueprints://aws/apigw-lambda-rds/README.md"
        response = tools.fetch_blueprint_file({"uri": uri})
        assert response.text.startswith("# apigw-lambda-rds/README.md\n\n```markdown\n")
        assert response.structured == {
            "uri": uri,
            "content": "# apigw-lambda-rds\n\nServerless REST API with PostgreSQL.\n",
            "mimeType": "text/markdown",
        }
        assert emitter.last["status_code"] == 200

    def test_fetch_by_blueprint_and_path(self, tools):
        """blueprint + path builds the URI from the catalog provider."""
        response = tools.fetch_blueprint_file({"blueprint": "apigw-lambda-rds", "path": "modules/data/main.tf"})
        assert response.structured["uri"] == "blueprints://aws/apigw-lambda-rds/modules/data/main.tf"
        assert response.structured["mimeType"] == "text/x-hcl"
        assert "```hcl" in response.text

    def test_fetch_non_aws_blueprint(self, tools):
        """Non-AWS blueprints resolve under their own provider directory."""
        response = tools.fetch_blueprint_file({"blueprint": "functions-postgresql", "path": "README.md"})
        assert response.structured["uri"] == "blueprints://azure/functions-postgresql/README.md"

    def test_uri_or_pair_required(self, tools):
        """Either uri or both blueprint and path are required."""
        with pytest.raises(ValidationError, match="Provide either 'uri'"):
            tools.fetch_blueprint_file({"blueprint": "apigw-lambda-rds"})

    def test_invalid_uri(self, tools, emitter):
        """A malformed URI raises InvalidUriError after a 500 event."""
        with pytest.raises(InvalidUriError):
            tools.fetch_blueprint_file({"uri": "https://example.com/README.md"})
        assert emitter.last["status_code"] == 500
        assert emitter.last["error"]["code"] == "INVALID_URI"

    def test_unknown_blueprint(self, tools, emitter):
        """A well-formed name missing from the catalog is BlueprintNotFoundError."""
        with pytest.raises(BlueprintNotFoundError):
            tools.fetch_blueprint_file({"blueprint": "no-such-blueprint", "path": "README.md"})
        assert emitter.last["error"]["code"] == "BLUEPRINT_NOT_FOUND"

    def test_bad_blueprint_name(self, tools):
        """Names with invalid characters are rejected."""
        with pytest.raises(ValidationError, match="invalid characters"):
            tools.fetch_blueprint_file({"blueprint": "Bad_Name", "path": "README.md"})

    def test_missing_file(self, tools):
        """A valid path with no file raises BlueprintFileNotFoundError."""
        with pytest.raises(BlueprintFileNotFoundError):
            tools.fetch_blueprint_file({"uri": "blueprints://aws/apigw-lambda-rds/modules/queue/main.tf"})

    def test_traversal_rejected(self, tools, emitter):
        """Traversal in the path never reads outside the workspace."""
        with pytest.raises(ValidationError):
            tools.fetch_blueprint_file({"blueprint": "apigw-lambda-rds", "path": "../../../etc/passwd"})
        assert emitter.last["status_code"] == 500


class TestWorkflowGuidance:
    """get_workflow_guidance."""

    def test_known_task(self, tools, emitter):
        """A known task returns its playbook."""
        response = tools.get_workflow_guidance({"task": "migrate_cloud"})
        assert response.structured["task"] == "migrate_cloud"
        assert response.text.startswith("# Cross-Cloud Migration")
        assert emitter.last["status_code"] == 200

    def test_task_case_insensitive(self, tools):
        """Task names are case-insensitive."""
        assert tools.get_workflow_guidance({"task": "NEW_PROJECT"}).structured["task"] == "new_project"

    @pytest.mark.parametrize("args", [{}, {"task": "deploy"}, None])
    def test_fallback_to_general(self, tools, args):
        """Missing or unknown tasks fall back to general."""
        assert tools.get_workflow_guidance(args).structured["task"] == "general"


class TestToolDefinitions:
    """Registration metadata."""

    def test_six_tools_with_handlers(self, tools):
        """Every definition has a handler and an object schema."""
        handlers = tools.handlers()
        assert [d["name"] for d in TOOL_DEFINITIONS] == list(handlers)
        assert all(d["input_schema"]["type"] == "object" for d in TOOL_DEFINITIONS)

    def test_tool_response_content(self):
        """ToolResponse renders MCP text content plus structuredContent."""
        assert ToolResponse("hi", {"a": 1}).to_content() == {
            "content": [{"type": "text", "text": "hi"}],
            "structuredContent": {"a": 1},
        }

    def test_one_event_per_call(self, tools, emitter):
        """Each call emits exactly one event with a distinct request id."""
        tools.get_workflow_guidance({})
        tools.search_blueprints({"keyword": "eks"})
        assert len(emitter.events) == 2
        assert emitter.events[0]["request_id"] != emitter.events[1]["request_id"]
        assert emitter.events[0]["service"] == "infra-blueprints-test"

    def test_event_records_normalized_search_input(self, tools, emitter):
        """The event input holds the trimmed, lowercased keyword."""
        tools.search_blueprints({"query": "  SERVERLESS "})
        assert emitter.last["input"] == {"keyword": "serverless"}

    def test_event_records_normalized_recommend_input(self, tools, emitter):
        """Recommend criteria are recorded after case folding."""
        tools.recommend_blueprint({"database": "PostgreSQL", "pattern": "SYNC", "cloud": "AWS"})
        assert emitter.last["input"] == {"database": "postgresql", "pattern": "sync", "cloud": "aws"}

    def test_event_records_normalized_target_cloud(self, tools, emitter):
        """find_by_project records the parsed cloud value."""
        tools.find_by_project({"project_name": "Mavie", "target_cloud": "AWS"})
        assert emitter.last["input"] == {"project_name": "Mavie", "target_cloud": "aws"}

    @pytest.mark.parametrize("args", ["serverless", ["serverless"], 42])
    def test_non_object_arguments_emit_one_event(self, tools, emitter, args):
        """Non-object arguments raise ValidationError and still emit a failed event."""
        with pytest.raises(ValidationError, match="arguments must be an object"):
            tools.search_blueprints(args)
        assert len(emitter.events) == 1
        assert emitter.last["tool"] == "search_blueprints"
        assert emitter.last["status_code"] == 500
        assert emitter.last["error"]["type"] == "ValidationError"
