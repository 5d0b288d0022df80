#!/usr/bin/env python3
# CUI // SP-CTI
"""Blueprint MCP tool handlers.

Tools:
    search_blueprints      - Keyword search over the catalog
    recommend_blueprint    - First blueprint matching database/pattern/cloud/auth/containers
    extract_pattern        - How to lift one capability out of a blueprint
    find_by_project        - Blueprint a past project used, plus cross-cloud equivalent
    fetch_blueprint_file   - File contents by blueprints:// URI or blueprint + path
    get_workflow_guidance  - Fixed playbook for a task

Every handler validates its input, calls one core component, and returns a
ToolResponse (markdown text plus a structured payload). Each call emits one
wide event: 200 on success, 404 when the query legitimately found nothing,
500 when an error was raised. Errors are re-raised after the event is emitted.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from blueprint_mcp.catalog.blueprint_catalog import (
    BLUEPRINT_NAME_RE,
    BlueprintCatalog,
    BlueprintCriteria,
)
from blueprint_mcp.catalog.models import Blueprint, CloudProvider, Pattern
from blueprint_mcp.catalog.query_engine import QueryEngine
from blueprint_mcp.mcp.workflow_prompts import WORKFLOW_TASKS, get_workflow_content, is_workflow_task
from blueprint_mcp.observability.wide_events import EventEmitter, NullEventEmitter, WideEvent
from blueprint_mcp.resilience.errors import (
    BlueprintFileNotFoundError,
    BlueprintNotFoundError,
    ValidationError,
)
from blueprint_mcp.retrieval.file_service import BlueprintFileService, parse_blueprint_uri

logger = logging.getLogger("blueprints.tools")

MAX_INPUT_LENGTH = 1000
SEARCH_LIMIT = 10
EVENT_INPUT_PREVIEW = 200
REPOSITORY_URL = "https://github.com/berTrindade/terraform-infrastructure-blueprints.git"
REPOSITORY_DIR = "terraform-infrastructure-blueprints"
COMMON_PATHS = ("README.md", "environments/dev/main.tf", "modules/data/main.tf", "modules/vpc/main.tf")


@dataclass
class ToolResponse:
    """Tool result: markdown text for the agent plus a machine-readable payload."""

    text: str
    structured: Dict[str, Any] = field(default_factory=dict)

    def to_content(self) -> dict:
        return {
            "content": [{"type": "text", "text": self.text}],
            "structuredContent": self.structured,
        }


# ---------------------------------------------------------------------------
# Input helpers
# ---------------------------------------------------------------------------

def _check_length(key: str, value: str) -> None:
    if len(value) > MAX_INPUT_LENGTH:
        raise ValidationError(
            f"'{key}' exceeds maximum length of {MAX_INPUT_LENGTH} characters"
        )


def _optional_str(args: dict, key: str) -> Optional[str]:
    value = args.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"'{key}' must be a string")
    _check_length(key, value)
    value = value.strip()
    return value or None


def _require_str(args: dict, key: str, *aliases: str) -> str:
    for name in (key,) + aliases:
        value = _optional_str(args, name)
        if value is not None:
            return value
    raise ValidationError(f"'{key}' is required")


def _optional_bool(args: dict, key: str) -> Optional[bool]:
    value = args.get(key)
    if value is None or isinstance(value, bool):
        return value
    raise ValidationError(f"'{key}' must be a boolean")


def _optional_cloud(args: dict, key: str) -> Optional[CloudProvider]:
    value = _optional_str(args, key)
    if value is None:
        return None
    provider = CloudProvider.parse(value)
    if provider is None:
        raise ValidationError(f"Invalid cloud provider: {value}. Must be aws, azure, or gcp")
    return provider


def _event_input(args: dict) -> dict:
    """Tool input as recorded on the wide event; long strings are cut short."""
    recorded = {}
    for key, value in args.items():
        if isinstance(value, str) and len(value) > EVENT_INPUT_PREVIEW:
            value = value[:EVENT_INPUT_PREVIEW] + "..."
        recorded[key] = value
    return recorded


def _code_language(mime_type: str) -> str:
    if "hcl" in mime_type:
        return "hcl"
    if "markdown" in mime_type:
        return "markdown"
    return "text"


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

class BlueprintTools:
    """The six blueprint tools bound to one catalog and workspace."""

    def __init__(
        self,
        catalog: BlueprintCatalog,
        file_service: BlueprintFileService,
        emitter: Optional[EventEmitter] = None,
    ):
        self._catalog = catalog
        self._engine = QueryEngine(catalog)
        self._files = file_service
        self._emitter = emitter or NullEventEmitter()

    def handlers(self) -> Dict[str, Callable[[dict], ToolResponse]]:
        return {
            "search_blueprints": self.search_blueprints,
            "recommend_blueprint": self.recommend_blueprint,
            "extract_pattern": self.extract_pattern,
            "find_by_project": self.find_by_project,
            "fetch_blueprint_file": self.fetch_blueprint_file,
            "get_workflow_guidance": self.get_workflow_guidance,
        }

    def _run(self, tool: str, args: Any,
             body: Callable[[dict, WideEvent], ToolResponse]) -> ToolResponse:
        """Run one handler body inside its wide event.

        The event records the raw arguments until the body replaces them with
        its validated values. The body calls event.finish(); a raised error
        finishes the event as a 500 and propagates unchanged.
        """
        event = WideEvent.start(tool)
        try:
            if args is None:
                args = {}
            if not isinstance(args, Mapping):
                raise ValidationError("arguments must be an object")
            args = dict(args)
            event.record_input(_event_input(args))
            response = body(args, event)
        except Exception as exc:
            logger.debug("%s failed: %s", tool, exc)
            self._emitter.emit(event.fail(exc))
            raise
        self._emitter.emit(event)
        return response

    # -- search_blueprints ------------------------------------------------

    def search_blueprints(self, args: Optional[dict] = None) -> ToolResponse:
        return self._run("search_blueprints", args, self._search)

    def _search(self, args: dict, event: WideEvent) -> ToolResponse:
        keyword = _require_str(args, "keyword", "query").lower()
        event.record_input(_event_input({"keyword": keyword}))
        matches = self._engine.search(keyword, limit=SEARCH_LIMIT)

        if not matches:
            event.finish(404, result_count=0)
            return ToolResponse(
                f'No blueprints found for "{keyword}". Try: \'serverless\', \'postgresql\', '
                f"'queue', 'containers', or use recommend_blueprint().",
                {"keyword": keyword, "blueprints": []},
            )

        lines = [f"- **{b.name}** ({b.origin.value.upper()}) - {b.description}" for b in matches]
        event.finish(200, result_count=len(matches))
        return ToolResponse(
            f"Found {len(matches)} blueprint(s):\n\n" + "\n".join(lines)
            + "\n\nUse recommend_blueprint() for detailed recommendations.",
            {"keyword": keyword, "blueprints": [b.to_dict() for b in matches]},
        )

    # -- recommend_blueprint ----------------------------------------------

    def recommend_blueprint(self, args: Optional[dict] = None) -> ToolResponse:
        return self._run("recommend_blueprint", args, self._recommend)

    def _recommend(self, args: dict, event: WideEvent) -> ToolResponse:
        database = _optional_str(args, "database")
        pattern = _optional_str(args, "pattern")
        if pattern is not None and Pattern.parse(pattern) is None:
            raise ValidationError(f"Invalid pattern: {pattern}. Must be sync, async, or n/a")
        cloud = _optional_cloud(args, "cloud")

        criteria = BlueprintCriteria(
            database=database.lower() if database else None,
            pattern=pattern.lower() if pattern else None,
            cloud=cloud.value if cloud else None,
            auth=_optional_bool(args, "auth"),
            containers=_optional_bool(args, "containers"),
        )
        event.record_input(_event_input(criteria.to_dict()))
        blueprint = self._engine.recommend(criteria)

        if blueprint is None:
            event.finish(404, result_count=0)
            return ToolResponse(
                "No blueprint matches your requirements. Try recommend_blueprint() with "
                "fewer filters, or use search_blueprints() to browse.",
                {"criteria": criteria.to_dict(), "blueprint": None},
            )

        readme = self._files.build_uri(blueprint.name, "README.md")
        main_tf = self._files.build_uri(blueprint.name, "environments/dev/main.tf")
        provider = blueprint.origin.value
        text = f"""# Recommended: {blueprint.name}

{blueprint.description}

**Database**: {blueprint.database} | **Pattern**: {blueprint.pattern.value} | **Cloud**: {provider.upper()}

## Quick Start

```bash
git clone {REPOSITORY_URL}
cd {REPOSITORY_DIR}/{provider}/{blueprint.name}/environments/dev
terraform init && terraform apply
```

## Files

- README: `{readme}`
- Main: `{main_tf}`

Use fetch_blueprint_file() to get file contents, or extract_pattern() to add capabilities."""

        event.finish(200, recommended_blueprint=blueprint.name, result_count=1)
        return ToolResponse(text, {
            "criteria": criteria.to_dict(),
            "blueprint": blueprint.to_dict(),
            "files": {"readme": readme, "main": main_tf},
        })

    # -- extract_pattern --------------------------------------------------

    def extract_pattern(self, args: Optional[dict] = None) -> ToolResponse:
        return self._run("extract_pattern", args, self._extract)

    def _extract(self, args: dict, event: WideEvent) -> ToolResponse:
        capability = _require_str(args, "capability")
        include_files = _optional_bool(args, "include_files") or False
        event.record_input(_event_input({"capability": capability.lower(), "include_files": include_files}))
        pattern = self._catalog.get_extraction_pattern(capability.lower())

        if pattern is None:
            available = self._catalog.capabilities()
            event.finish(404, result_count=0)
            return ToolResponse(
                f'Unknown capability "{capability}". Available: {", ".join(available)}',
                {"capability": capability, "available": available},
            )

        blueprint_name = pattern.blueprint_ref
        files = [
            self._files.build_uri(blueprint_name, "README.md"),
            self._files.build_uri(blueprint_name, "environments/dev/main.tf"),
        ]
        module_files = [
            self._files.build_uri(blueprint_name, f"{m.rstrip('/')}/main.tf")
            for m in pattern.modules
        ]
        files.extend(module_files)

        sections = [
            f"# Extract: {capability}",
            f"**Blueprint**: `{blueprint_name}`",
            pattern.description,
            "## Modules\n" + "\n".join(f"- {m}" for m in pattern.modules),
            "## Steps\n" + "\n".join(
                f"{i}. {step}" for i, step in enumerate(pattern.integration_steps, 1)
            ),
        ]
        if pattern.checklist:
            sections.append("## Checklist\n" + "\n".join(f"✅ {c}" for c in pattern.checklist))
        sections.append(
            "## Files\n"
            f"- README: `{files[0]}`\n"
            f"- Main: `{files[1]}`"
            + "".join(f"\n- Module: `{f}`" for f in module_files)
        )

        structured = pattern.to_dict()
        structured["files"] = files
        if include_files:
            contents = self._read_many(files)
            structured["contents"] = contents
            rendered = []
            for uri, content in contents.items():
                name = uri.rsplit("/", 1)[-1]
                lang = "hcl" if name.endswith(".tf") else "markdown"
                rendered.append(f"### {name}\n\n```{lang}\n{content}\n```")
            sections.append("## File Contents\n\n" + ("\n\n".join(rendered) or "*No files found*"))

        sections.append("Use fetch_blueprint_file() to get specific files.")
        event.finish(200, result_count=len(files))
        return ToolResponse("\n\n".join(sections), structured)

    def _read_many(self, uris: List[str]) -> Dict[str, str]:
        contents = {}
        for uri in uris:
            try:
                contents[uri] = self._files.read_blueprint_file(uri).content
            except BlueprintFileNotFoundError:
                logger.debug("Skipping missing file %s", uri)
        return contents

    # -- find_by_project --------------------------------------------------

    def find_by_project(self, args: Optional[dict] = None) -> ToolResponse:
        return self._run("find_by_project", args, self._find_project)

    def _find_project(self, args: dict, event: WideEvent) -> ToolResponse:
        project_name = _require_str(args, "project_name")
        target = _optional_cloud(args, "target_cloud")
        event.record_input(_event_input({
            "project_name": project_name,
            "target_cloud": target.value if target else None,
        }))
        mappings = self._catalog.get_project_mapping(project_name)

        if not mappings:
            known = self._catalog.project_names()
            event.finish(404, result_count=0)
            return ToolResponse(
                f'Project "{project_name}" not found. Known projects: {", ".join(known)}',
                {"project": project_name, "mappings": []},
            )

        sections = [f"# {project_name}"]
        results = []
        for mapping in mappings:
            blueprint = self._catalog.get_by_name(mapping.blueprint)
            text = f"## {mapping.project_name}\n\n" if len(mappings) > 1 else ""
            text += (
                f"**Blueprint**: `{blueprint.name}` ({mapping.cloud.value.upper()})\n"
                f"**Description**: {mapping.description}\n\n"
                f"**Details**: Database: {blueprint.database} | Pattern: {blueprint.pattern.value}\n"
            )
            entry = mapping.to_dict()
            entry["details"] = blueprint.to_dict()

            if target is not None and target != mapping.cloud:
                equivalent = self._engine.find_cross_cloud_equivalent(blueprint.name, target.value)
                entry["equivalent"] = equivalent.to_dict() if equivalent else None
                text += self._equivalent_text(target, equivalent)
            sections.append(text)
            results.append(entry)

        event.finish(200, result_count=len(mappings))
        return ToolResponse("\n\n".join(sections), {"project": project_name, "mappings": results})

    @staticmethod
    def _equivalent_text(target: CloudProvider, equivalent: Optional[Blueprint]) -> str:
        if equivalent is None:
            return f"\nNo {target.value.upper()} equivalent is cataloged for this blueprint.\n"
        return (
            f"\n**{target.value.upper()} Equivalent**: `{equivalent.name}`\n"
            f"```bash\ncd {REPOSITORY_DIR}/{target.value}/{equivalent.name}/environments/dev\n"
            f"terraform init && terraform apply\n```"
        )

    # -- fetch_blueprint_file ---------------------------------------------

    def fetch_blueprint_file(self, args: Optional[dict] = None) -> ToolResponse:
        return self._run("fetch_blueprint_file", args, self._fetch)

    def _fetch(self, args: dict, event: WideEvent) -> ToolResponse:
        uri = _optional_str(args, "uri")
        blueprint_name = path = None
        if uri is None:
            blueprint_name = _optional_str(args, "blueprint")
            path = _optional_str(args, "path")
            if blueprint_name is None or path is None:
                raise ValidationError("Provide either 'uri' or both 'blueprint' and 'path'")
            if not BLUEPRINT_NAME_RE.match(blueprint_name):
                raise ValidationError(
                    "Blueprint name contains invalid characters. "
                    "Only lowercase letters, numbers, and hyphens allowed"
                )
            if self._catalog.get_by_name(blueprint_name) is None:
                raise BlueprintNotFoundError(blueprint_name)
            uri = self._files.build_uri(blueprint_name, path)

        event.record_input(_event_input({"uri": uri, "blueprint": blueprint_name, "path": path}))
        parsed = parse_blueprint_uri(uri)
        file_content = self._files.read_blueprint_file(uri)
        lang = _code_language(file_content.mime_type)

        event.finish(200, result_count=1)
        return ToolResponse(
            f"# {parsed.blueprint_name}/{parsed.relative_path}\n\n"
            f"```{lang}\n{file_content.content}\n```",
            {"uri": uri, **file_content.to_dict()},
        )

    # -- get_workflow_guidance --------------------------------------------

    def get_workflow_guidance(self, args: Optional[dict] = None) -> ToolResponse:
        return self._run("get_workflow_guidance", args, self._workflow)

    def _workflow(self, args: dict, event: WideEvent) -> ToolResponse:
        task = args.get("task")
        if isinstance(task, str):
            _check_length("task", task)
            task = task.strip().lower()
        resolved = task if is_workflow_task(task) else "general"
        event.record_input({"task": resolved})

        event.finish(200)
        return ToolResponse(
            get_workflow_content(resolved),
            {"task": resolved, "content": get_workflow_content(resolved)},
        )


# ---------------------------------------------------------------------------
# Tool definitions (name, description, JSON Schema)
# ---------------------------------------------------------------------------

TOOL_DEFINITIONS = [
    {
        "name": "search_blueprints",
        "description": "Search for blueprints by keywords. Example: search_blueprints(keyword: 'serverless')",
        "input_schema": {
            "type": "object",
            "properties": {
                "keyword": {"type": "string", "description": "Search keyword (matches name, description, use case)"},
                "query": {"type": "string", "description": "Alias of keyword"},
            },
        },
    },
    {
        "name": "recommend_blueprint",
        "description": "Get a blueprint recommendation based on requirements. Example: recommend_blueprint(database: 'postgresql', pattern: 'sync')",
        "input_schema": {
            "type": "object",
            "properties": {
                "database": {"type": "string", "description": "Database: dynamodb, postgresql, aurora, none"},
                "pattern": {"type": "string", "description": "Pattern: sync, async, n/a"},
                "cloud": {"type": "string", "enum": [p.value for p in CloudProvider], "description": "Cloud: aws, azure, gcp"},
                "auth": {"type": "boolean", "description": "Need authentication?"},
                "containers": {"type": "boolean", "description": "Need containers (ECS/EKS)?"},
            },
        },
    },
    {
        "name": "extract_pattern",
        "description": "Get guidance on extracting a capability from blueprints. Example: extract_pattern(capability: 'database')",
        "input_schema": {
            "type": "object",
            "properties": {
                "capability": {"type": "string", "description": "Capability: database, queue, auth, events, ai, notifications"},
                "include_files": {"type": "boolean", "description": "Include file contents?", "default": False},
            },
            "required": ["capability"],
        },
    },
    {
        "name": "find_by_project",
        "description": "Find the blueprint used by a project. Example: find_by_project(project_name: 'Mavie', target_cloud: 'aws')",
        "input_schema": {
            "type": "object",
            "properties": {
                "project_name": {"type": "string", "description": "Project name: Mavie, HM Impuls, SuprDOG, etc."},
                "target_cloud": {"type": "string", "enum": [p.value for p in CloudProvider], "description": "Get cross-cloud equivalent: aws, azure, gcp"},
            },
            "required": ["project_name"],
        },
    },
    {
        "name": "fetch_blueprint_file",
        "description": "Fetch a file from a blueprint. Example: fetch_blueprint_file(blueprint: 'apigw-lambda-rds', path: 'modules/data/main.tf')",
        "input_schema": {
            "type": "object",
            "properties": {
                "uri": {"type": "string", "description": "blueprints://{provider}/{blueprint}/{path}"},
                "blueprint": {"type": "string", "description": "Blueprint name (e.g. 'apigw-lambda-rds')"},
                "path": {"type": "string", "description": "Path relative to the blueprint root. Common: " + ", ".join(COMMON_PATHS)},
            },
        },
    },
    {
        "name": "get_workflow_guidance",
        "description": "Get workflow guidance. Example: get_workflow_guidance(task: 'new_project')",
        "input_schema": {
            "type": "object",
            "properties": {
                "task": {"type": "string", "enum": list(WORKFLOW_TASKS), "description": "Task: new_project, add_capability, migrate_cloud, general"},
            },
        },
    },
]
