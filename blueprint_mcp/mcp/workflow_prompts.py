#!/usr/bin/env python3
# CUI // SP-CTI
"""Workflow playbooks.

Single source of the playbook text served both by the get_workflow_guidance
tool and by the MCP prompts/list and prompts/get methods.
"""

from typing import Dict, List

WORKFLOW_TASKS = ("new_project", "add_capability", "migrate_cloud", "general")
DEFAULT_TASK = "general"

WORKFLOW_PROMPTS: List[Dict[str, str]] = [
    {
        "name": "new_project",
        "title": "New Project",
        "description": "Start a new project from a blueprint (recommend blueprint, fetch files, follow patterns).",
    },
    {
        "name": "add_capability",
        "title": "Add Capability",
        "description": "Add a capability to existing Terraform (extract pattern, fetch modules, copy and adapt).",
    },
    {
        "name": "migrate_cloud",
        "title": "Migrate Cloud",
        "description": "Cross-cloud migration (find by project, recommend for target, extract pattern).",
    },
    {
        "name": "general",
        "title": "General",
        "description": "List of available MCP tools and quick start.",
    },
]

_WORKFLOW_CONTENT = {
    "new_project": """# New Project

1. recommend_blueprint(database: "postgresql", pattern: "sync")
2. Review blueprint
3. fetch_blueprint_file() to get files
4. Follow patterns""",
    "add_capability": """# Add Capability

1. extract_pattern(capability: "database")
2. Review steps
3. fetch_blueprint_file() to get modules
4. Copy and adapt""",
    "migrate_cloud": """# Cross-Cloud Migration

1. find_by_project(project_name: "Mavie")
2. find_by_project(project_name: "Mavie", target_cloud: "aws")
3. recommend_blueprint() for target cloud
4. extract_pattern() from target""",
    "general": """# Available Tools

1. recommend_blueprint() - Get recommendations
2. extract_pattern() - Extract patterns
3. find_by_project() - Find by project
4. fetch_blueprint_file() - Get files
5. search_blueprints() - Search keywords
6. get_workflow_guidance() - This tool

**Quick Start**: recommend_blueprint(database: "postgresql")""",
}


def is_workflow_task(name) -> bool:
    return isinstance(name, str) and name in _WORKFLOW_CONTENT


def get_workflow_content(task) -> str:
    """Playbook text for a task; unknown tasks get the general playbook."""
    if is_workflow_task(task):
        return _WORKFLOW_CONTENT[task]
    return _WORKFLOW_CONTENT[DEFAULT_TASK]
