#!/usr/bin/env python3
# CUI // SP-CTI
"""Tests for blueprint_mcp.catalog.query_engine: recommend, search, equivalents."""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from blueprint_mcp.catalog import query_engine
from blueprint_mcp.catalog.blueprint_catalog import BlueprintCatalog
from blueprint_mcp.catalog.query_engine import QueryEngine
from blueprint_mcp.resilience.errors import ValidationError


@pytest.fixture
def engine(catalog):
    return QueryEngine(catalog)


class TestRecommend:
    """First-match recommendation."""

    def test_postgresql_sync(self, engine):
        """postgresql + sync recommends apigw-lambda-rds."""
        assert engine.recommend({"database": "postgresql", "pattern": "sync"}).name == "apigw-lambda-rds"

    def test_no_match_is_none(self, engine):
        """A database nobody uses yields None."""
        assert engine.recommend({"database": "nonexistent"}) is None

    def test_empty_criteria_returns_first_blueprint(self, engine, catalog):
        """No criteria recommends the first blueprint in load order."""
        assert engine.recommend({}) == catalog.get_all()[0]

    def test_first_match_is_tie_break(self):
        """With several matches, load order decides."""
        data = {"blueprints": [
            {"name": "apigw-second", "database": "DynamoDB", "pattern": "Sync"},
            {"name": "apigw-first", "database": "DynamoDB", "pattern": "Sync"},
        ]}
        engine = QueryEngine(BlueprintCatalog.from_dict(data))
        assert engine.recommend({"database": "dynamodb"}).name == "apigw-second"

    def test_recommend_combines_all_filters(self, engine):
        """cloud + database narrows across providers."""
        assert engine.recommend({"database": "postgresql", "cloud": "gcp"}).name == "appengine-cloudsql-strapi"


class TestSearch:
    """Keyword search."""

    def test_returns_every_match(self, engine):
        """search returns all keyword matches in order."""
        names = [b.name for b in engine.search("serverless")]
        assert names[0] == "apigw-lambda-dynamodb"
        assert "functions-postgresql" in names
        assert "appengine-cloudsql-strapi" in names

    def test_limit(self, engine):
        """limit caps the result count."""
        assert len(engine.search("serverless", limit=2)) == 2

    @pytest.mark.parametrize("keyword", ["", "   ", None])
    def test_blank_keyword_returns_nothing(self, engine, keyword):
        """Blank keywords match nothing rather than everything."""
        assert engine.search(keyword) == []

    def test_unknown_keyword_is_empty(self, engine):
        """No match is an empty list."""
        assert engine.search("mainframe") == []


class TestCrossCloud:
    """find_cross_cloud_equivalent."""

    def test_known_equivalent(self, engine):
        """Mavie's GCP blueprint maps to an AWS equivalent."""
        assert engine.find_cross_cloud_equivalent("appengine-cloudsql-strapi", "aws").name == "alb-ecs-fargate-rds"

    def test_unknown_blueprint_is_none(self, engine):
        """Unknown blueprints have no equivalent."""
        assert engine.find_cross_cloud_equivalent("does-not-exist", "aws") is None

    def test_invalid_cloud_raises(self, engine):
        """The target cloud is validated first."""
        with pytest.raises(ValidationError):
            engine.find_cross_cloud_equivalent("apigw-lambda-rds", "oracle")


class TestCli:
    """argparse entry point."""

    def test_search_json(self, monkeypatch, capsys):
        """--search --json prints the matching blueprints as JSON."""
        monkeypatch.setattr(sys, "argv", ["query_engine", "--search", "graphql", "--json"])
        query_engine.main()
        result = json.loads(capsys.readouterr().out)
        assert [b["name"] for b in result["blueprints"]] == ["appsync-lambda-aurora-cognito"]

    def test_recommend_text(self, monkeypatch, capsys):
        """--recommend prints the recommended blueprint."""
        monkeypatch.setattr(sys, "argv", [
            "query_engine", "--recommend", "--database", "postgresql", "--pattern", "sync",
        ])
        query_engine.main()
        assert "Recommended: apigw-lambda-rds" in capsys.readouterr().out

    def test_missing_catalog_exits(self, monkeypatch, tmp_path):
        """A missing catalog file exits with status 1."""
        monkeypatch.setattr(sys, "argv", [
            "query_engine", "--search", "x", "--catalog", str(tmp_path / "none.yaml"),
        ])
        with pytest.raises(SystemExit) as exc_info:
            query_engine.main()
        assert exc_info.value.code == 1
