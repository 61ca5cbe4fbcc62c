"""Shared test fixtures for the harness test suite."""
from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import pytest
import yaml

from src.synthesis.example_generator import ExampleGenerator


_ASSET_DOCUMENT: dict[str, Any] = {
    "openapi": "3.1.0",
    "info": {
        "title": "Asset Management API",
        "version": "1.0.0",
        "description": "Tracks physical assets and their owners.",
    },
    "paths": {
        "/assets": {
            "get": {
                "operationId": "listAssets",
                "summary": "List assets",
                "description": "Returns a page of assets.",
                "tags": ["assets"],
                "parameters": [
                    {"name": "limit", "in": "query", "schema": {"type": "integer"}},
                ],
                "responses": {
                    "200": {
                        "description": "A page of assets",
                        "headers": {
                            "X-Total-Count": {
                                "required": True,
                                "schema": {"type": "integer", "minimum": 0},
                            },
                        },
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "array",
                                    "items": {"$ref": "#/components/schemas/Asset"},
                                },
                            },
                        },
                    },
                },
            },
            "post": {
                "operationId": "createAsset",
                "summary": "Create an asset",
                "description": "Registers a new asset.",
                "requestBody": {
                    "required": True,
                    "content": {
                        "application/json": {
                            "schema": {"$ref": "#/components/schemas/NewAsset"},
                        },
                    },
                },
                "responses": {
                    "201": {
                        "description": "Created",
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/Asset"},
                            },
                        },
                    },
                    "400": {"$ref": "#/components/responses/BadRequest"},
                },
            },
        },
        "/assets/{id}": {
            "parameters": [
                {
                    "name": "id",
                    "in": "path",
                    "required": True,
                    "schema": {"type": "string", "format": "uuid"},
                },
            ],
            "get": {
                "operationId": "getAsset",
                "summary": "Get an asset",
                "description": "Returns a single asset.",
                "responses": {
                    "200": {
                        "description": "The asset",
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/Asset"},
                            },
                        },
                    },
                    "404": {"description": "Not found"},
                },
            },
            "delete": {
                "operationId": "deleteAsset",
                "summary": "Delete an asset",
                "description": "Removes an asset.",
                "responses": {"204": {"description": "Deleted"}},
            },
        },
    },
    "components": {
        "schemas": {
            "Asset": {
                "type": "object",
                "required": ["id", "name", "status"],
                "properties": {
                    "id": {"type": "string", "format": "uuid"},
                    "name": {"type": "string", "minLength": 3, "maxLength": 40},
                    "status": {"$ref": "#/components/schemas/AssetStatus"},
                    "value": {"type": "number", "minimum": 0, "maximum": 5000},
                    "owner": {"$ref": "#/components/schemas/Owner"},
                    "tags": {"type": "array", "items": {"type": "string"}},
                },
            },
            "NewAsset": {
                "type": "object",
                "required": ["name"],
                "properties": {
                    "name": {"type": "string", "maxLength": 40},
                    "status": {"$ref": "#/components/schemas/AssetStatus"},
                },
            },
            "AssetStatus": {
                "type": "string",
                "enum": ["active", "retired", "maintenance"],
            },
            "Owner": {
                "type": "object",
                "required": ["email"],
                "properties": {
                    "email": {"type": "string", "format": "email"},
                    "since": {"type": "string", "format": "date"},
                },
            },
            "Error": {
                "type": "object",
                "required": ["code", "message"],
                "properties": {
                    "code": {"type": "integer", "minimum": 400, "maximum": 599},
                    "message": {"type": "string"},
                },
            },
        },
        "responses": {
            "BadRequest": {
                "description": "Invalid input",
                "content": {
                    "application/json": {
                        "schema": {"$ref": "#/components/schemas/Error"},
                    },
                },
            },
        },
    },
}


@pytest.fixture
def asset_document() -> dict[str, Any]:
    """Provide a fresh copy of a small but complete OpenAPI 3.1 document."""
    return copy.deepcopy(_ASSET_DOCUMENT)


@pytest.fixture
def generator(asset_document: dict[str, Any]) -> ExampleGenerator:
    """Provide an ExampleGenerator over the asset document with the default seed."""
    return ExampleGenerator(asset_document)


@pytest.fixture
def spec_dir(tmp_path: Path) -> Path:
    """Write a root spec plus path and schema fragment files; return the root file."""
    root = {
        "openapi": "3.1.0",
        "info": {"title": "Fragmented API", "version": "1.0.0", "description": "Split across files."},
        "paths": {
            "/health": {
                "get": {
                    "summary": "Health",
                    "description": "Liveness probe.",
                    "responses": {"200": {"description": "OK"}},
                },
            },
        },
    }
    (tmp_path / "openapi.yaml").write_text(yaml.safe_dump(root), encoding="utf-8")

    paths_dir = tmp_path / "paths"
    paths_dir.mkdir()
    (paths_dir / "owners.yaml").write_text(
        yaml.safe_dump({
            "get": {
                "operationId": "listOwners",
                "summary": "List owners",
                "description": "Returns every owner.",
                "responses": {
                    "200": {
                        "description": "Owners",
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "array",
                                    "items": {"$ref": "#/components/schemas/Owner"},
                                },
                            },
                        },
                    },
                },
            },
        }),
        encoding="utf-8",
    )
    (paths_dir / "README.md").write_text("not a fragment", encoding="utf-8")

    schemas_dir = tmp_path / "components" / "schemas"
    schemas_dir.mkdir(parents=True)
    (schemas_dir / "Owner.yml").write_text(
        yaml.safe_dump({
            "type": "object",
            "required": ["email"],
            "properties": {"email": {"type": "string", "format": "email"}},
        }),
        encoding="utf-8",
    )
    return tmp_path / "openapi.yaml"
