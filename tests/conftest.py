"""Shared fixtures: OpenAPI documents and pig projects on disk."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml


# ---------------------------------------------------------------------------
# Logging: setup_logging() replaces root handlers, put them back afterwards
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

@pytest.fixture
def write_doc(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Write ``data`` as YAML (or JSON for *.json) under tmp_path.

    Returns the resolved absolute path of the written file.
    """
    def _write(name: str, data: Any) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix == ".json":
            path.write_text(json.dumps(data, indent=2))
        else:
            path.write_text(yaml.safe_dump(data, sort_keys=False))
        return path.resolve()
    return _write


def make_openapi(**extra: Any) -> dict[str, Any]:
    """A minimal OpenAPI 3.0 root document."""
    doc: dict[str, Any] = {
        "openapi": "3.0.3",
        "info": {"title": "Petstore", "version": "1.0.0"},
        "paths": {},
    }
    doc.update(extra)
    return doc


@pytest.fixture
def openapi_doc() -> Callable[..., dict[str, Any]]:
    return make_openapi


# ---------------------------------------------------------------------------
# Projects: pig.yaml + api + templates
# ---------------------------------------------------------------------------

PETS_TEMPLATE = """\
# {{ info.title }} {{ info.version }}
{% for name, schema in components.schemas.items() %}
class {{ name | pascal_case }}:  # {{ schema["$name"] }} from {{ schema["$file"] | default("inline") }}
{% for prop in schema.properties | default({}) %}
    {{ prop | snake_case }}: {{ schema.properties[prop].type | default("object") }}
{% endfor %}
{% endfor %}
"""

ROUTES_TEMPLATE = """\
{% for path, item in paths.items() %}
{{ path }} -> {{ item.get.responses["200"].content["application/json"].schema["$name"] }}
{% endfor %}
"""


@pytest.fixture
def project(tmp_path: Path, write_doc) -> Path:
    """A one-entry project spread over two documents.

    Returns the path of pig.yaml.
    """
    write_doc("api/openapi.yaml", make_openapi(
        paths={
            "/pets": {
                "get": {
                    "responses": {
                        200: {
                            "description": "ok",
                            "content": {
                                "application/json": {
                                    "schema": {"$ref": "schemas.yaml#/Pets"},
                                },
                            },
                        },
                    },
                },
            },
        },
        components={
            "schemas": {
                "Pet": {"$ref": "schemas.yaml#/Pet"},
                "Pets": {"$ref": "schemas.yaml#/Pets"},
            },
        },
    ))
    write_doc("api/schemas.yaml", {
        "Pet": {
            "type": "object",
            "properties": {"petId": {"type": "integer"}, "name": {"type": "string"}},
        },
        "Pets": {"type": "array", "items": {"$ref": "#/Pet"}},
    })

    templates = tmp_path / "templates"
    (templates / "models").mkdir(parents=True)
    (templates / "models" / "pets.py.jinja").write_text(PETS_TEMPLATE)
    (templates / "routes.txt.jinja").write_text(ROUTES_TEMPLATE)
    (templates / "README.md").write_text("not a template\n")

    config = tmp_path / "pig.yaml"
    config.write_text(yaml.safe_dump([{"api": "api/openapi.yaml", "in": "templates", "out": "out"}]))
    return config
