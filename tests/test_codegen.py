"""Tests for the render driver."""

from __future__ import annotations

import json

import pytest
import yaml

from pig.codegen import (
    build_environment,
    output_path,
    render_entry,
    render_template,
    run,
    run_entry,
    template_names,
)
from pig.config import load_config
from pig.errors import (
    ConfigError,
    ReferenceNotFoundError,
    RenderCancelled,
    RenderError,
)
from pig.exporter import JSON_DUMP, YAML_DUMP


class TestTemplates:
    """Template discovery and the Jinja2 environment."""

    def test_only_jinja_files_are_templates(self, project):
        names = template_names(project.parent / "templates")
        assert names == ["models/pets.py.jinja", "routes.txt.jinja"]

    def test_output_path_drops_suffix(self, tmp_path):
        assert output_path(tmp_path, "models/pets.py.jinja") == tmp_path / "models" / "pets.py"

    def test_undefined_variables_fail(self, tmp_path):
        (tmp_path / "t.jinja").write_text("{{ nope.missing }}")
        env = build_environment(tmp_path)
        with pytest.raises(RenderError) as excinfo:
            render_template(env, "t.jinja", {})
        assert excinfo.value.template == "t.jinja"
        assert "nope" in excinfo.value.message

    def test_syntax_error_surfaced(self, tmp_path):
        (tmp_path / "t.jinja").write_text("{% for %}")
        with pytest.raises(RenderError):
            render_template(build_environment(tmp_path), "t.jinja", {})

    def test_runtime_error_in_template_becomes_render_error(self, tmp_path):
        (tmp_path / "t.jinja").write_text("{{ values | sort | join(',') }}")
        with pytest.raises(RenderError) as excinfo:
            render_template(build_environment(tmp_path), "t.jinja", {"values": [1, "a"]})
        assert excinfo.value.template == "t.jinja"
        assert excinfo.value.message.startswith("TypeError: ")
        assert isinstance(excinfo.value.__cause__, TypeError)

    def test_naming_filters_available(self, tmp_path):
        (tmp_path / "t.jinja").write_text("{{ name | snake_case }} {{ name | pascal_case }}")
        env = build_environment(tmp_path)
        assert render_template(env, "t.jinja", {"name": "petStore"}) == "pet_store PetStore"

    def test_reserved_keys_reachable_from_templates(self, tmp_path):
        (tmp_path / "t.jinja").write_text('{{ pet["$name"] }}:{{ pet["$keys"] | join(".") }}')
        context = {"pet": {"$name": "Pet", "$keys": ["components", "schemas", "Pet"]}}
        assert render_template(build_environment(tmp_path), "t.jinja", context) == (
            "Pet:components.schemas.Pet"
        )


class TestRenderEntry:
    """One full pass for a config entry."""

    def test_renders_mirrored_outputs(self, project):
        entry = load_config(project).entries[0]
        written = render_entry(entry)

        out = project.parent.resolve() / "out"
        assert {p.relative_to(out).as_posix() for p in written} == {
            JSON_DUMP, YAML_DUMP, "models/pets.py", "routes.txt",
        }
        assert not (out / "README.md").exists()

        pets = (out / "models" / "pets.py").read_text()
        assert pets.startswith("# Petstore 1.0.0\n")
        assert "class Pet:  # Pet from " in pets
        assert "    pet_id: integer\n" in pets
        assert "class Pets:  # Pets from " in pets
        assert (out / "routes.txt").read_text() == "/pets -> Pets\n"

    def test_dumps_hold_the_context(self, project):
        entry = load_config(project).entries[0]
        render_entry(entry)
        out = project.parent.resolve() / "out"
        context = json.loads((out / JSON_DUMP).read_text())
        assert yaml.safe_load((out / YAML_DUMP).read_text()) == context
        assert context["components"]["schemas"]["Pet"]["$name"] == "Pet"

    def test_creates_output_directory(self, project):
        entry = load_config(project).entries[0]
        assert not entry.output.exists()
        render_entry(entry)
        assert entry.output.is_dir()

    def test_cancelled_pass_writes_nothing(self, project):
        entry = load_config(project).entries[0]
        with pytest.raises(RenderCancelled):
            render_entry(entry, cancelled=lambda: True)
        assert list(entry.output.iterdir()) == []

    def test_cancelled_midway_stops_before_next_write(self, project):
        entry = load_config(project).entries[0]
        checks = []

        def cancelled():
            checks.append(1)
            return len(checks) > 2

        with pytest.raises(RenderCancelled):
            render_entry(entry, cancelled=cancelled)
        written = sorted(p.name for p in entry.output.rglob("*") if p.is_file())
        assert written == sorted([JSON_DUMP, YAML_DUMP, "pets.py"])


class TestRunEntry:
    """Outcomes record failures instead of raising."""

    def test_success(self, project):
        outcome = run_entry(load_config(project).entries[0])
        assert outcome.ok
        assert {p.name for p in outcome.dependencies} == {"openapi.yaml", "schemas.yaml"}

    def test_failure_keeps_loaded_dependencies(self, project):
        schemas = project.parent / "api" / "schemas.yaml"
        schemas.write_text(yaml.safe_dump({"Pet": {"type": "object"}}))
        outcome = run_entry(load_config(project).entries[0])
        assert isinstance(outcome.error, ReferenceNotFoundError)
        assert outcome.error.keys == ("Pets",)
        assert schemas.resolve() in outcome.dependencies
        assert schemas.resolve() in outcome.observed

    def test_invalid_entry(self, project):
        config = load_config(project)
        (project.parent / "api" / "openapi.yaml").unlink()
        outcome = run_entry(config.entries[0])
        assert isinstance(outcome.error, ConfigError)
        assert outcome.written == []


class TestRun:
    """Entries are rendered independently."""

    def test_failure_does_not_block_other_entries(self, project, write_doc, openapi_doc):
        write_doc("broken/openapi.yaml", openapi_doc(components={"x": {"$ref": "#/components/x"}}))
        project.write_text(yaml.safe_dump([
            {"api": "broken/openapi.yaml", "in": "templates", "out": "out-broken"},
            {"api": "api/openapi.yaml", "in": "templates", "out": "out"},
        ]))

        outcomes = run(load_config(project))

        assert [o.ok for o in outcomes] == [False, True]
        assert "Circular reference" in str(outcomes[0].error)
        assert (project.parent / "out" / "routes.txt").exists()
        assert not (project.parent / "out-broken" / "routes.txt").exists()

    def test_template_exception_does_not_block_other_entries(self, project):
        bad_templates = project.parent / "bad-templates"
        bad_templates.mkdir()
        (bad_templates / "ratio.txt.jinja").write_text("{{ 1 / 0 }}\n")
        project.write_text(yaml.safe_dump([
            {"api": "api/openapi.yaml", "in": "bad-templates", "out": "out-bad"},
            {"api": "api/openapi.yaml", "in": "templates", "out": "out"},
        ]))

        outcomes = run(load_config(project))

        assert [o.ok for o in outcomes] == [False, True]
        assert isinstance(outcomes[0].error, RenderError)
        assert outcomes[0].error.template == "ratio.txt.jinja"
        assert "ZeroDivisionError" in str(outcomes[0].error)
        assert not (project.parent / "out-bad" / "ratio.txt").exists()
        assert (project.parent / "out" / "routes.txt").read_text() == "/pets -> Pets\n"
