"""Tests for the Jinja2 TemplateRenderer."""

from __future__ import annotations

import pytest
from jinja2 import UndefinedError

from pagesmith.generators.templates import TemplateRenderer

pytestmark = pytest.mark.unit


def test_lists_package_templates(renderer):
    templates = renderer.list_templates()
    assert "frontend/page.tsx.j2" in templates
    assert "backend/service.ts.j2" in templates
    assert "database/schema.prisma.j2" in templates
    assert renderer.list_templates("frontend") == [t for t in templates if t.startswith("frontend/")]
    assert renderer.list_templates("missing") == []


def test_missing_context_raises(renderer):
    with pytest.raises(UndefinedError):
        renderer.render("frontend/page.tsx.j2", {"component": "HomePage"})


def test_custom_template_dir_and_json_filter(tmp_path):
    (tmp_path / "t.j2").write_text("{{ path | tojson_str }} {{ name | tojson_str }}", encoding="utf-8")
    out = TemplateRenderer(tmp_path).render("t.j2", {"name": 'say "hi"', "path": "/a"})
    assert out == '"/a" "say \\"hi\\""'
