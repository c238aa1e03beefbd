"""Unit tests for prompt templates."""

import json
from pathlib import Path

import pytest

from cchooks.templates import BUILTIN_TEMPLATES, PromptTemplates, render


@pytest.mark.unit
class TestRender:
    def test_substitutes_values(self):
        rendered = render(
            "Focus: {{ review_types }} / strict={{strict}} / n={{count}}",
            {"review_types": ["security", "quality"], "strict": True, "count": 3},
        )

        assert rendered == "Focus: security, quality / strict=true / n=3"

    def test_unknown_placeholders_are_kept(self):
        assert render("Hello {{name}}", {}) == "Hello {{name}}"


@pytest.mark.unit
class TestPromptTemplates:
    """Test project overrides and the built-in fallback."""

    async def test_falls_back_to_builtin(self, project_root: Path):
        templates = PromptTemplates(project_root)

        assert await templates.load("code-review") == BUILTIN_TEMPLATES["code-review"]

    async def test_ensure_template_writes_once(self, project_root: Path):
        templates = PromptTemplates(project_root)

        assert await templates.ensure_template("push-audit") is True
        assert await templates.ensure_template("push-audit") is False

        data = json.loads(templates.template_path("push-audit").read_text())
        assert data == {"name": "push-audit", "template": BUILTIN_TEMPLATES["push-audit"]}

    async def test_user_edits_are_used(self, project_root: Path):
        templates = PromptTemplates(project_root)
        path = templates.template_path("commit-message")
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"template": "Write for {{branch}}"}))

        assert await templates.render("commit-message", branch="main") == "Write for main"

    async def test_broken_override_falls_back(self, project_root: Path):
        templates = PromptTemplates(project_root)
        path = templates.template_path("code-review")
        path.parent.mkdir(parents=True)
        path.write_text("{broken")

        assert await templates.load("code-review") == BUILTIN_TEMPLATES["code-review"]
