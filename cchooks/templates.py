"""Prompt templates with project-level overrides.

Templates live in ``.claude/templates/<name>.json`` as ``{"template": "..."}``
and use ``{{variable}}`` placeholders. A missing or unreadable file falls back
to the built-in template of the same name.
"""

import json
import re
from pathlib import Path
from typing import Any

import aiofiles

from cchooks.config.paths import ProjectPaths
from cchooks.core.logging import get_logger


logger = get_logger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")

BUILTIN_TEMPLATES: dict[str, str] = {
    "code-review": """You are an expert code reviewer. Review the following staged changes.

Focus on: {{review_types}}
Strictness: {{strictness}}

Staged files:
{{files}}

Diff:
```diff
{{diff}}
```

Respond ONLY with JSON of the form:
{"summary": "one paragraph", "issues": [{"severity": "critical|high|medium|low", "description": "...", "file": "path", "line": 0, "suggestion": "..."}]}""",
    "commit-message": """You are an expert developer writing a git commit message.

Style: {{message_style}}
Conventional Commits: {{conventional_commits}}
Include scope: {{include_scope}}
Mark breaking changes: {{include_breaking}}
Branch: {{branch}}

Staged files:
{{files}}

Diff:
```diff
{{diff}}
```

Return ONLY the commit message with no explanation or markdown formatting.""",
    "commit-message-validation": """You are an expert developer validating a git commit message.

The commit message is:
```
{{message}}
```

Rules:
- Subject should be at most {{max_subject_length}} characters
- Subject should be in imperative mood and start with a capital letter
- Subject should not end with a period
- Body lines should be at most {{max_body_length}} characters
- Conventional Commits format required: {{conventional_commits}}
- Check spelling: {{check_spelling}}
- Check grammar: {{check_grammar}}

Respond ONLY with JSON of the form:
{"valid": true, "issues": [{"type": "error|warning", "message": "..."}], "suggestions": ["..."]}""",
    "push-audit": """You are a security auditor reviewing commits before they are pushed.

Audit for: {{audit_types}}
Branch: {{branch}}

Commits:
{{commits}}

Diff:
```diff
{{diff}}
```

Respond ONLY with JSON of the form:
{"summary": "one paragraph", "issues": [{"severity": "critical|high|medium|low", "description": "...", "file": "path", "line": 0}]}""",
}

DEFAULT_TEMPLATE = "{{prompt}}"


def render(template: str, variables: dict[str, Any]) -> str:
    """Substitute ``{{name}}`` placeholders; unknown names are left untouched."""

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in variables:
            return match.group(0)
        value = variables[key]
        if isinstance(value, list | tuple):
            return ", ".join(str(item) for item in value)
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    return PLACEHOLDER_PATTERN.sub(_replace, template)


class PromptTemplates:
    """Loads user-overridable prompt templates for a project."""

    def __init__(self, project_root: Path | str):
        self.paths = ProjectPaths(Path(project_root))

    def template_path(self, name: str) -> Path:
        return self.paths.templates_dir / f"{name}.json"

    async def load(self, name: str) -> str:
        """Return the project template, falling back to the built-in one."""
        path = self.template_path(name)
        if path.exists():
            try:
                async with aiofiles.open(path, encoding="utf-8") as f:
                    data = json.loads(await f.read())
                template = data.get("template") if isinstance(data, dict) else None
                if isinstance(template, str) and template.strip():
                    return template
                logger.warning("template_missing_body", template=name, path=str(path))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(
                    "template_load_failed", template=name, path=str(path), error=str(e)
                )
        return BUILTIN_TEMPLATES.get(name, DEFAULT_TEMPLATE)

    async def render(self, name: str, **variables: Any) -> str:
        return render(await self.load(name), variables)

    async def ensure_template(self, name: str) -> bool:
        """Write the built-in template to disk unless the user already has one.

        Returns:
            True when a new file was written
        """
        path = self.template_path(name)
        if path.exists() or name not in BUILTIN_TEMPLATES:
            return False
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(
                json.dumps({"name": name, "template": BUILTIN_TEMPLATES[name]}, indent=2)
            )
        logger.debug("template_created", template=name, path=str(path))
        return True
