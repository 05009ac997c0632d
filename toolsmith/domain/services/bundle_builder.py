"""
Bundle rendering.

The manifest is the single machine-readable description of a deployed
tool; the markup, script and styling are rendered from Jinja2 templates
that read it. External (camelCase) naming is applied here and nowhere else.
"""

import json
import logging
from typing import Any, Dict

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape

from toolsmith.api.models import Project
from toolsmith.core.config import settings

logger = logging.getLogger(__name__)

MANIFEST_VERSION = 1

_env = Environment(
    loader=PackageLoader("toolsmith.domain", "templates/bundle"),
    autoescape=select_autoescape(["html", "html.j2"]),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
)


def build_manifest(project: Project) -> Dict[str, Any]:
    """Manifest for a project whose steps/fields/choices are loaded."""
    steps = []
    for step in sorted(project.steps, key=lambda s: s.step_order):
        fields = []
        for field in sorted(step.fields, key=lambda f: f.field_order):
            entry: Dict[str, Any] = {
                "name": field.name,
                "label": field.label,
                "type": field.field_type,
                "required": field.required,
                "placeholder": field.placeholder,
                "helpText": field.help_text,
                "validation": field.validation or {},
            }
            if field.type.has_choices:
                entry["choices"] = [
                    {"label": c.label, "value": c.value, "isDefault": c.is_default}
                    for c in sorted(field.choices, key=lambda c: c.choice_order)
                ]
            fields.append(entry)
        steps.append({
            "title": step.page_title or step.name,
            "subtitle": step.page_subtitle,
            "description": step.description,
            "fields": fields,
        })

    return {
        "manifestVersion": MANIFEST_VERSION,
        "name": project.name,
        "description": project.description,
        "headerTitle": project.header_title or project.name,
        "headerSubtitle": project.header_subtitle or project.description,
        "accessTier": project.access_tier,
        "systemPrompt": project.system_prompt,
        "steps": steps,
    }


def render_bundle(project: Project, slug: str) -> Dict[str, str]:
    """Render every file of the public bundle, keyed by file name."""
    manifest = build_manifest(project)
    context = {
        "manifest": manifest,
        "slug": slug,
        "public_url": settings.public_url(slug),
        "submit_url": f"{settings.PUBLIC_API_URL.rstrip('/')}/api/v1/public/{slug}/submit",
    }
    files = {
        "index.html": _env.get_template("index.html.j2").render(**context),
        "app.js": _env.get_template("app.js.j2").render(**context),
        "style.css": _env.get_template("style.css.j2").render(**context),
        "manifest.json": json.dumps(manifest, indent=2, ensure_ascii=False),
    }
    logger.debug(f"Rendered bundle for {slug}: {len(manifest['steps'])} steps")
    return files
