"""Prompt template selection for the AI generator.

Templates are loaded from YAML (the bundled ``templates/prompt_templates.yaml``
unless a path is configured) and rendered with the caller's tool, language and
framework to form the upstream system message.
"""

from __future__ import annotations

import importlib.resources
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from promptdir_cloud.errors import InvalidRequest
from promptdir_cloud.schemas import GenerationRequest

logger = logging.getLogger(__name__)


class PromptType(str, Enum):
    RULES = "rules"
    SYSTEM_PROMPT = "system_prompt"
    CODING_INSTRUCTIONS = "coding_instructions"


DEFAULT_PROMPT_TYPE = PromptType.RULES


@dataclass(frozen=True)
class PromptTemplate:
    """A system-prompt template for one ``PromptType``."""

    prompt_type: PromptType
    template: str
    language_default: str = "general"
    framework_format: str = "/ {framework}"

    def render(self, tool: str, language: str | None = None, framework: str | None = None) -> str:
        framework_text = self.framework_format.format(framework=framework) if framework else ""
        return self.template.format(
            tool=tool,
            language=language or self.language_default,
            framework=framework_text,
        )


def _parse_template(prompt_type: PromptType, data: Any, source: str) -> PromptTemplate:
    if not isinstance(data, dict):
        raise ValueError(f"Template '{prompt_type.value}' in {source} must be a mapping")

    allowed_keys = {"template", "language_default", "framework_format"}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {source}.{prompt_type.value}: {unknown_keys}")

    template = data.get("template")
    if not isinstance(template, str) or not template.strip():
        raise ValueError(f"Missing required 'template' in {source}.{prompt_type.value}")

    return PromptTemplate(
        prompt_type=prompt_type,
        template=template,
        language_default=str(data.get("language_default", "general")),
        framework_format=str(data.get("framework_format", "/ {framework}")),
    )


def parse_templates(raw: Any, source: str = "<templates>") -> dict[PromptType, PromptTemplate]:
    """Validate a loaded YAML document and build the template table.

    Every ``PromptType`` must be present and no other keys are allowed.
    """
    if not raw or not isinstance(raw, dict):
        raise ValueError(f"Template file {source} is empty or not a mapping")

    known = {pt.value for pt in PromptType}
    unknown = set(raw.keys()) - known
    if unknown:
        raise ValueError(f"Unknown prompt types in {source}: {unknown}")

    templates: dict[PromptType, PromptTemplate] = {}
    for prompt_type in PromptType:
        if prompt_type.value not in raw:
            raise ValueError(f"Missing template for '{prompt_type.value}' in {source}")
        templates[prompt_type] = _parse_template(prompt_type, raw[prompt_type.value], source)
    return templates


def load_templates(path: str | None = None) -> dict[PromptType, PromptTemplate]:
    """Load prompt templates from *path*, or the bundled file when omitted."""
    if path is not None:
        template_path = Path(path)
        if not template_path.exists():
            raise FileNotFoundError(f"Prompt template file not found: {path}")
        with open(template_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
        return parse_templates(raw, str(template_path))

    bundled = importlib.resources.files("promptdir_cloud.templates") / "prompt_templates.yaml"
    raw = yaml.safe_load(bundled.read_text(encoding="utf-8"))
    return parse_templates(raw, "prompt_templates.yaml")


def resolve_prompt_type(value: str, strict: bool = False) -> PromptType:
    """Map a caller-supplied ``promptType`` to a ``PromptType``.

    Unknown values fall back to ``rules`` unless *strict* is set, in which
    case they are rejected with ``InvalidRequest``.
    """
    try:
        return PromptType(value.strip())
    except ValueError:
        if strict:
            valid = ", ".join(pt.value for pt in PromptType)
            raise InvalidRequest(f"Unknown promptType '{value}'. Expected one of: {valid}")
        logger.warning("Unknown promptType %r, falling back to %s", value, DEFAULT_PROMPT_TYPE.value)
        return DEFAULT_PROMPT_TYPE


def build_messages(
    request: GenerationRequest,
    template: PromptTemplate,
) -> list[dict[str, str]]:
    """System + user message pair for the upstream completion call."""
    system_prompt = template.render(
        tool=request.tool or "",
        language=request.language,
        framework=request.framework,
    )
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": f"Project description: {request.description}"},
    ]
