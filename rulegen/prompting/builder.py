"""Builds analysis prompts from jinja2 templates."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Protocol

from jinja2 import Environment, FileSystemLoader, StrictUndefined

_DEFAULT_TEMPLATES = Path(__file__).with_name("templates")


class AnalysisLike(Protocol):
    chunk_id: int
    analysis: str


class PromptBuilder:
    """Renders the single-chunk, per-chunk and merge prompts.

    A custom ``templates_dir`` is searched before the bundled templates, so a
    caller can override any of ``single.j2``, ``chunk.j2`` or ``merge.j2``.
    """

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir
        self._env = self._create_env(templates_dir)

    def single(self, prompt_template: str, content: str) -> str:
        return self._render("single.j2", prompt_template=prompt_template, content=content)

    def chunk(self, prompt_template: str, content: str, chunk_number: int, total_chunks: int) -> str:
        """Prompt for one chunk; ``chunk_number`` is 1-indexed."""
        return self._render(
            "chunk.j2",
            prompt_template=prompt_template,
            content=content,
            chunk_number=chunk_number,
            total_chunks=total_chunks,
        )

    def merge(self, results: Iterable[AnalysisLike]) -> str:
        return self._render("merge.j2", results=list(results))

    def _render(self, template_name: str, **context: object) -> str:
        template = self._env.get_template(template_name)
        return template.render(**context)

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories: List[str] = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(_DEFAULT_TEMPLATES))
        return Environment(
            loader=FileSystemLoader(directories),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )


__all__ = ["PromptBuilder"]
