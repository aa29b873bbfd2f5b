"""Tests for the jinja2 prompt builder."""

from __future__ import annotations

from pathlib import Path

from rulegen.llm.analysis import ChunkResult
from rulegen.prompting import PromptBuilder


def test_single_prompt_wraps_codebase() -> None:
    prompt = PromptBuilder().single("Describe the conventions.", "--- a.py ---\nx = 1\n")

    assert prompt.startswith("Describe the conventions.\n\n<codebase>\n")
    assert "--- a.py ---\nx = 1" in prompt
    assert prompt.rstrip().endswith("</codebase>")


def test_chunk_prompt_numbers_chunks_from_one() -> None:
    prompt = PromptBuilder().chunk("Describe the conventions.", "body", 2, 5)

    assert prompt.startswith("Describe the conventions.")
    assert "This is chunk 2 of 5 from a large codebase." in prompt
    assert '<codebase_chunk id="2" total="5">\nbody\n</codebase_chunk>' in prompt


def test_merge_prompt_lists_every_analysis_in_order() -> None:
    results = [
        ChunkResult(chunk_id=0, analysis="Uses snake_case."),
        ChunkResult(chunk_id=1, analysis="Prefers dataclasses."),
    ]
    prompt = PromptBuilder().merge(results)

    assert "merging the analysis results from 2 chunks" in prompt
    assert "Do not mention chunks or the merge process in your output." in prompt
    first = prompt.index('<chunk_analysis id="1">\nUses snake_case.\n</chunk_analysis>')
    second = prompt.index('<chunk_analysis id="2">\nPrefers dataclasses.\n</chunk_analysis>')
    assert first < second


def test_custom_templates_override_bundled_ones(tmp_path: Path) -> None:
    (tmp_path / "single.j2").write_text("CUSTOM {{ prompt_template }}|{{ content }}", encoding="utf-8")
    builder = PromptBuilder(templates_dir=tmp_path)

    assert builder.single("rules", "code") == "CUSTOM rules|code"
    # templates missing from the custom directory still come from the package
    assert "This is chunk 1 of 2" in builder.chunk("rules", "code", 1, 2)
