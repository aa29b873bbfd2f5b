"""Language tags for source files handed to rulegen."""

from __future__ import annotations

from enum import Enum
from pathlib import PurePath
from typing import Dict, Optional


class Language(str, Enum):
    """Closed set of languages the packer knows how to label."""

    TYPESCRIPT = "typescript"
    TSX = "tsx"
    JAVASCRIPT = "javascript"
    JSX = "jsx"
    PYTHON = "python"
    RUST = "rust"
    GO = "go"
    JAVA = "java"
    C = "c"
    CPP = "cpp"
    RUBY = "ruby"
    PHP = "php"
    UNKNOWN = "unknown"

    @classmethod
    def from_path(cls, path: str | PurePath) -> "Language":
        suffix = PurePath(path).suffix.lower()
        return _EXTENSIONS.get(suffix, cls.UNKNOWN)

    @classmethod
    def parse(cls, value: Optional[str]) -> "Language":
        """Coerce a loose label (``"TypeScript"``, ``"c++"``) into a tag."""
        if not value:
            return cls.UNKNOWN
        lowered = value.strip().lower()
        lowered = _ALIASES.get(lowered, lowered)
        try:
            return cls(lowered)
        except ValueError:
            return cls.UNKNOWN

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_EXTENSIONS: Dict[str, Language] = {
    ".ts": Language.TYPESCRIPT,
    ".mts": Language.TYPESCRIPT,
    ".cts": Language.TYPESCRIPT,
    ".tsx": Language.TSX,
    ".js": Language.JAVASCRIPT,
    ".mjs": Language.JAVASCRIPT,
    ".cjs": Language.JAVASCRIPT,
    ".jsx": Language.JSX,
    ".py": Language.PYTHON,
    ".pyi": Language.PYTHON,
    ".rs": Language.RUST,
    ".go": Language.GO,
    ".java": Language.JAVA,
    ".c": Language.C,
    ".h": Language.C,
    ".cpp": Language.CPP,
    ".cc": Language.CPP,
    ".cxx": Language.CPP,
    ".hpp": Language.CPP,
    ".hh": Language.CPP,
    ".hxx": Language.CPP,
    ".rb": Language.RUBY,
    ".php": Language.PHP,
}

_ALIASES: Dict[str, str] = {
    "ts": "typescript",
    "js": "javascript",
    "py": "python",
    "rs": "rust",
    "golang": "go",
    "c++": "cpp",
    "rb": "ruby",
}

_DISPLAY_NAMES: Dict[Language, str] = {
    Language.TYPESCRIPT: "TypeScript",
    Language.TSX: "TSX",
    Language.JAVASCRIPT: "JavaScript",
    Language.JSX: "JSX",
    Language.PYTHON: "Python",
    Language.RUST: "Rust",
    Language.GO: "Go",
    Language.JAVA: "Java",
    Language.C: "C",
    Language.CPP: "C++",
    Language.RUBY: "Ruby",
    Language.PHP: "PHP",
    Language.UNKNOWN: "Unknown",
}


__all__ = ["Language"]
