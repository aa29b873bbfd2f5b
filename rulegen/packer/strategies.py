"""Per-language extraction strategies and the registry that serves them."""

from __future__ import annotations

from dataclasses import dataclass
from importlib import metadata
from typing import Callable, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional

from ..languages import Language
from ..logging import get_logger

_ENTRY_POINT_GROUP = "rulegen.strategies"

logger = get_logger("packer.strategies")


@dataclass(frozen=True)
class ExtractionStrategy:
    """Node-kind tables telling the structural walker what to keep.

    ``function_kinds`` are reduced to their signature plus ``elision``;
    ``type_kinds`` are emitted verbatim, as are ``bodied_type_kinds`` when they
    carry a body. ``class_kinds`` emit a header and only the children listed in
    ``member_kinds``. ``namespace_kinds`` emit a header and walk every child.
    ``wrapper_kinds`` (exports, decorators, templates) prefix their last named
    child. ``binding_kinds`` are variable declarations that only count when
    their value is a function. ``elided_kinds`` are block nodes collapsed to
    ``{ ... }`` wherever a node is otherwise emitted verbatim, so lambdas and
    anonymous classes inside fields never leak their bodies.
    """

    grammar: str
    function_kinds: FrozenSet[str]
    type_kinds: FrozenSet[str] = frozenset()
    bodied_type_kinds: FrozenSet[str] = frozenset()
    class_kinds: FrozenSet[str] = frozenset()
    member_kinds: FrozenSet[str] = frozenset()
    namespace_kinds: FrozenSet[str] = frozenset()
    wrapper_kinds: FrozenSet[str] = frozenset()
    binding_kinds: FrozenSet[str] = frozenset()
    import_kinds: FrozenSet[str] = frozenset()
    comment_kinds: FrozenSet[str] = frozenset()
    annotation_kinds: FrozenSet[str] = frozenset()
    elided_kinds: FrozenSet[str] = frozenset()
    elision: str = " { ... }"
    block_open: str = "{"
    block_close: Optional[str] = "}"
    body_field_optional: bool = False

    @property
    def verbatim_kinds(self) -> FrozenSet[str]:
        return self.import_kinds | self.comment_kinds | self.annotation_kinds

    def is_member(self, kind: str) -> bool:
        return (
            kind in self.member_kinds
            or kind in self.verbatim_kinds
            or kind in self.class_kinds
            or kind in self.type_kinds
            or kind in self.bodied_type_kinds
            or kind in self.wrapper_kinds
        )


def _kinds(*names: str) -> FrozenSet[str]:
    return frozenset(names)


PYTHON = ExtractionStrategy(
    grammar="python",
    function_kinds=_kinds("function_definition"),
    type_kinds=_kinds("type_alias_statement"),
    class_kinds=_kinds("class_definition"),
    member_kinds=_kinds("function_definition", "expression_statement"),
    wrapper_kinds=_kinds("decorated_definition"),
    import_kinds=_kinds("import_statement", "import_from_statement", "future_import_statement"),
    comment_kinds=_kinds("comment"),
    elision=" ...",
    block_open="",
    block_close=None,
)

_JS_FUNCTIONS = _kinds(
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
    "generator_function",
    "arrow_function",
    "method_definition",
)

JAVASCRIPT = ExtractionStrategy(
    grammar="javascript",
    function_kinds=_JS_FUNCTIONS,
    class_kinds=_kinds("class_declaration", "class"),
    member_kinds=_kinds("method_definition", "field_definition"),
    wrapper_kinds=_kinds("export_statement"),
    binding_kinds=_kinds("lexical_declaration", "variable_declaration"),
    import_kinds=_kinds("import_statement"),
    comment_kinds=_kinds("comment"),
    elided_kinds=_kinds("statement_block", "class_body"),
)

TYPESCRIPT = ExtractionStrategy(
    grammar="typescript",
    function_kinds=_JS_FUNCTIONS,
    type_kinds=_kinds("interface_declaration", "type_alias_declaration", "enum_declaration"),
    class_kinds=_kinds("class_declaration", "abstract_class_declaration", "class"),
    member_kinds=_kinds(
        "method_definition",
        "method_signature",
        "abstract_method_signature",
        "public_field_definition",
        "index_signature",
    ),
    namespace_kinds=_kinds("internal_module", "module"),
    wrapper_kinds=_kinds("export_statement"),
    binding_kinds=_kinds("lexical_declaration", "variable_declaration"),
    import_kinds=_kinds("import_statement"),
    comment_kinds=_kinds("comment"),
    elided_kinds=_kinds("statement_block", "class_body"),
)

TSX = ExtractionStrategy(
    grammar="tsx",
    function_kinds=TYPESCRIPT.function_kinds,
    type_kinds=TYPESCRIPT.type_kinds,
    class_kinds=TYPESCRIPT.class_kinds,
    member_kinds=TYPESCRIPT.member_kinds,
    namespace_kinds=TYPESCRIPT.namespace_kinds,
    wrapper_kinds=TYPESCRIPT.wrapper_kinds,
    binding_kinds=TYPESCRIPT.binding_kinds,
    import_kinds=TYPESCRIPT.import_kinds,
    comment_kinds=TYPESCRIPT.comment_kinds,
    elided_kinds=TYPESCRIPT.elided_kinds,
)

RUST = ExtractionStrategy(
    grammar="rust",
    function_kinds=_kinds("function_item"),
    type_kinds=_kinds("struct_item", "enum_item", "union_item", "type_item", "trait_item"),
    class_kinds=_kinds("impl_item"),
    member_kinds=_kinds("function_item", "function_signature_item", "const_item", "type_item"),
    namespace_kinds=_kinds("mod_item"),
    import_kinds=_kinds("use_declaration", "extern_crate_declaration"),
    comment_kinds=_kinds("line_comment", "block_comment"),
    annotation_kinds=_kinds("attribute_item", "inner_attribute_item"),
    elided_kinds=_kinds("block"),
)

GO = ExtractionStrategy(
    grammar="go",
    function_kinds=_kinds("function_declaration", "method_declaration", "func_literal"),
    type_kinds=_kinds("type_declaration"),
    import_kinds=_kinds("import_declaration", "package_clause"),
    comment_kinds=_kinds("comment"),
)

JAVA = ExtractionStrategy(
    grammar="java",
    function_kinds=_kinds(
        "method_declaration",
        "constructor_declaration",
        "compact_constructor_declaration",
        "lambda_expression",
    ),
    type_kinds=_kinds("interface_declaration", "enum_declaration", "annotation_type_declaration"),
    class_kinds=_kinds("class_declaration", "record_declaration"),
    member_kinds=_kinds(
        "method_declaration",
        "constructor_declaration",
        "compact_constructor_declaration",
        "field_declaration",
        "constant_declaration",
    ),
    import_kinds=_kinds("import_declaration", "package_declaration"),
    comment_kinds=_kinds("line_comment", "block_comment"),
    elided_kinds=_kinds("class_body", "block"),
)

C = ExtractionStrategy(
    grammar="c",
    function_kinds=_kinds("function_definition"),
    type_kinds=_kinds("type_definition"),
    bodied_type_kinds=_kinds("struct_specifier", "union_specifier", "enum_specifier"),
    import_kinds=_kinds("preproc_include"),
    comment_kinds=_kinds("comment"),
    annotation_kinds=_kinds("preproc_def", "preproc_function_def"),
)

CPP = ExtractionStrategy(
    grammar="cpp",
    function_kinds=_kinds("function_definition"),
    type_kinds=_kinds("type_definition", "alias_declaration"),
    bodied_type_kinds=_kinds("union_specifier", "enum_specifier"),
    class_kinds=_kinds("class_specifier", "struct_specifier"),
    member_kinds=_kinds(
        "function_definition",
        "field_declaration",
        "declaration",
        "access_specifier",
        "friend_declaration",
        "using_declaration",
    ),
    namespace_kinds=_kinds("namespace_definition"),
    wrapper_kinds=_kinds("template_declaration"),
    import_kinds=_kinds("preproc_include", "using_declaration"),
    comment_kinds=_kinds("comment"),
    annotation_kinds=_kinds("preproc_def", "preproc_function_def"),
    elided_kinds=_kinds("compound_statement"),
)

RUBY = ExtractionStrategy(
    grammar="ruby",
    function_kinds=_kinds("method", "singleton_method"),
    class_kinds=_kinds("class", "module", "singleton_class"),
    member_kinds=_kinds("method", "singleton_method", "call", "assignment"),
    comment_kinds=_kinds("comment"),
    elided_kinds=_kinds("do_block", "block"),
    elision=" ... end",
    block_open="",
    block_close="end",
    body_field_optional=True,
)

PHP = ExtractionStrategy(
    grammar="php",
    function_kinds=_kinds("function_definition", "method_declaration"),
    type_kinds=_kinds("interface_declaration", "trait_declaration", "enum_declaration"),
    class_kinds=_kinds("class_declaration"),
    member_kinds=_kinds(
        "method_declaration", "property_declaration", "const_declaration", "use_declaration"
    ),
    namespace_kinds=_kinds("namespace_definition"),
    import_kinds=_kinds("namespace_use_declaration"),
    comment_kinds=_kinds("comment"),
    annotation_kinds=_kinds("php_tag"),
    elided_kinds=_kinds("compound_statement"),
)

_BUILTIN_STRATEGIES: Dict[Language, ExtractionStrategy] = {
    Language.PYTHON: PYTHON,
    Language.JAVASCRIPT: JAVASCRIPT,
    Language.JSX: JAVASCRIPT,
    Language.TYPESCRIPT: TYPESCRIPT,
    Language.TSX: TSX,
    Language.RUST: RUST,
    Language.GO: GO,
    Language.JAVA: JAVA,
    Language.C: C,
    Language.CPP: CPP,
    Language.RUBY: RUBY,
    Language.PHP: PHP,
}


class ExtractionRegistry:
    """Maps languages to extraction strategies; absent entries mean unsupported."""

    def __init__(self, strategies: Mapping[Language, ExtractionStrategy] | None = None) -> None:
        self._strategies: Dict[Language, ExtractionStrategy] = dict(strategies or {})

    def register(self, language: Language, strategy: ExtractionStrategy) -> None:
        if not isinstance(strategy, ExtractionStrategy):
            raise TypeError(f"Strategy for '{language.value}' must be an ExtractionStrategy")
        self._strategies[language] = strategy

    def unregister(self, language: Language) -> None:
        self._strategies.pop(language, None)

    def get(self, language: Language) -> Optional[ExtractionStrategy]:
        return self._strategies.get(language)

    def languages(self) -> List[Language]:
        return list(self._strategies)

    def __contains__(self, language: object) -> bool:
        return language in self._strategies

    def __iter__(self) -> Iterator[Language]:
        return iter(self._strategies)

    def __len__(self) -> int:
        return len(self._strategies)


def default_registry(*, include_plugins: bool = True) -> ExtractionRegistry:
    """Return a registry seeded with built-in strategies and installed plugins."""
    registry = ExtractionRegistry(_BUILTIN_STRATEGIES)
    if include_plugins:
        for entry in _iter_entry_points():
            language = Language.parse(entry.name)
            if language is Language.UNKNOWN:
                logger.warning("Ignoring strategy plugin for unknown language '%s'", entry.name)
                continue
            try:
                loaded = entry.load()
            except Exception as exc:  # pragma: no cover - broken plugin
                raise RuntimeError(f"Failed to load strategy entry point '{entry.name}': {exc}") from exc
            registry.register(language, _coerce_strategy(loaded))
    return registry


def _coerce_strategy(obj: object) -> ExtractionStrategy:
    if isinstance(obj, ExtractionStrategy):
        return obj
    if callable(obj):
        factory: Callable[[], object] = obj  # type: ignore[assignment]
        instance = factory()
        if isinstance(instance, ExtractionStrategy):
            return instance
    raise TypeError("Strategy entry point must be an ExtractionStrategy or a factory returning one")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    try:
        entry_points = metadata.entry_points()
    except Exception:  # pragma: no cover - unreadable metadata
        return []
    return entry_points.select(group=_ENTRY_POINT_GROUP)


__all__ = ["ExtractionRegistry", "ExtractionStrategy", "default_registry"]
