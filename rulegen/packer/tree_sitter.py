"""Tree-sitter powered structural compressor."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from .compress import Compressor
from .strategies import ExtractionRegistry, ExtractionStrategy, default_registry
from ..errors import CompressionError
from ..languages import Language
from ..logging import get_logger
from ..models import CompressionMethod

try:  # pragma: no cover - optional dependency
    from tree_sitter_language_pack import get_parser

    TREE_SITTER_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    get_parser = None  # type: ignore[assignment]
    TREE_SITTER_AVAILABLE = False

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from tree_sitter import Node, Parser

logger = get_logger("packer.tree_sitter")

# Work items on the explicit traversal stack.
_NODE = 0
_TEXT = 1
_PREFIX = 2
_FLUSH = 3


class TreeSitterCompressor(Compressor):
    """Reduces source to imports, declarations and signatures.

    Function bodies are replaced with an elision marker, type declarations
    and comments are kept verbatim, and class-like blocks keep only their
    member declarations. Any syntax error, unsupported language or empty
    extraction fails the whole call so callers can fall back.
    """

    method = CompressionMethod.STRUCTURAL

    def __init__(self, registry: ExtractionRegistry | None = None, enabled: Optional[bool] = None) -> None:
        self.registry = registry if registry is not None else default_registry()
        self._enabled = TREE_SITTER_AVAILABLE if enabled is None else enabled
        self._parsers: Dict[str, Parser] = {}

    def supports(self, language: Language) -> bool:
        return self._enabled and language in self.registry

    def compress(self, source: str, language: Language) -> str:
        strategy = self.registry.get(language)
        if strategy is None:
            raise CompressionError(language.display_name, "no extraction strategy registered")
        if not self._enabled:
            raise CompressionError(language.display_name, "tree-sitter is not available")

        parser = self._get_parser(strategy, language)
        source_bytes = source.encode("utf-8")
        tree = parser.parse(source_bytes)
        if tree.root_node.has_error:
            raise CompressionError(language.display_name, "source contains syntax errors")

        output = _StructuralWalk(strategy, source_bytes).run(tree.root_node)
        if not output.strip():
            raise CompressionError(language.display_name, "no structural elements found")
        return output

    def _get_parser(self, strategy: ExtractionStrategy, language: Language) -> Parser:
        parser = self._parsers.get(strategy.grammar)
        if parser is not None:
            return parser
        try:
            parser = get_parser(strategy.grammar)  # type: ignore[misc, arg-type]
        except Exception as exc:  # pragma: no cover - depends on installed grammars
            raise CompressionError(
                language.display_name, f"grammar '{strategy.grammar}' could not be loaded: {exc}"
            ) from exc
        self._parsers[strategy.grammar] = parser
        return parser


class _StructuralWalk:
    """Iterative walk that renders a skeleton for one syntax tree."""

    def __init__(self, strategy: ExtractionStrategy, source: bytes) -> None:
        self.strategy = strategy
        self.source = source
        self._pieces: List[str] = []
        self._pending_prefix: Optional[str] = None

    def run(self, root: Node) -> str:
        stack: List[Tuple[int, object, bool]] = [(_NODE, root, False)]
        while stack:
            item_kind, payload, in_class = stack.pop()
            if item_kind == _TEXT:
                self._emit(payload)  # type: ignore[arg-type]
            elif item_kind == _PREFIX:
                if self._pending_prefix is None:
                    self._pending_prefix = payload  # type: ignore[assignment]
                else:
                    self._pending_prefix += payload.lstrip(" \t")  # type: ignore[union-attr]
            elif item_kind == _FLUSH:
                self._flush_prefix()
            else:
                self._visit(payload, in_class, stack)  # type: ignore[arg-type]
        return "\n".join(self._pieces)

    def _visit(self, node: Node, in_class: bool, stack: List[Tuple[int, object, bool]]) -> None:
        if not node.is_named:
            return
        strategy = self.strategy
        kind = node.type

        if kind in strategy.verbatim_kinds:
            self._emit(self._verbatim(node))
            return

        if kind in strategy.function_kinds:
            self._emit(self._signature(node))
            return

        if kind in strategy.type_kinds:
            self._emit(self._verbatim(node))
            return

        if kind in strategy.bodied_type_kinds:
            if node.child_by_field_name("body") is not None:
                self._emit(self._verbatim(node))
            else:
                self._push_children(node, stack)
            return

        if kind in strategy.class_kinds:
            self._push_class(node, stack)
            return

        if kind in strategy.namespace_kinds:
            body = node.child_by_field_name("body")
            if body is None:
                self._emit(self._verbatim(node))
                return
            self._push_block(node, body.start_byte, list(body.named_children), False, stack)
            return

        if kind in strategy.wrapper_kinds:
            wrapped = self._wrapped(node)
            if wrapped is not None and self._renders(wrapped):
                # A prefix the wrapped node never consumed is emitted on its own.
                stack.append((_FLUSH, None, in_class))
                stack.append((_NODE, wrapped, in_class))
                prefix = self._indent(node) + self._text(node.start_byte, wrapped.start_byte)
                stack.append((_PREFIX, prefix, in_class))
            else:
                self._emit(self._verbatim(node))
            return

        if kind in strategy.binding_kinds or in_class:
            function = self._function_value(node)
            if function is not None:
                self._emit(self._head(node, function))
                return
            if in_class:
                self._emit(self._verbatim(node))
                return

        self._push_children(node, stack)

    def _push_children(self, node: Node, stack: List[Tuple[int, object, bool]]) -> None:
        for child in reversed(node.named_children):
            stack.append((_NODE, child, False))

    def _wrapped(self, node: Node) -> Optional[Node]:
        for field_name in ("declaration", "definition"):
            child = node.child_by_field_name(field_name)
            if child is not None:
                return child
        return node.named_children[-1] if node.named_children else None

    def _push_class(self, node: Node, stack: List[Tuple[int, object, bool]]) -> None:
        body = node.child_by_field_name("body")
        if body is not None:
            members = list(body.named_children)
            header_end = body.start_byte
        elif not self.strategy.body_field_optional:
            # Forward declarations such as ``struct Foo;`` carry no members.
            self._push_children(node, stack)
            return
        else:
            header_end = self._header_end(node)
            if header_end is None:
                self._push_children(node, stack)
                return
            members = [child for child in node.named_children if child.start_byte >= header_end]
        members = [member for member in members if self.strategy.is_member(member.type)]
        self._push_block(node, header_end, members, True, stack)

    def _push_block(
        self,
        node: Node,
        header_end: int,
        children: List[Node],
        in_class: bool,
        stack: List[Tuple[int, object, bool]],
    ) -> None:
        indent = self._indent(node)
        header = self._text(node.start_byte, header_end).rstrip()
        if self.strategy.block_open:
            header = f"{header} {self.strategy.block_open}"
        if self.strategy.block_close:
            stack.append((_TEXT, indent + self.strategy.block_close, False))
        for child in reversed(children):
            stack.append((_NODE, child, in_class))
        stack.append((_TEXT, indent + header, False))

    def _header_end(self, node: Node) -> Optional[int]:
        ends = [
            field.end_byte
            for field in (
                node.child_by_field_name("name"),
                node.child_by_field_name("superclass"),
                node.child_by_field_name("value"),
            )
            if field is not None
        ]
        return max(ends) if ends else None

    def _renders(self, node: Node) -> bool:
        strategy = self.strategy
        kind = node.type
        if kind in strategy.function_kinds or kind in strategy.type_kinds:
            return True
        if kind in strategy.class_kinds:
            return strategy.body_field_optional or node.child_by_field_name("body") is not None
        if kind in strategy.namespace_kinds:
            return True
        if kind in strategy.wrapper_kinds:
            return True
        if kind in strategy.bodied_type_kinds:
            return node.child_by_field_name("body") is not None
        if kind in strategy.binding_kinds:
            return self._function_value(node) is not None
        return False

    def _function_value(self, node: Node) -> Optional[Node]:
        function_kinds = self.strategy.function_kinds
        value = node.child_by_field_name("value")
        if value is not None and value.type in function_kinds:
            return value
        for child in node.named_children:
            if child.type != "variable_declarator":
                continue
            value = child.child_by_field_name("value")
            if value is not None and value.type in function_kinds:
                return value
        return None

    def _signature(self, node: Node) -> str:
        body = node.child_by_field_name("body")
        if body is not None:
            end = body.start_byte
        elif self.strategy.body_field_optional:
            end = self._signature_end(node)
        else:
            # Declarations without a body are already signatures.
            return self._verbatim(node)
        return self._indent(node) + self._text(node.start_byte, end).rstrip() + self.strategy.elision

    def _head(self, node: Node, function: Node) -> str:
        body = function.child_by_field_name("body")
        end = body.start_byte if body is not None else function.end_byte
        return self._indent(node) + self._text(node.start_byte, end).rstrip() + self.strategy.elision

    def _signature_end(self, node: Node) -> int:
        for field_name in ("parameters", "name"):
            field = node.child_by_field_name(field_name)
            if field is not None:
                return field.end_byte
        newline = self.source.find(b"\n", node.start_byte, node.end_byte)
        return newline if newline != -1 else node.end_byte

    def _verbatim(self, node: Node) -> str:
        return self._indent(node) + self._elided_text(node).rstrip()

    def _elided_text(self, node: Node) -> str:
        """Source of ``node`` with every ``elided_kinds`` descendant collapsed."""
        kinds = self.strategy.elided_kinds
        if not kinds:
            return self._text(node.start_byte, node.end_byte)
        pieces: List[str] = []
        cursor = node.start_byte
        pending = list(reversed(node.named_children))
        while pending:
            child = pending.pop()
            if child.type in kinds:
                pieces.append(self._text(cursor, child.start_byte))
                pieces.append(self._block_elision(child))
                cursor = child.end_byte
            else:
                pending.extend(reversed(child.named_children))
        pieces.append(self._text(cursor, node.end_byte))
        return "".join(pieces)

    def _block_elision(self, node: Node) -> str:
        opening = self._text(node.start_byte, min(node.end_byte, node.start_byte + 2))
        if opening.startswith("{"):
            return "{ ... }"
        if opening == "do":
            return "do ... end"
        return "..."

    def _indent(self, node: Node) -> str:
        line_start = self.source.rfind(b"\n", 0, node.start_byte) + 1
        prefix = self.source[line_start : node.start_byte]
        if prefix.strip():
            return ""
        return prefix.decode("utf-8", errors="replace")

    def _text(self, start: int, end: int) -> str:
        return self.source[start:end].decode("utf-8", errors="replace")

    def _emit(self, piece: str) -> None:
        if self._pending_prefix is not None:
            piece = self._pending_prefix + piece.lstrip(" \t")
            self._pending_prefix = None
        self._pieces.append(piece)

    def _flush_prefix(self) -> None:
        if self._pending_prefix is None:
            return
        prefix = self._pending_prefix.rstrip()
        self._pending_prefix = None
        if prefix.strip():
            self._pieces.append(prefix)


__all__ = ["TreeSitterCompressor", "TREE_SITTER_AVAILABLE"]
