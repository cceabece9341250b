"""Tree-sitter layer — grammar lookup and comment discovery for snippets."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterator

from . import constants

logger = logging.getLogger(__name__)


class ParserFactory(ABC):
    """Abstract factory for obtaining a grammar-specific parser."""

    @abstractmethod
    def get_parser(self, language: str): ...


class TreeSitterParserFactory(ParserFactory):
    """Loads tree-sitter-language-pack grammars, one parser per grammar."""

    def __init__(self):
        self._parsers: dict[str, object] = {}

    def get_parser(self, language: str):
        grammar = constants.TREE_SITTER_GRAMMARS.get(language, language)
        if grammar not in self._parsers:
            import tree_sitter_language_pack as tslp

            logger.debug("Loading tree-sitter grammar %s", grammar)
            self._parsers[grammar] = tslp.get_parser(grammar)
        return self._parsers[grammar]


class Parser:
    """Parses a snippet and finds the nodes the normalizer strips out.

    The tree is only used to locate comments; statements themselves are read
    line by line by the recognizers.
    """

    def __init__(self, parser_factory: ParserFactory):
        self._factory = parser_factory

    def parse(self, source: str, language: str):
        parser = self._factory.get_parser(language)
        return parser.parse(source.encode("utf-8"))

    @staticmethod
    def find_nodes(tree, node_types: frozenset[str]) -> Iterator:
        """Yield every node whose type is in *node_types*, outermost first."""
        stack = [tree.root_node]
        while stack:
            node = stack.pop()
            if node.type in node_types:
                yield node
                continue
            stack.extend(reversed(node.children))
