"""
Huffman prefix-code engine

Builds a Huffman tree from symbol frequencies, extracts a symbol -> bit-string
code table from it, and encodes / decodes text with that table.
Codes are plain strings of '0' and '1' characters (no bit packing).
"""

from __future__ import annotations

import heapq
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from code_table import (
    expected_code_length,
    invert_code_table,
    is_prefix_free,
    validate_code,
    validate_code_table,
    validate_symbol,
)
from huffman_errors import (
    InvalidBitError,
    MalformedParentError,
    MissingOriginalTextError,
    TrailingBitsError,
    UnmappedSymbolError,
)


# Tree storage

@dataclass
class Node: # one slot of the arena
    weight: int
    symbol: Optional[str] = None # leaves only
    children: Optional[Tuple[int, int]] = None # internal nodes only (arena indices)

    @property
    def is_leaf(self) -> bool:
        return self.children is None


class NodeArena:
    """
    Flat storage for tree nodes. Children are referenced by index, so an internal
    node owns exactly the two slots it was built from.
    """

    def __init__(self):
        self.nodes: List[Node] = []

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, index: int) -> Node:
        return self.nodes[index]

    def new_leaf(self, symbol: str, weight: int) -> int:
        self.nodes.append(Node(weight, symbol=symbol))
        return len(self.nodes) - 1

    def new_parent(self, children: Sequence[int]) -> int:
        if len(children) != 2:
            raise MalformedParentError(f"a parent node must have two children, got {len(children)}")
        first, second = children
        weight = self.nodes[first].weight + self.nodes[second].weight
        self.nodes.append(Node(weight, children=(first, second)))
        return len(self.nodes) - 1

    def leaves(self, root: int) -> List[int]:
        out = []
        stack = [root]
        while stack:
            index = stack.pop()
            node = self.nodes[index]
            if node.is_leaf:
                out.append(index)
            else:
                stack.extend(node.children)
        return out

    def depth(self, root: int) -> int:
        deepest = 0
        stack = [(root, 0)]
        while stack:
            index, level = stack.pop()
            node = self.nodes[index]
            if node.is_leaf:
                deepest = max(deepest, level)
            else:
                stack.extend((child, level + 1) for child in node.children)
        return deepest


# Building the tree

def count_symbols(text: str) -> Dict[str, int]: # symbol -> occurrences, first-occurrence order
    return dict(Counter(text))


def build_forest(frequency_table: Dict[str, int], arena: NodeArena) -> Dict[int, int]:
    forest = {}
    for symbol, frequency in frequency_table.items():
        validate_symbol(symbol)
        if frequency <= 0:
            raise ValueError(f"frequency for {symbol!r} must be positive, got {frequency}")
        forest[arena.new_leaf(symbol, frequency)] = frequency
    return forest


def compress_forest(forest: Dict[int, int], arena: NodeArena) -> int:
    if not forest:
        raise ValueError("cannot build a Huffman tree from an empty forest")

    # (weight, sequence) keeps equal-weight picks reproducible
    priority_queue = [(weight, seq, index) for seq, (index, weight) in enumerate(forest.items())]
    heapq.heapify(priority_queue)
    seq = len(priority_queue)

    while len(priority_queue) > 1:
        _, _, first = heapq.heappop(priority_queue)
        _, _, second = heapq.heappop(priority_queue)
        parent = arena.new_parent((first, second))
        heapq.heappush(priority_queue, (arena[parent].weight, seq, parent))
        seq += 1

    return priority_queue[0][2]


def build_huffman_tree(frequency_table: Dict[str, int]) -> Tuple[NodeArena, int]:
    arena = NodeArena()
    root = compress_forest(build_forest(frequency_table, arena), arena)
    logger.debug(f"Built Huffman tree: {len(frequency_table)} symbols, {len(arena)} nodes, root weight {arena[root].weight}")
    return arena, root


def extract_codes(arena: NodeArena, root: int, single_symbol_code: str = "0") -> Dict[str, str]:
    validate_code(arena[root].symbol, single_symbol_code)
    if arena[root].is_leaf:
        # Lone symbol -> the path is empty, give it a real code so it can be decoded
        return {arena[root].symbol: single_symbol_code}

    codes = {}
    stack = [(root, "")]
    while stack:
        index, prefix = stack.pop()
        node = arena[index]
        if node.is_leaf:
            codes[node.symbol] = prefix
            continue
        stack.append((node.children[1], prefix + "0"))
        stack.append((node.children[0], prefix + "1"))
    return codes


def generate_huffman_codes(frequency_table: Dict[str, int], single_symbol_code: str = "0") -> Dict[str, str]:
    arena, root = build_huffman_tree(frequency_table)
    return extract_codes(arena, root, single_symbol_code)


# Encoding / decoding

def huffman_encode(code_table: Dict[str, str], message: str) -> str:
    parts = []
    for position, symbol in enumerate(message):
        code = code_table.get(symbol)
        if code is None:
            raise UnmappedSymbolError(symbol, position)
        parts.append(code)
    return "".join(parts)


def huffman_decode(code_table: Dict[str, str], bits: str, strict: bool = False) -> str:
    reverted = invert_code_table(code_table, strict=strict)
    decoded = []
    buffer = ""
    for position, bit in enumerate(bits):
        if strict and bit not in "01":
            raise InvalidBitError(f"invalid bit {bit!r} at position {position}")
        buffer += bit
        symbol = reverted.get(buffer)
        if symbol is not None:
            decoded.append(symbol)
            buffer = ""

    if buffer:
        if strict:
            raise TrailingBitsError(buffer)
        logger.warning(f"Discarding {len(buffer)} trailing bits that match no code")

    return "".join(decoded)


# Engine

class HuffmanTree:
    """
    Coding engine holding a code table and, when built from text, the text itself.

    strict_decode selects the default decoding mode: lenient decoding drops
    trailing bits and lets colliding codes overwrite each other, strict decoding
    raises instead. single_symbol_code is the code given to the only symbol of a
    one-symbol text.
    """

    def __init__(self, original_text: Optional[str] = None, strict_decode: bool = False,
                 single_symbol_code: str = "0", code_table: Optional[Dict[str, str]] = None):
        self.original_text = original_text
        self.strict_decode = strict_decode
        if code_table is not None:
            self.code_table = code_table
        elif original_text:
            self.code_table = generate_huffman_codes(count_symbols(original_text), single_symbol_code)
        else:
            self.code_table = {}

    @classmethod
    def from_text(cls, text: str, **options) -> "HuffmanTree":
        return cls(text, **options)

    @classmethod
    def from_frequencies(cls, frequency_table: Dict[str, int], strict_decode: bool = False,
                         single_symbol_code: str = "0") -> "HuffmanTree":
        table = generate_huffman_codes(frequency_table, single_symbol_code) if frequency_table else {}
        return cls(strict_decode=strict_decode, code_table=table)

    @classmethod
    def from_table(cls, code_table: Dict[str, str], strict_decode: bool = False) -> "HuffmanTree":
        validate_code_table(code_table)
        return cls(strict_decode=strict_decode, code_table=dict(code_table))

    def __repr__(self) -> str:
        return f"HuffmanTree(symbols={len(self.code_table)}, has_text={self.original_text is not None})"

    def get_code_table(self) -> Dict[str, str]:
        return dict(self.code_table)

    def get_original_text(self) -> str:
        if self.original_text is None:
            raise MissingOriginalTextError("engine was built without an original text")
        return self.original_text

    def encode(self, message: str) -> str:
        return huffman_encode(self.code_table, message)

    def decode(self, bits: str, strict: Optional[bool] = None) -> str:
        return huffman_decode(self.code_table, bits, self.strict_decode if strict is None else strict)

    def is_prefix_free(self) -> bool:
        return is_prefix_free(self.code_table)

    def expected_code_length(self, frequency_table: Optional[Dict[str, int]] = None) -> float:
        if frequency_table is None:
            frequency_table = count_symbols(self.get_original_text())
        return expected_code_length(self.code_table, frequency_table)
