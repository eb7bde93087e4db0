from __future__ import annotations

import heapq
import io
from typing import Dict, List

from huffbits import BitInputStream, BitOutputStream, END_OF_INPUT

BITS_PER_WORD = 8
BITS_PER_INT = 32
ALPH_SIZE = 1 << BITS_PER_WORD
PSEUDO_EOF = ALPH_SIZE
HUFF_NUMBER = 0xFACE8200
HUFF_TREE = HUFF_NUMBER | 1

DEBUG_LOW = 1
DEBUG_HIGH = 4

# A full binary tree over ALPH_SIZE + 1 leaves is at most this deep
MAX_TREE_DEPTH = ALPH_SIZE


class HuffException(Exception):
    """Base class for every compress/decompress failure."""


class HuffFormatError(HuffException):
    """Input is not a tree-embedded Huffman stream (bad magic or bad tree)."""


class TruncatedInputError(HuffException):
    section = ""


class TruncatedHeaderError(TruncatedInputError):
    section = "header"


class TruncatedPayloadError(TruncatedInputError):
    section = "payload"


class HuffmanNode: # Node for Huffman tree
    def __init__(self, symbol, weight, left=None, right=None):
        self.symbol = symbol # 0..256 for leaves, None for internal nodes
        self.weight = weight # only meaningful while building
        self.left = left
        self.right = right

    def is_leaf(self) -> bool:
        return self.left is None and self.right is None


def read_for_counts(bit_in: BitInputStream) -> List[int]:
    """Count every 8-bit chunk of the input. PSEUDO_EOF always counts once."""
    counts = [0] * (ALPH_SIZE + 1)
    counts[PSEUDO_EOF] = 1

    while True:
        chunk = bit_in.read_bits(BITS_PER_WORD)
        if chunk == END_OF_INPUT:
            break
        counts[chunk] += 1
    return counts


def build_huffman_tree(counts: List[int]) -> HuffmanNode:
    """
    Greedy merge of the two lightest nodes until one is left.

    Heap entries are (weight, order, node). Leaves get their order in
    ascending symbol order, merged nodes get the next order after everything
    pushed so far, so equal weights pop first-in first-out and the tree for
    a given table is always the same. First pop is the left child.
    """
    priority_queue = []
    order = 0
    for symbol, count in enumerate(counts):
        if count > 0:
            priority_queue.append((count, order, HuffmanNode(symbol, count)))
            order += 1

    if not priority_queue:
        raise ValueError("frequency table has no nonzero counts")
    heapq.heapify(priority_queue)

    while len(priority_queue) > 1:
        weight_l, _, left = heapq.heappop(priority_queue)
        weight_r, _, right = heapq.heappop(priority_queue)
        merged = HuffmanNode(None, weight_l + weight_r, left, right)
        heapq.heappush(priority_queue, (merged.weight, order, merged))
        order += 1

    return priority_queue[0][2] # root of the tree


def make_codings_from_tree(root: HuffmanNode, debug: int = 0) -> Dict[int, str]:
    """
    Map each leaf symbol to its root-to-leaf path ('0' left, '1' right).

    A tree that is a single leaf (empty input) maps that symbol to "".
    """
    codings: Dict[int, str] = {}

    def coding_helper(node: HuffmanNode, path: str) -> None:
        if node.is_leaf():
            codings[node.symbol] = path
            if debug >= DEBUG_HIGH:
                print(f"encoding for {node.symbol} is {path}")
            return

        coding_helper(node.left, path + "0")
        coding_helper(node.right, path + "1")

    coding_helper(root, "")
    return codings


def write_header(root: HuffmanNode, bit_out: BitOutputStream) -> None:
    """Pre-order tree: 0 for an internal node, 1 + 9-bit symbol for a leaf."""
    if root.is_leaf():
        bit_out.write_bits(1, 1)
        bit_out.write_bits(BITS_PER_WORD + 1, root.symbol)
        return

    bit_out.write_bits(1, 0)
    write_header(root.left, bit_out)
    write_header(root.right, bit_out)


def read_tree_header(bit_in: BitInputStream, depth: int = 0) -> HuffmanNode:
    """
    Rebuild the tree written by write_header. The magic number must already
    have been read and checked.
    """
    bit = bit_in.read_bits(1)
    if bit == END_OF_INPUT:
        raise TruncatedHeaderError("bad input, tree header ends early")

    if bit == 0:
        if depth >= MAX_TREE_DEPTH:
            raise HuffFormatError(f"tree header nests deeper than {MAX_TREE_DEPTH} levels")
        left = read_tree_header(bit_in, depth + 1)
        right = read_tree_header(bit_in, depth + 1)
        return HuffmanNode(None, 0, left, right)

    symbol = bit_in.read_bits(BITS_PER_WORD + 1)
    if symbol == END_OF_INPUT:
        raise TruncatedHeaderError("bad input, leaf value cut off in tree header")
    if symbol > PSEUDO_EOF:
        raise HuffFormatError(f"tree header has out of range symbol {symbol}")
    return HuffmanNode(symbol, 0)


def write_compressed_bits(codings: Dict[int, str], bit_in: BitInputStream,
                          bit_out: BitOutputStream) -> None:
    """Write the code of every 8-bit chunk, then the code of PSEUDO_EOF."""
    while True:
        chunk = bit_in.read_bits(BITS_PER_WORD)
        if chunk == END_OF_INPUT:
            break
        code = codings[chunk]
        bit_out.write_bits(len(code), int(code, 2))

    code = codings[PSEUDO_EOF]
    if code:
        bit_out.write_bits(len(code), int(code, 2))


def read_compressed_bits(root: HuffmanNode, bit_in: BitInputStream,
                         bit_out: BitOutputStream) -> None:
    """Walk the tree one bit at a time, writing a byte at every non-EOF leaf."""
    if root.is_leaf():
        # only an empty input produces a one-leaf tree, and that leaf is EOF
        if root.symbol != PSEUDO_EOF:
            raise HuffFormatError(f"tree has a single leaf {root.symbol} and no PSEUDO_EOF")
        return

    current = root
    while True:
        bit = bit_in.read_bits(1)
        if bit == END_OF_INPUT:
            raise TruncatedPayloadError("bad input, no PSEUDO_EOF")

        current = current.left if bit == 0 else current.right
        if current.is_leaf():
            if current.symbol == PSEUDO_EOF:
                break
            bit_out.write_bits(BITS_PER_WORD, current.symbol)
            current = root


def compress(bit_in: BitInputStream, bit_out: BitOutputStream, debug: int = 0) -> int:
    """
    Compress bit_in into bit_out and close bit_out. bit_in is read twice.

    Returns the number of bits written, not counting the final padding.
    """
    counts = read_for_counts(bit_in)
    root = build_huffman_tree(counts)
    codings = make_codings_from_tree(root, debug)

    bit_out.write_bits(BITS_PER_INT, HUFF_TREE)
    write_header(root, bit_out)
    if debug >= DEBUG_LOW:
        print(f"compress: {len(codings)} symbols, header ends at bit {bit_out.bits_written}")

    bit_in.reset()
    write_compressed_bits(codings, bit_in, bit_out)
    bit_out.close()
    return bit_out.bits_written


def decompress(bit_in: BitInputStream, bit_out: BitOutputStream, debug: int = 0) -> int:
    """
    Decompress bit_in into bit_out and close bit_out.

    A bad magic number raises HuffFormatError before anything is written.
    Returns the number of bits written.
    """
    bits = bit_in.read_bits(BITS_PER_INT)
    if bits != HUFF_TREE:
        if bits == END_OF_INPUT:
            raise HuffFormatError("illegal header, input shorter than the magic number")
        raise HuffFormatError(f"illegal header starts with {bits:#010x}")

    root = read_tree_header(bit_in)
    if debug >= DEBUG_LOW:
        print(f"decompress: tree header ends at bit {bit_in.bits_read}")
    if debug >= DEBUG_HIGH:
        make_codings_from_tree(root, debug)

    read_compressed_bits(root, bit_in, bit_out)
    bit_out.close()
    return bit_out.bits_written


def compress_bytes(data: bytes, debug: int = 0) -> bytes:
    sink = io.BytesIO()
    compress(BitInputStream(io.BytesIO(data)), BitOutputStream(sink), debug)
    return sink.getvalue()


def decompress_bytes(blob: bytes, debug: int = 0) -> bytes:
    sink = io.BytesIO()
    decompress(BitInputStream(io.BytesIO(blob)), BitOutputStream(sink), debug)
    return sink.getvalue()
