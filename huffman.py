"""
Huffman coding over the 9-bit GRIN alphabet.

Symbols 0..255 are literal bytes and 256 is the end-of-stream marker, so
every symbol needs 9 bits when it is written into a tree header.
"""

import heapq
from types import MappingProxyType

EOF_SYMBOL = 256
SYMBOL_BITS = 9
MAX_TREE_DEPTH = EOF_SYMBOL # 257 leaves can sit at most 256 edges below the root


class GrinError(ValueError):
    """Base class for everything the codec raises."""


class GrinFormatError(GrinError):
    """Input is not a well-formed GRIN stream."""


class TruncatedStreamError(GrinFormatError):
    """Payload ran out of bits before the end-of-stream code was seen."""


class CodeTableError(GrinError):
    """A symbol has no code in the table it is being encoded with."""


class HuffmanNode: # Node for Huffman tree
    def __init__(self, symbol, frequency):
        self.symbol = symbol    # 0..256, or None for internal nodes
        self.frequency = frequency
        self.min_symbol = symbol # smallest symbol in this subtree, breaks frequency ties
        self.left = None
        self.right = None

    @classmethod
    def merge(cls, left, right):
        node = cls(None, left.frequency + right.frequency)
        node.left = left
        node.right = right
        node.min_symbol = min(left.min_symbol, right.min_symbol)
        return node

    def is_leaf(self):
        return self.left is None and self.right is None

    def __lt__(self, other):
        # equal weights: the subtree holding the lower symbol comes out first
        return (self.frequency, self.min_symbol) < (other.frequency, other.min_symbol)

    def __repr__(self):
        if self.is_leaf():
            return f"HuffmanNode(symbol={self.symbol}, frequency={self.frequency})"
        return f"HuffmanNode(internal, frequency={self.frequency})"


def build_huffman_tree(frequency_table): # frequency_table: dict of symbol -> count
    """
    Build the Huffman tree for a frequency model.

    The end-of-stream symbol is always added with a weight of 1, whatever
    the table says about it. A table with no byte symbols gets a
    zero-weight leaf for byte 0 so the root is never a bare leaf.
    The caller's table is left untouched.
    """
    freqs = {symbol: count for symbol, count in frequency_table.items() if symbol != EOF_SYMBOL}
    for symbol in freqs:
        if not 0 <= symbol < EOF_SYMBOL:
            raise ValueError(f"symbol {symbol} is outside the byte range")
    if not freqs:
        freqs[0] = 0
    freqs[EOF_SYMBOL] = 1

    priority_queue = [HuffmanNode(symbol, freqs[symbol]) for symbol in sorted(freqs)]
    heapq.heapify(priority_queue)

    while len(priority_queue) > 1:
        left = heapq.heappop(priority_queue)
        right = heapq.heappop(priority_queue)
        heapq.heappush(priority_queue, HuffmanNode.merge(left, right))

    return priority_queue[0]


def generate_huffman_codes(root): # root: root of the Huffman tree
    codes = {}
    def generate_codes_helper(node, current_code):
        if node.is_leaf():
            codes[node.symbol] = current_code
            return
        generate_codes_helper(node.left, current_code + '0')
        generate_codes_helper(node.right, current_code + '1')

    generate_codes_helper(root, '')
    return codes


def serialize_tree(root, writer):
    """
    Write the tree in pre-order: a leaf is a 0 bit and its 9-bit symbol,
    an internal node is a 1 bit followed by its left then right subtree.
    """
    if root.is_leaf():
        writer.write_bit(0)
        writer.write_bits(root.symbol, SYMBOL_BITS)
    else:
        writer.write_bit(1)
        serialize_tree(root.left, writer)
        serialize_tree(root.right, writer)


def deserialize_tree(reader):
    """Read a tree written by serialize_tree. Frequencies come back as 0."""
    seen = set()

    def read_node(depth):
        if depth > MAX_TREE_DEPTH:
            raise GrinFormatError("tree header nests deeper than any valid tree")
        bit = reader.read_bit()
        if bit is None:
            raise GrinFormatError("input ended inside the tree header")
        if bit == 0:
            symbol = reader.read_bits(SYMBOL_BITS)
            if symbol is None:
                raise GrinFormatError("input ended inside the tree header")
            if symbol > EOF_SYMBOL:
                raise GrinFormatError(f"tree header holds invalid symbol {symbol}")
            if symbol in seen:
                raise GrinFormatError(f"tree header repeats symbol {symbol}")
            seen.add(symbol)
            return HuffmanNode(symbol, 0)
        left = read_node(depth + 1)
        right = read_node(depth + 1)
        return HuffmanNode.merge(left, right)

    root = read_node(0)
    if root.is_leaf():
        raise GrinFormatError("tree header holds a single leaf")
    if EOF_SYMBOL not in seen:
        raise GrinFormatError("tree header has no end-of-stream leaf")
    return root


def huffman_encode(data, code_map, writer): # data: bytes to encode, code_map: dict of symbol -> code
    """Write the code of every byte in data, then the end-of-stream code."""
    packed = {symbol: (int(code, 2), len(code)) for symbol, code in code_map.items()}
    try:
        for byte in data:
            writer.write_bits(*packed[byte])
        writer.write_bits(*packed[EOF_SYMBOL])
    except KeyError as e:
        raise CodeTableError(f"no code for symbol {e.args[0]}") from None


def huffman_decode(root, reader):
    """
    Walk the tree one bit at a time until the end-of-stream leaf.
    Bits after that leaf are padding and are not read.
    """
    decoded = bytearray()
    node = root
    while True:
        bit = reader.read_bit()
        if bit is None:
            raise TruncatedStreamError(f"input ended after {len(decoded)} bytes without an end-of-stream code")
        node = node.right if bit else node.left

        if node.is_leaf():
            if node.symbol == EOF_SYMBOL:
                return bytes(decoded)
            decoded.append(node.symbol)
            node = root # reset to the root for the next symbol


class HuffmanTree:
    """A tree and its code table, owned by a single encode or decode."""

    def __init__(self, root):
        self.root = root
        self._codes = generate_huffman_codes(root)

    @classmethod
    def from_frequencies(cls, frequency_table):
        return cls(build_huffman_tree(frequency_table))

    @classmethod
    def from_stream(cls, reader):
        return cls(deserialize_tree(reader))

    @property
    def codes(self):
        return MappingProxyType(self._codes)

    def serialize(self, writer):
        serialize_tree(self.root, writer)

    def encode(self, data, writer):
        huffman_encode(data, self._codes, writer)

    def decode(self, reader):
        return huffman_decode(self.root, reader)
