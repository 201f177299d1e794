import random

import pytest

from bitio import BitReader, BitWriter
from huffman import (
    EOF_SYMBOL,
    CodeTableError,
    GrinFormatError,
    HuffmanTree,
    TruncatedStreamError,
    build_huffman_tree,
    deserialize_tree,
    generate_huffman_codes,
    huffman_decode,
    huffman_encode,
    serialize_tree,
)


def same_shape(a, b):
    if a.is_leaf() or b.is_leaf():
        return a.is_leaf() and b.is_leaf() and a.symbol == b.symbol
    return same_shape(a.left, b.left) and same_shape(a.right, b.right)


def random_model(seed):
    rng = random.Random(seed)
    symbols = rng.sample(range(256), rng.randint(1, 256))
    return {s: rng.randint(1, 1000) for s in symbols}


def leaves(node):
    if node.is_leaf():
        return [node]
    return leaves(node.left) + leaves(node.right)


def test_scenario_merges_lowest_pairs_with_symbol_tiebreak():
    A, B, C = ord('A'), ord('B'), ord('C')
    root = build_huffman_tree({A: 5, B: 2, C: 1})
    codes = generate_huffman_codes(root)

    assert not root.is_leaf()
    assert root.frequency == 9
    # C and EOF are merged first, C on the left
    assert codes == {A: "1", B: "00", C: "010", EOF_SYMBOL: "011"}
    assert len(codes[A]) <= len(codes[B]) <= len(codes[C]) == len(codes[EOF_SYMBOL])


def test_eof_weight_is_always_one():
    A, B, C = ord('A'), ord('B'), ord('C')
    freqs = {A: 5, B: 2, C: 1, EOF_SYMBOL: 40}
    codes = generate_huffman_codes(build_huffman_tree(freqs))
    assert codes[EOF_SYMBOL] == "011"
    assert freqs[EOF_SYMBOL] == 40  # caller's table untouched


def test_out_of_range_symbol_rejected():
    with pytest.raises(ValueError):
        build_huffman_tree({300: 4})


@pytest.mark.parametrize("seed", range(20))
def test_codes_are_prefix_free(seed):
    codes = list(generate_huffman_codes(build_huffman_tree(random_model(seed))).values())
    for i, a in enumerate(codes):
        assert a
        for j, b in enumerate(codes):
            if i != j:
                assert not b.startswith(a)


@pytest.mark.parametrize("seed", range(10))
def test_building_twice_gives_identical_codes(seed):
    model = random_model(seed)
    first = generate_huffman_codes(build_huffman_tree(model))
    second = generate_huffman_codes(build_huffman_tree(dict(reversed(list(model.items())))))
    assert first == second


def test_all_equal_weights_are_deterministic():
    model = {s: 7 for s in range(256)}
    assert generate_huffman_codes(build_huffman_tree(model)) == generate_huffman_codes(build_huffman_tree(model))


def test_one_leaf_per_symbol_plus_eof():
    model = random_model(3)
    symbols = sorted(n.symbol for n in leaves(build_huffman_tree(model)))
    assert symbols == sorted(model) + [EOF_SYMBOL]


def test_single_symbol_model_has_two_leaves():
    root = build_huffman_tree({0x41: 1000})
    assert sorted(n.symbol for n in leaves(root)) == [0x41, EOF_SYMBOL]
    codes = generate_huffman_codes(root)
    assert all(len(code) == 1 for code in codes.values())


def test_empty_model_still_builds_two_leaves():
    root = build_huffman_tree({})
    assert not root.is_leaf()
    assert generate_huffman_codes(root) == {0: "0", EOF_SYMBOL: "1"}


@pytest.mark.parametrize("seed", range(10))
def test_tree_survives_serialization(seed):
    root = build_huffman_tree(random_model(seed))
    w = BitWriter()
    serialize_tree(root, w)
    restored = deserialize_tree(BitReader(w.getvalue()))
    assert same_shape(root, restored)
    assert generate_huffman_codes(restored) == generate_huffman_codes(root)


def test_serialized_leaf_layout():
    w = BitWriter()
    serialize_tree(build_huffman_tree({}), w)
    # 1, then leaf 0 (0 + 000000000), then leaf 256 (0 + 100000000)
    assert w.bits_written == 21
    r = BitReader(w.getvalue())
    assert r.read_bit() == 1
    assert r.read_bit() == 0
    assert r.read_bits(9) == 0
    assert r.read_bit() == 0
    assert r.read_bits(9) == EOF_SYMBOL


def test_deserialize_truncated_header():
    w = BitWriter()
    w.write_bit(1)
    w.write_bit(0)
    w.write_bits(65, 9)
    with pytest.raises(GrinFormatError):
        deserialize_tree(BitReader(w.getvalue()))


def test_deserialize_empty_source():
    with pytest.raises(GrinFormatError):
        deserialize_tree(BitReader(b""))


def test_deserialize_rejects_symbol_above_eof():
    w = BitWriter()
    w.write_bit(1)
    w.write_bit(0)
    w.write_bits(300, 9)
    w.write_bit(0)
    w.write_bits(EOF_SYMBOL, 9)
    with pytest.raises(GrinFormatError, match="invalid symbol"):
        deserialize_tree(BitReader(w.getvalue()))


def test_deserialize_rejects_repeated_symbol():
    w = BitWriter()
    w.write_bit(1)
    w.write_bit(0)
    w.write_bits(7, 9)
    w.write_bit(0)
    w.write_bits(7, 9)
    with pytest.raises(GrinFormatError, match="repeats"):
        deserialize_tree(BitReader(w.getvalue()))


def test_deserialize_rejects_bare_leaf():
    w = BitWriter()
    w.write_bit(0)
    w.write_bits(65, 9)
    with pytest.raises(GrinFormatError, match="single leaf"):
        deserialize_tree(BitReader(w.getvalue()))


def test_deserialize_rejects_tree_without_eof_leaf():
    w = BitWriter()
    w.write_bit(1)
    w.write_bit(0)
    w.write_bits(ord("a"), 9)
    w.write_bit(0)
    w.write_bits(ord("b"), 9)
    with pytest.raises(GrinFormatError, match="no end-of-stream leaf"):
        deserialize_tree(BitReader(w.getvalue()))


def test_deserialize_rejects_runaway_nesting():
    with pytest.raises(GrinFormatError):
        deserialize_tree(BitReader(b"\xff" * 64))


def test_encode_appends_exactly_one_eof_code():
    data = b"abracadabra"
    tree = HuffmanTree.from_frequencies({b: data.count(b) for b in set(data)})
    w = BitWriter()
    tree.encode(data, w)
    expected = sum(len(tree.codes[b]) for b in data) + len(tree.codes[EOF_SYMBOL])
    assert w.bits_written == expected
    assert tree.decode(BitReader(w.getvalue())) == data


def test_encode_missing_code_is_internal_error():
    w = BitWriter()
    with pytest.raises(CodeTableError):
        huffman_encode(b"B", {ord('A'): "0", EOF_SYMBOL: "1"}, w)


def test_decode_without_eof_is_truncated():
    root = build_huffman_tree({ord('A'): 3})
    with pytest.raises(TruncatedStreamError):
        huffman_decode(root, BitReader(b""))


def test_decode_stops_at_eof_and_ignores_padding():
    root = build_huffman_tree({ord('A'): 5, ord('B'): 2, ord('C'): 1})
    w = BitWriter()
    # B A C EOF then junk bits that must never be read
    for code in ("00", "1", "010", "011", "1111"):
        w.write_bits(int(code, 2), len(code))
    assert huffman_decode(root, BitReader(w.getvalue())) == b"BAC"


def test_code_table_is_read_only():
    tree = HuffmanTree.from_frequencies({1: 1})
    with pytest.raises(TypeError):
        tree.codes[1] = "0"
