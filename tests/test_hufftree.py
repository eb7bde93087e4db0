import io
import random

import pytest

import hufftree as huff
from huffbits import BitInputStream, BitOutputStream

# magic, tree header (0 0 1:'b' 1:EOF 1:'a'), payload 1 1 1 00 01 + one pad bit
AAAB_COMPRESSED = bytes.fromhex("face8201" "262c0261" "e2")
EMPTY_COMPRESSED = bytes.fromhex("face8201" "c000")


def counts_of(data: bytes):
    return huff.read_for_counts(BitInputStream(io.BytesIO(data)))


def codes_of(data: bytes):
    return huff.make_codings_from_tree(huff.build_huffman_tree(counts_of(data)))


def is_prefix_free(codes) -> bool:
    ordered = sorted(codes.values())
    return all(not b.startswith(a) for a, b in zip(ordered, ordered[1:]))


def test_counts_always_include_one_pseudo_eof():
    counts = counts_of(b"aaab")
    assert len(counts) == huff.ALPH_SIZE + 1
    assert counts[ord("a")] == 3
    assert counts[ord("b")] == 1
    assert counts[huff.PSEUDO_EOF] == 1
    assert sum(counts) == 5

    empty = counts_of(b"")
    assert empty[huff.PSEUDO_EOF] == 1
    assert sum(empty) == 1


def test_aaab_codes_follow_insertion_order_tie_break():
    assert codes_of(b"aaab") == {ord("b"): "00", huff.PSEUDO_EOF: "01", ord("a"): "1"}


def test_leaf_pops_before_later_merged_node_of_equal_weight():
    # a+b merge to weight 2, which then ties with leaf c; c must pop first
    assert codes_of(b"abcc") == {
        ord("a"): "00",
        ord("b"): "01",
        huff.PSEUDO_EOF: "10",
        ord("c"): "11",
    }


def test_aaab_compresses_to_known_bytes():
    assert huff.compress_bytes(b"aaab") == AAAB_COMPRESSED
    assert huff.decompress_bytes(AAAB_COMPRESSED) == b"aaab"


def test_empty_input_is_single_eof_leaf():
    root = huff.build_huffman_tree(counts_of(b""))
    assert root.is_leaf()
    assert root.symbol == huff.PSEUDO_EOF
    assert huff.make_codings_from_tree(root) == {huff.PSEUDO_EOF: ""}

    assert huff.compress_bytes(b"") == EMPTY_COMPRESSED
    assert huff.decompress_bytes(EMPTY_COMPRESSED) == b""


def test_single_distinct_byte_still_gets_two_leaves():
    codes = codes_of(b"zzzzzzzz")
    assert set(codes) == {ord("z"), huff.PSEUDO_EOF}
    assert all(len(c) == 1 for c in codes.values())


def test_empty_frequency_table_rejected():
    with pytest.raises(ValueError):
        huff.build_huffman_tree([0] * (huff.ALPH_SIZE + 1))


@pytest.mark.parametrize("data", [
    b"",
    b"x",
    b"hello, world",
    bytes(range(256)) * 3,
    b"\x00" * 1000 + b"\xff",
    "día de Huffman, ça marche".encode("utf-8"),
])
def test_roundtrip(data):
    assert huff.decompress_bytes(huff.compress_bytes(data)) == data


def test_roundtrip_random_data():
    rng = random.Random(2018)
    for size in (1, 7, 100, 5000):
        data = bytes(rng.randrange(256) for _ in range(size))
        assert huff.decompress_bytes(huff.compress_bytes(data)) == data


def test_codes_are_prefix_free():
    rng = random.Random(7)
    data = bytes(rng.choices(range(40), weights=[i + 10 for i in range(40)], k=3000))
    codes = codes_of(data)
    assert len(codes) == 41
    assert is_prefix_free(codes)


def test_compression_is_deterministic():
    data = b"abracadabra" * 50 + bytes(range(256))
    assert huff.compress_bytes(data) == huff.compress_bytes(data)


def test_skewed_input_shrinks():
    data = b"a" * 900 + b"b" * 90 + b"c" * 10
    assert len(huff.compress_bytes(data)) < len(data) // 4


def test_header_roundtrip_keeps_paths():
    root = huff.build_huffman_tree(counts_of(b"the quick brown fox jumps over the lazy dog"))
    sink = io.BytesIO()
    bit_out = BitOutputStream(sink)
    huff.write_header(root, bit_out)
    bit_out.close()

    rebuilt = huff.read_tree_header(BitInputStream(io.BytesIO(sink.getvalue())))
    assert huff.make_codings_from_tree(rebuilt) == huff.make_codings_from_tree(root)


def test_debug_high_prints_every_code(capsys):
    huff.compress_bytes(b"aaab", debug=huff.DEBUG_HIGH)
    out = capsys.readouterr().out
    assert "encoding for 97 is 1" in out
    assert "encoding for 256 is 01" in out


def test_compress_returns_bits_written():
    sink = io.BytesIO()
    bit_in = BitInputStream(io.BytesIO(b"aaab"))
    bits = huff.compress(bit_in, BitOutputStream(sink))
    assert bits == 32 + 32 + 7
    assert len(sink.getvalue()) == 9
    # counted from the rewind, so only the encoding pass
    assert bit_in.bits_read == 32


def test_bad_magic_is_format_error_and_writes_nothing():
    sink = io.BytesIO()
    blob = b"\x00\x00\x00\x00" + AAAB_COMPRESSED[4:]
    with pytest.raises(huff.HuffFormatError):
        huff.decompress(BitInputStream(io.BytesIO(blob)), BitOutputStream(sink))
    assert sink.getvalue() == b""


def test_input_shorter_than_magic_is_format_error():
    with pytest.raises(huff.HuffFormatError):
        huff.decompress_bytes(b"\xfa\xce")


def test_truncated_header():
    with pytest.raises(huff.TruncatedHeaderError) as err:
        huff.decompress_bytes(AAAB_COMPRESSED[:6])
    assert err.value.section == "header"
    assert isinstance(err.value, huff.TruncatedInputError)


def test_truncated_payload():
    with pytest.raises(huff.TruncatedPayloadError) as err:
        huff.decompress_bytes(AAAB_COMPRESSED[:8])
    assert err.value.section == "payload"
    assert not isinstance(err.value, huff.HuffFormatError)


def test_truncated_payload_of_longer_input():
    blob = huff.compress_bytes(b"abcdefghij" * 20)
    with pytest.raises(huff.TruncatedInputError):
        huff.decompress_bytes(blob[:len(blob) // 2])


def test_header_symbol_out_of_range():
    # leaf flag then 111111111 (511)
    with pytest.raises(huff.HuffFormatError):
        huff.decompress_bytes(bytes.fromhex("face8201") + b"\xff\xc0")


def test_header_nesting_too_deep():
    with pytest.raises(huff.HuffFormatError):
        huff.decompress_bytes(bytes.fromhex("face8201") + b"\x00" * 40)


def test_single_leaf_tree_without_eof():
    # leaf flag then 001100001 ('a')
    with pytest.raises(huff.HuffFormatError):
        huff.decompress_bytes(bytes.fromhex("face8201") + b"\x98\x40")
