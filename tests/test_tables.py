import base64

import pytest

from mistral_tokenizer.bpe_tokenizer.errors import InvalidTokenIdError, MalformedDataError
from mistral_tokenizer.bpe_tokenizer.merges import MergeTable
from mistral_tokenizer.bpe_tokenizer.utils import (
    byte_to_token,
    decode_base64,
    encode_merges_blob,
    encode_vocabulary_blob,
    token_to_byte,
    utf8_bytes,
)
from mistral_tokenizer.bpe_tokenizer.vocabulary import Vocabulary

from conftest import MERGES, TOKEN_IDS, VOCAB


def test_byte_token_helpers():
    assert byte_to_token(0) == "<0x00>"
    assert byte_to_token(10) == "<0x0A>"
    assert byte_to_token(127) == "<0x7F>"
    assert byte_to_token(255) == "<0xFF>"
    assert token_to_byte("<0x00>") == 0
    assert token_to_byte("<0x1F>") == 31
    assert token_to_byte("<0xff>") == 255


@pytest.mark.parametrize("token", ["", "a", "<0x>", "<0xG1>", "<0x100>", "<0x0A", "x<0x0A>"])
def test_token_to_byte_rejects_non_byte_tokens(token):
    assert token_to_byte(token) is None


def test_vocabulary_from_blob(blobs):
    vocabulary = Vocabulary.from_blob(blobs[0])
    assert len(vocabulary) == len(VOCAB)
    assert vocabulary.id_to_string(0) == "<unk>"
    assert vocabulary.id_to_string(1) == "<s>"
    assert vocabulary.id_to_string(13) == "<0x0A>"
    assert vocabulary.string_to_id("grabbed") == TOKEN_IDS["grabbed"]
    assert "▁" in vocabulary


def test_vocabulary_lookup_is_exact(tokenizer_data):
    vocabulary = tokenizer_data.vocabulary
    assert vocabulary.string_to_id("grab") == TOKEN_IDS["grab"]
    assert vocabulary.string_to_id("gra") is None
    assert vocabulary.string_to_id("Grab") is None
    assert vocabulary.string_to_id("grabbed ") is None


@pytest.mark.parametrize("token_id", [-1, len(VOCAB), 10**6])
def test_vocabulary_rejects_out_of_range_ids(tokenizer_data, token_id):
    with pytest.raises(InvalidTokenIdError):
        tokenizer_data.vocabulary.id_to_string(token_id)


def test_vocabulary_keeps_empty_entries():
    vocabulary = Vocabulary.from_blob(base64.b64encode("a\n\nb".encode("utf-8")))
    assert len(vocabulary) == 3
    assert vocabulary.id_to_string(1) == ""


def test_vocabulary_rejects_invalid_base64():
    with pytest.raises(MalformedDataError):
        Vocabulary.from_blob("not@@base64")


def test_vocabulary_rejects_invalid_utf8():
    with pytest.raises(MalformedDataError):
        Vocabulary.from_blob(base64.b64encode(b"ok\n\xff\xfe"))


def test_encode_vocabulary_blob_rejects_line_breaks():
    with pytest.raises(ValueError):
        encode_vocabulary_blob(["a", "b\nc"])


def test_merge_ranks_follow_blob_order(tokenizer_data):
    merges = tokenizer_data.merges
    assert len(merges) == len(MERGES)
    ranks = [merges.rank_of(TOKEN_IDS[a], TOKEN_IDS[b]) for a, b in MERGES]
    assert ranks == [2 * k + 1 for k in range(len(MERGES))]


def test_merge_lookup_is_ordered_and_exact(tokenizer_data):
    merges = tokenizer_data.merges
    assert merges.rank_of(TOKEN_IDS["e"], TOKEN_IDS["d"]) == 1
    assert merges.rank_of(TOKEN_IDS["d"], TOKEN_IDS["e"]) is None
    assert merges.rank_of(TOKEN_IDS["a"], TOKEN_IDS["o"]) is None
    assert merges.identifier(TOKEN_IDS["gr"], TOKEN_IDS["ab"]) == "gr ab"
    assert "gr ab" in merges


def test_merge_blob_with_odd_byte_length_is_malformed(tokenizer_data):
    blob = base64.b64encode(b"\x01\x00\x02")
    with pytest.raises(MalformedDataError):
        MergeTable.from_blob(blob, tokenizer_data.vocabulary)


def test_merge_blob_with_unpaired_id_is_malformed(tokenizer_data):
    blob = encode_merges_blob([(TOKEN_IDS["e"], TOKEN_IDS["d"])])
    raw = base64.b64decode(blob) + b"\x05\x00"
    with pytest.raises(MalformedDataError):
        MergeTable.from_blob(base64.b64encode(raw), tokenizer_data.vocabulary)


def test_merge_blob_with_out_of_range_id_is_malformed(tokenizer_data):
    blob = encode_merges_blob([(TOKEN_IDS["e"], len(VOCAB))])
    with pytest.raises(MalformedDataError):
        MergeTable.from_blob(blob, tokenizer_data.vocabulary)


def test_empty_merge_blob(tokenizer_data):
    assert len(MergeTable.from_blob("", tokenizer_data.vocabulary)) == 0


def test_merge_blob_is_little_endian(tokenizer_data):
    # 0x0110 = 272 ("bed"), 0x0104 = 260 ("▁")
    blob = base64.b64encode(bytes([0x04, 0x01, 0x10, 0x01]))
    merges = MergeTable.from_blob(blob, tokenizer_data.vocabulary)
    assert merges.rank_of(260, 272) == 1


def test_utf8_bytes():
    assert utf8_bytes("a") == b"a"
    assert utf8_bytes("🦙") == b"\xf0\x9f\xa6\x99"
    assert utf8_bytes("\ud83e") == b"\xef\xbf\xbd"


def test_line_wrapped_blobs_decode():
    payload = "\n".join(VOCAB).encode("utf-8")
    wrapped = base64.encodebytes(payload)
    assert b"\n" in wrapped.rstrip(b"\n")
    assert decode_base64(wrapped) == payload
    assert decode_base64(wrapped.decode("ascii").replace("\n", "\r\n")) == payload

    vocabulary = Vocabulary.from_blob(wrapped.decode("ascii"))
    assert vocabulary.id_to_token == VOCAB


def test_whitespace_does_not_hide_invalid_characters():
    with pytest.raises(MalformedDataError):
        decode_base64("YWJj\nZG@l\n")
