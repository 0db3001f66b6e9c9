import pytest
from loguru import logger

from mistral_tokenizer.bpe_tokenizer.data import TokenizerData
from mistral_tokenizer.bpe_tokenizer.tokenizer import MistralTokenizer
from mistral_tokenizer.bpe_tokenizer.utils import byte_to_token, encode_merges_blob, encode_vocabulary_blob


# Same layout as the Mistral vocabulary: specials, then 256 byte tokens at ids 3..258
SPECIAL_TOKENS = ["<unk>", "<s>", "</s>"]
BYTE_TOKENS = [byte_to_token(b) for b in range(256)]
TEXT_TOKENS = [
    "▁▁",  # 259
    "▁",  # 260
    "a",  # 261
    "b",  # 262
    "d",  # 263
    "e",  # 264
    "g",  # 265
    "r",  # 266
    "x",  # 267
    "o",  # 268
    "#",  # 269
    "ed",  # 270
    "ab",  # 271
    "bed",  # 272
    "gr",  # 273
    "grab",  # 274
    "grabbed",  # 275
    "▁▁▁▁",  # 276
    "▁grabbed",  # 277
    "▁▁▁",  # 278
    "##",  # 279
    "####",  # 280
    "ax",  # 281
    "▁ax",  # 282
    "bo",  # 283
    "oo",  # 284
    "镇",  # 285
]
VOCAB = SPECIAL_TOKENS + BYTE_TOKENS + TEXT_TOKENS
TOKEN_IDS = {token: idx for idx, token in enumerate(VOCAB)}

# listed in rank order; the k-th merge gets rank 2k + 1
MERGES = [
    ("e", "d"),
    ("a", "b"),
    ("▁", "▁"),
    ("b", "ed"),
    ("g", "r"),
    ("gr", "ab"),
    ("grab", "bed"),
    ("▁▁", "▁▁"),
    ("▁", "grabbed"),
    ("▁▁", "▁"),
    ("#", "#"),
    ("##", "##"),
    ("a", "x"),
    ("▁", "ax"),
    ("b", "o"),
    ("o", "o"),
]
SPACE_TOKEN_ID = TOKEN_IDS["▁"]


def make_blobs(vocab=VOCAB, merges=MERGES):
    ids = {token: idx for idx, token in enumerate(vocab)}
    return encode_vocabulary_blob(vocab), encode_merges_blob([(ids[a], ids[b]) for a, b in merges])


@pytest.fixture(scope="session")
def blobs():
    return make_blobs()


@pytest.fixture(scope="session")
def tokenizer_data(blobs):
    vocab_blob, merges_blob = blobs
    return TokenizerData.from_base64(vocab_blob, merges_blob, space_token_id=SPACE_TOKEN_ID)


@pytest.fixture
def tokenizer(tokenizer_data):
    return MistralTokenizer(tokenizer_data)


@pytest.fixture
def log_messages():
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
