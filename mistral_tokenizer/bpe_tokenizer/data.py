import os
import threading
from dataclasses import dataclass
from typing import Dict, List, Tuple

from loguru import logger

from mistral_tokenizer.bpe_tokenizer.errors import MalformedDataError
from mistral_tokenizer.bpe_tokenizer.merges import MergeTable
from mistral_tokenizer.bpe_tokenizer.utils import encode_merges_blob, encode_vocabulary_blob
from mistral_tokenizer.bpe_tokenizer.vocabulary import Vocabulary


UNK_TOKEN_ID = 0
BOS_TOKEN_ID = 1
EOS_TOKEN_ID = 2
# "▁" in the Mistral vocabulary
SPACE_TOKEN_ID = 28705


@dataclass(frozen=True)
class TokenizerData:
    """
    Vocabulary and merge table shared read-only by every encode/decode call.
    Build it once and hand the same instance to each MistralTokenizer.
    """

    vocabulary: Vocabulary
    merges: MergeTable
    space_token_id: int = SPACE_TOKEN_ID
    bos_token_id: int = BOS_TOKEN_ID
    unk_token_id: int = UNK_TOKEN_ID

    def __post_init__(self) -> None:
        for name in ("space_token_id", "bos_token_id", "unk_token_id"):
            token_id = getattr(self, name)
            if not 0 <= token_id < len(self.vocabulary):
                raise MalformedDataError(f"{name}={token_id} is outside the vocabulary of size {len(self.vocabulary)}")

    @property
    def space_token(self) -> str:
        return self.vocabulary.id_to_string(self.space_token_id)

    @classmethod
    def from_base64(
        cls,
        vocab_blob: str | bytes,
        merges_blob: str | bytes,
        space_token_id: int = SPACE_TOKEN_ID,
    ) -> "TokenizerData":
        vocabulary = Vocabulary.from_blob(vocab_blob)
        merges = MergeTable.from_blob(merges_blob, vocabulary)
        return cls(vocabulary, merges, space_token_id=space_token_id)

    @classmethod
    def from_files(
        cls,
        vocab_filepath: str | os.PathLike,
        merges_filepath: str | os.PathLike,
        space_token_id: int = SPACE_TOKEN_ID,
    ) -> "TokenizerData":
        """
        Args:
            vocab_filepath: text file holding the base64 vocabulary blob
            merges_filepath: text file holding the base64 merge blob
            space_token_id: id of the "▁" token

        Returns:
            TokenizerData
        """
        with open(vocab_filepath, "r", encoding="ascii") as f:
            vocab_blob = f.read().strip()
        with open(merges_filepath, "r", encoding="ascii") as f:
            merges_blob = f.read().strip()
        return cls.from_base64(vocab_blob, merges_blob, space_token_id=space_token_id)

    def to_files(self, vocab_filepath: str | os.PathLike, merges_filepath: str | os.PathLike) -> None:
        os.makedirs(os.path.dirname(vocab_filepath) or ".", exist_ok=True)
        os.makedirs(os.path.dirname(merges_filepath) or ".", exist_ok=True)

        pairs = self.merges.pairs
        if pairs is None:
            pairs = self.merge_pairs_from_ranks()

        with open(vocab_filepath, "w", encoding="ascii") as f:
            f.write(encode_vocabulary_blob(self.vocabulary.id_to_token))
        with open(merges_filepath, "w", encoding="ascii") as f:
            f.write(encode_merges_blob(pairs))

    def merge_pairs_from_ranks(self) -> List[Tuple[int, int]]:
        """
        从 ranks 字典重建 id 对 (只用于不是从 blob 构建的 MergeTable)
        重复的 token 字符串取反查表中的 id
        """
        pairs = []
        for identifier, _ in sorted(self.merges.ranks.items(), key=lambda item: item[1]):
            left, right = identifier.split(" ", 1)
            pairs.append((self.vocabulary.token_to_id[left], self.vocabulary.token_to_id[right]))
        return pairs


_cache: Dict[Tuple[str, str, int], TokenizerData] = {}
_cache_lock = threading.Lock()


def load_tokenizer_data(
    vocab_filepath: str | os.PathLike,
    merges_filepath: str | os.PathLike,
    space_token_id: int = SPACE_TOKEN_ID,
) -> TokenizerData:
    """
    Process-wide cached TokenizerData.from_files. Each distinct set of
    arguments is built at most once; a failed build is not cached.
    """
    key = (os.path.abspath(vocab_filepath), os.path.abspath(merges_filepath), space_token_id)
    with _cache_lock:
        data = _cache.get(key)
        if data is None:
            logger.info(f"Loading tokenizer data from {key[0]} and {key[1]}")
            data = TokenizerData.from_files(vocab_filepath, merges_filepath, space_token_id=space_token_id)
            _cache[key] = data
    return data


def clear_tokenizer_data_cache() -> None:
    with _cache_lock:
        _cache.clear()
