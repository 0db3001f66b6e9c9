from typing import Dict, List, Optional, Tuple

import numpy as np
from loguru import logger

from mistral_tokenizer.bpe_tokenizer.errors import MalformedDataError
from mistral_tokenizer.bpe_tokenizer.utils import decode_base64
from mistral_tokenizer.bpe_tokenizer.vocabulary import Vocabulary


class MergeTable:
    """
    Maps "<left token> <right token>" to the rank of that merge.
    Lower rank merges first.
    """

    def __init__(
        self,
        ranks: Dict[str, int],
        vocabulary: Vocabulary,
        pairs: Optional[List[Tuple[int, int]]] = None,
    ) -> None:
        self.ranks = ranks
        self.vocabulary = vocabulary
        # 按 blob 中的原始顺序保存 id 对, to_files 原样写回
        self.pairs = pairs

    @classmethod
    def from_blob(cls, blob: str | bytes, vocabulary: Vocabulary) -> "MergeTable":
        """
        The blob is base64 over a flat array of little-endian uint16 token ids.
        Ids are read two at a time; the k-th pair becomes the merge with rank 2k + 1.
        """
        raw = decode_base64(blob)
        if len(raw) % 2 != 0:
            raise MalformedDataError(f"Merge blob has odd byte length {len(raw)}")

        token_ids = np.frombuffer(raw, dtype="<u2")
        if len(token_ids) % 2 != 0:
            raise MalformedDataError(f"Merge blob holds {len(token_ids)} token ids, expected an even count")
        if len(token_ids) and int(token_ids.max()) >= len(vocabulary):
            raise MalformedDataError(
                f"Merge blob references token id {int(token_ids.max())}, vocabulary size is {len(vocabulary)}"
            )

        ranks: Dict[str, int] = {}
        pairs: List[Tuple[int, int]] = []
        token_ids = token_ids.tolist()
        for i in range(0, len(token_ids), 2):
            pairs.append((token_ids[i], token_ids[i + 1]))
            left = vocabulary.id_to_token[token_ids[i]]
            right = vocabulary.id_to_token[token_ids[i + 1]]
            ranks[f"{left} {right}"] = i + 1

        logger.info(f"Loaded {len(ranks)} merges")
        return cls(ranks, vocabulary, pairs=pairs)

    def identifier(self, left_id: int, right_id: int) -> str:
        return f"{self.vocabulary.id_to_string(left_id)} {self.vocabulary.id_to_string(right_id)}"

    def rank_of(self, left_id: int, right_id: int) -> Optional[int]:
        return self.ranks.get(self.identifier(left_id, right_id))

    def __len__(self) -> int:
        return len(self.ranks)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self.ranks
