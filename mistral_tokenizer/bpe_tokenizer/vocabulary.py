from typing import Dict, List, Optional, Sequence

from loguru import logger

from mistral_tokenizer.bpe_tokenizer.errors import InvalidTokenIdError, MalformedDataError
from mistral_tokenizer.bpe_tokenizer.utils import decode_base64


class Vocabulary:
    """
    Read-only two-way mapping between token ids and token strings.

    Most entries are plain text pieces such as "er" or "▁t", where "▁" stands
    for a space. Ids 0, 1 and 2 are "<unk>", "<s>" and "</s>", followed by the
    256 byte-fallback tokens "<0x00>" .. "<0xFF>".
    """

    def __init__(self, tokens: Sequence[str]) -> None:
        self.id_to_token: List[str] = list(tokens)
        # later ids win when a string appears twice
        self.token_to_id: Dict[str, int] = {token: idx for idx, token in enumerate(self.id_to_token)}

    @classmethod
    def from_blob(cls, blob: str | bytes) -> "Vocabulary":
        """
        Args:
            blob: base64 text whose payload is the utf-8 vocabulary, one entry
                per line; the line number is the token id

        Returns:
            Vocabulary
        """
        raw = decode_base64(blob)
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedDataError(f"Vocabulary blob is not valid utf-8: {e}") from e

        vocabulary = cls(text.split("\n"))
        logger.info(f"Loaded vocabulary with {len(vocabulary)} tokens")
        return vocabulary

    def id_to_string(self, token_id: int) -> str:
        if not 0 <= token_id < len(self.id_to_token):
            raise InvalidTokenIdError(token_id, len(self.id_to_token))
        return self.id_to_token[token_id]

    def string_to_id(self, token: str) -> Optional[int]:
        return self.token_to_id.get(token)

    def __len__(self) -> int:
        return len(self.id_to_token)

    def __contains__(self, token: object) -> bool:
        return token in self.token_to_id
