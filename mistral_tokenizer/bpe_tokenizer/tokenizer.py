import os
import time
from typing import Iterable, Iterator, List

import numpy as np
from loguru import logger
from tqdm import tqdm

from mistral_tokenizer.bpe_tokenizer.data import SPACE_TOKEN_ID, TokenizerData, load_tokenizer_data
from mistral_tokenizer.bpe_tokenizer.merger import BPEMerger
from mistral_tokenizer.bpe_tokenizer.utils import byte_to_token, token_to_byte, utf8_bytes


class MistralTokenizer:
    def __init__(self, data: TokenizerData, track_performance: bool = False) -> None:
        self.data = data
        self.vocabulary = data.vocabulary
        self.merger = BPEMerger(data.vocabulary, data.merges)
        self.track_performance = track_performance

    @classmethod
    def from_files(
        cls,
        vocab_filepath: str | os.PathLike,
        merges_filepath: str | os.PathLike,
        space_token_id: int = SPACE_TOKEN_ID,
        track_performance: bool = False,
    ) -> "MistralTokenizer":
        """
        Args:
            vocab_filepath: base64 vocabulary blob
            merges_filepath: base64 merge blob
            space_token_id: id of the "▁" token
            track_performance: log the duration of every encode call

        Returns:
            MistralTokenizer backed by the process-wide cached tables
        """
        data = load_tokenizer_data(vocab_filepath, merges_filepath, space_token_id=space_token_id)
        return cls(data, track_performance=track_performance)

    @property
    def vocab_size(self) -> int:
        return len(self.vocabulary)

    def id_to_token(self, token_id: int) -> str:
        return self.vocabulary.id_to_string(token_id)

    def token_to_id(self, token: str) -> int | None:
        return self.vocabulary.string_to_id(token)

    def map_characters_to_token_ids(self, text: str, add_bos_token: bool, add_preceding_space: bool) -> List[int]:
        """
        每个字符对应一个 token
        不在词表中的字符退回到 utf-8 字节, 每个字节一个 <0xHH> token
        """
        token_ids = []
        if add_bos_token:
            token_ids.append(self.data.bos_token_id)

        if add_preceding_space:
            text = " " + text
        text = text.replace(" ", self.data.space_token)

        for char in text:
            token_id = self.vocabulary.string_to_id(char)
            if token_id is not None:
                token_ids.append(token_id)
                continue

            for byte in utf8_bytes(char):
                byte_token_id = self.vocabulary.string_to_id(byte_to_token(byte))
                if byte_token_id is not None:
                    token_ids.append(byte_token_id)
                    continue

                logger.warning(
                    f"Encountered unknown character {char!r} (utf-8 byte {byte}, token {byte_to_token(byte)} missing)"
                )
                if token_ids:
                    token_ids[-1] = self.data.unk_token_id
                else:
                    token_ids.append(self.data.unk_token_id)

        return token_ids

    def encode(self, text: str, add_bos_token: bool = True, add_preceding_space: bool = True) -> List[int]:
        """
        text -> token ID 列表 (BPE 合并之后)
        """
        start_time = time.perf_counter() if self.track_performance else 0.0

        if not text:
            return []

        token_ids = self.map_characters_to_token_ids(text, add_bos_token, add_preceding_space)
        merged_ids = self.merger.merge(token_ids)

        if self.track_performance:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.debug(f"encode() took {elapsed_ms:.3f} ms for {len(text)} characters")

        return merged_ids

    def encode_batch(
        self, texts: Iterable[str], add_bos_token: bool = True, add_preceding_space: bool = True
    ) -> List[List[int]]:
        return [self.encode(text, add_bos_token, add_preceding_space) for text in texts]

    def encode_iterable(
        self, iterable: Iterable[str], add_bos_token: bool = True, add_preceding_space: bool = True
    ) -> Iterator[int]:
        """
        Encodes every text of the iterable as its own document and yields the
        token ids one at a time.
        """
        for text in iterable:
            yield from self.encode(text, add_bos_token, add_preceding_space)

    def encode_to_npfile(self, input_path: os.PathLike, output_path: os.PathLike) -> int:
        """
        Encodes each non-empty line of a utf-8 text file as one document and
        saves the concatenated token ids as an int32 .npy file.

        Returns:
            number of tokens written
        """
        with open(input_path, "r", encoding="utf-8") as f:
            lines = (line.rstrip("\n") for line in f)
            token_ids = list(tqdm(self.encode_iterable(line for line in lines if line), desc="Encoding", unit="tokens"))

        token_array = np.array(token_ids, dtype=np.int32)
        np.save(output_path, token_array)
        logger.info(f"Saved {len(token_ids)} tokens to {output_path}")
        return len(token_ids)

    def decode(self, token_ids: Iterable[int], add_bos_token: bool = True, add_preceding_space: bool = True) -> str:
        """
        将 token ID 列表解码为文本
        <0xHH> token 先拼成字节再统一按 utf-8 解码, 非法字节替换为 U+FFFD
        """
        token_ids = [int(token_id) for token_id in token_ids]
        start = 1 if add_bos_token else 0

        text_bytes = bytearray()
        for token_id in token_ids[start:]:
            token = self.vocabulary.id_to_string(token_id)
            byte = token_to_byte(token)
            if byte is not None:
                text_bytes.append(byte)
            else:
                text_bytes += token.encode("utf-8")

        text = bytes(text_bytes).decode("utf-8", errors="replace")
        text = text.replace(self.data.space_token, " ")

        # 人为加的前导空格要在字符串层面去掉: 它可能和真实空格合并在同一个 token 里
        return text[1:] if add_preceding_space else text
