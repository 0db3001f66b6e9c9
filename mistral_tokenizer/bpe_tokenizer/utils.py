import base64
import binascii
from typing import Iterable, List, Optional, Tuple

import numpy as np
import regex as re

from mistral_tokenizer.bpe_tokenizer.errors import MalformedDataError


BYTE_TOKEN_PATTERN = re.compile(r"^<0x([0-9A-Fa-f]{2})>$")
REPLACEMENT_CHARACTER = "\ufffd"


def byte_to_token(byte: int) -> str:
    """
    0x0A -> "<0x0A>"
    """
    return f"<0x{byte:02X}>"


def token_to_byte(token: str) -> Optional[int]:
    """
    "<0x0A>" -> 10, None if the string is not a byte-fallback token
    """
    match = BYTE_TOKEN_PATTERN.match(token)
    if match is None:
        return None
    return int(match.group(1), 16)


def utf8_bytes(char: str) -> bytes:
    """
    单个字符的 utf-8 字节; 孤立代理项 (lone surrogate) 无法编码, 按 U+FFFD 处理
    """
    try:
        return char.encode("utf-8")
    except UnicodeEncodeError:
        return REPLACEMENT_CHARACTER.encode("utf-8")


def decode_base64(blob: str | bytes) -> bytes:
    """
    忽略换行等空白字符 (base64 工具按 76 列折行), 其余非法字符仍然报错
    """
    if isinstance(blob, str):
        blob = "".join(blob.split())
    else:
        blob = b"".join(blob.split())
    try:
        return base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedDataError(f"Blob is not valid base64: {e}") from e


def encode_vocabulary_blob(tokens: Iterable[str]) -> str:
    """
    Inverse of Vocabulary.from_blob: join with line breaks, utf-8, base64.
    """
    tokens = list(tokens)
    for token in tokens:
        if "\n" in token:
            raise ValueError(f"Vocabulary entry {token!r} contains a line break")
    return base64.b64encode("\n".join(tokens).encode("utf-8")).decode("ascii")


def encode_merges_blob(pairs: Iterable[Tuple[int, int]]) -> str:
    """
    Inverse of MergeTable.from_blob: flat little-endian uint16 ids, base64.
    """
    flat: List[int] = [token_id for pair in pairs for token_id in pair]
    if any(token_id < 0 or token_id > 0xFFFF for token_id in flat):
        raise ValueError("Merge token ids must fit in an unsigned 16-bit integer")
    return base64.b64encode(np.array(flat, dtype="<u2").tobytes()).decode("ascii")
