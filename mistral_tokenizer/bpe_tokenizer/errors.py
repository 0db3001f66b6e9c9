class TokenizerError(Exception):
    """Base class for errors raised by the tokenizer."""


class MalformedDataError(TokenizerError, ValueError):
    """
    The persisted vocabulary or merge blob could not be decoded.
    The table cannot serve requests until it is rebuilt from valid data.
    """


class InvalidTokenIdError(TokenizerError, IndexError):
    """A token id outside [0, vocab_size - 1] was looked up."""

    def __init__(self, token_id: int, vocab_size: int) -> None:
        super().__init__(f"Token id {token_id} is out of range [0, {vocab_size - 1}]")
        self.token_id = token_id
        self.vocab_size = vocab_size
