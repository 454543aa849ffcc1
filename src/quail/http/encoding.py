"""Form URL decoding for query string keys and values.

URL-encoded text uses stdlib ``urllib.parse``, no extra dependency.
``+`` is read as a space and ``%XX`` escapes are reversed; the resulting
bytes must be valid UTF-8. Malformed escapes such as ``%zz`` are kept
literally rather than rejected.
"""

from dataclasses import dataclass
from urllib.parse import unquote_to_bytes

from quail.errors import DecodeError


def form_url_decode(raw: str) -> str:
    """Decode *raw* form-url-encoded text.

    Raises ``DecodeError`` when the unescaped bytes are not UTF-8.
    """
    try:
        return unquote_to_bytes(raw.replace("+", " ")).decode("utf-8")
    except UnicodeError:
        # Decode failures, and lone surrogates from surrogateescape'd input
        raise DecodeError(raw) from None


@dataclass(frozen=True, slots=True)
class FormUrlDecoded:
    """A single decoded query string value.

    Build with ``FormUrlDecoded.new()`` from raw text; construct directly
    only with text that is already decoded.
    """

    val: str

    @classmethod
    def new(cls, raw: str) -> "FormUrlDecoded | None":
        """Decode *raw*, returning ``None`` if it does not decode."""
        try:
            return cls(form_url_decode(raw))
        except DecodeError:
            return None

    def __str__(self) -> str:
        return self.val
