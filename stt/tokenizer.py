"""
Whisper vocabulary: id <-> token text, special token lookup, byte-level decoding.

Token strings use the GPT-2 byte-level encoding, where each raw byte is shown as a
printable stand-in character. to_display_unicode() maps those back to bytes and
decodes them as UTF-8.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

from sdk.abstractions import VocabularyLoadError

logger = logging.getLogger(__name__)

SPECIAL_PREFIX = "<|"

START_OF_TRANSCRIPT = "<|startoftranscript|>"
END_OF_TEXT = "<|endoftext|>"
TRANSLATE = "<|translate|>"
NO_CAPTIONS = "<|nocaptions|>"
FIRST_LANGUAGE = "<|en|>"
LAST_LANGUAGE = "<|su|>"

REQUIRED_TOKENS = (
    START_OF_TRANSCRIPT,
    END_OF_TEXT,
    TRANSLATE,
    NO_CAPTIONS,
    FIRST_LANGUAGE,
    LAST_LANGUAGE,
)


@lru_cache(maxsize=1)
def bytes_to_unicode() -> dict[int, str]:
    """GPT-2 style byte-to-unicode mapping: printable bytes map to themselves, the rest to 256+n."""
    bs = (
        list(range(ord("!"), ord("~") + 1))
        + list(range(ord("\xa1"), ord("\xac") + 1))
        + list(range(ord("\xae"), ord("\xff") + 1))
    )
    cs = bs[:]
    n = 0
    for b in range(256):
        if b not in bs:
            bs.append(b)
            cs.append(256 + n)
            n += 1
    return dict(zip(bs, [chr(c) for c in cs]))


@lru_cache(maxsize=1)
def unicode_to_bytes() -> dict[str, int]:
    return {v: k for k, v in bytes_to_unicode().items()}


def _parse_token_table(data: Any, source: str) -> dict[int, str]:
    """Accept {token: id} (vocab.json layout) or [token, ...] (index is the id)."""
    if isinstance(data, dict):
        out: dict[int, str] = {}
        for token, token_id in data.items():
            try:
                out[int(token_id)] = str(token)
            except (TypeError, ValueError):
                raise VocabularyLoadError(
                    f"Invalid id {token_id!r} for token {token!r} in {source}"
                ) from None
        return out
    if isinstance(data, list):
        return {i: str(token) for i, token in enumerate(data)}
    raise VocabularyLoadError(f"Vocabulary in {source} must be a JSON object or list")


def _read_json(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        raise VocabularyLoadError(f"Vocabulary file not found: {path}") from None
    except (OSError, ValueError) as e:
        raise VocabularyLoadError(f"Failed to read vocabulary {path}: {e}") from e


class Vocabulary:
    """
    Immutable token table built once per model.
    Resolves the required special tokens at construction and raises
    VocabularyLoadError if any is missing.
    """

    def __init__(self, id_to_token: Mapping[int, str]) -> None:
        self._id_to_token: dict[int, str] = dict(id_to_token)
        self._token_to_id: dict[str, int] = {t: i for i, t in self._id_to_token.items()}

        missing = [t for t in REQUIRED_TOKENS if t not in self._token_to_id]
        if missing:
            raise VocabularyLoadError(
                "Vocabulary is missing required token(s): " + ", ".join(missing)
            )
        self.start_of_transcript = self._token_to_id[START_OF_TRANSCRIPT]
        self.end_of_text = self._token_to_id[END_OF_TEXT]
        self.translate = self._token_to_id[TRANSLATE]
        self.no_captions = self._token_to_id[NO_CAPTIONS]
        self.start_of_languages = self._token_to_id[FIRST_LANGUAGE]
        self.end_of_languages = self._token_to_id[LAST_LANGUAGE]
        if self.start_of_languages > self.end_of_languages:
            raise VocabularyLoadError(
                f"Language range is inverted: {FIRST_LANGUAGE}={self.start_of_languages}, "
                f"{LAST_LANGUAGE}={self.end_of_languages}"
            )

    @classmethod
    def from_json_file(
        cls,
        path: str | Path,
        added_tokens_path: str | Path | None = None,
    ) -> Vocabulary:
        """
        Load a vocabulary from a JSON file ({token: id} or a list of tokens).
        added_tokens_path optionally supplies extra {token: id} entries (special tokens).
        """
        path = Path(path)
        table = _parse_token_table(_read_json(path), str(path))
        if added_tokens_path is not None:
            added_path = Path(added_tokens_path)
            table.update(_parse_token_table(_read_json(added_path), str(added_path)))
        logger.info("Vocabulary loaded: %s (%d tokens)", path, len(table))
        return cls(table)

    def __len__(self) -> int:
        return len(self._id_to_token)

    def __contains__(self, token_id: object) -> bool:
        return token_id in self._id_to_token

    def id_to_text(self, token_id: int) -> str | None:
        return self._id_to_token.get(token_id)

    def text_to_id(self, literal: str) -> int | None:
        return self._token_to_id.get(literal)

    def is_special(self, token_id: int) -> bool:
        text = self._id_to_token.get(token_id)
        return text is not None and text.startswith(SPECIAL_PREFIX)

    def is_language_token(self, token_id: int) -> bool:
        # Assumes language tokens are contiguous in id space.
        return self.start_of_languages <= token_id <= self.end_of_languages

    def language_code(self, token_id: int) -> str | None:
        """Return "en" for <|en|>; None if token_id is not a language token."""
        if not self.is_language_token(token_id):
            return None
        text = self._id_to_token.get(token_id)
        if text is None:
            return None
        return text.removeprefix(SPECIAL_PREFIX).removesuffix("|>")

    def to_display_unicode(self, raw: str) -> str:
        """
        Reverse the byte-level encoding of raw and strip surrounding whitespace.
        Characters outside the byte table are kept as their own UTF-8 bytes.
        Invalid UTF-8 sequences decode to U+FFFD.
        """
        table = unicode_to_bytes()
        buf = bytearray()
        for ch in raw:
            b = table.get(ch)
            if b is None:
                buf.extend(ch.encode("utf-8"))
            else:
                buf.append(b)
        return buf.decode("utf-8", errors="replace").strip()


__all__ = [
    "END_OF_TEXT",
    "FIRST_LANGUAGE",
    "LAST_LANGUAGE",
    "NO_CAPTIONS",
    "REQUIRED_TOKENS",
    "SPECIAL_PREFIX",
    "START_OF_TRANSCRIPT",
    "TRANSLATE",
    "Vocabulary",
    "bytes_to_unicode",
    "unicode_to_bytes",
]
