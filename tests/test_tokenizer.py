"""Tests for stt.tokenizer: lookups, required special tokens, JSON loading, byte-level decoding."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from fakes import DE, EN, EOT, HELLO, NOCAPTIONS, SOT, SU, TOKENS, TRANSLATE, make_vocabulary
from sdk import VocabularyLoadError
from stt.tokenizer import REQUIRED_TOKENS, Vocabulary, bytes_to_unicode, unicode_to_bytes


# ---- construction ----
def test_special_tokens_resolved() -> None:
    vocab = make_vocabulary()
    assert vocab.start_of_transcript == SOT
    assert vocab.end_of_text == EOT
    assert vocab.translate == TRANSLATE
    assert vocab.no_captions == NOCAPTIONS
    assert vocab.start_of_languages == EN
    assert vocab.end_of_languages == SU
    assert len(vocab) == len(TOKENS)


@pytest.mark.parametrize("missing", REQUIRED_TOKENS)
def test_missing_required_token_raises(missing: str) -> None:
    table = {i: t for i, t in enumerate(TOKENS) if t != missing}
    with pytest.raises(VocabularyLoadError) as exc_info:
        Vocabulary(table)
    assert missing in str(exc_info.value)


def test_inverted_language_range_raises() -> None:
    table = dict(enumerate(TOKENS))
    table[EN], table[SU] = table[SU], table[EN]
    with pytest.raises(VocabularyLoadError):
        Vocabulary(table)


# ---- lookups ----
def test_id_to_text_and_text_to_id() -> None:
    vocab = make_vocabulary()
    assert vocab.id_to_text(HELLO) == "Ġhello"
    assert vocab.text_to_id("Ġhello") == HELLO
    assert vocab.id_to_text(999) is None
    assert vocab.text_to_id("<|xx|>") is None
    assert HELLO in vocab
    assert 999 not in vocab


def test_is_special() -> None:
    vocab = make_vocabulary()
    assert vocab.is_special(EOT)
    assert not vocab.is_special(HELLO)
    assert not vocab.is_special(999)


def test_language_range_is_inclusive() -> None:
    vocab = make_vocabulary()
    assert vocab.is_language_token(EN)
    assert vocab.is_language_token(DE)
    assert vocab.is_language_token(SU)
    assert not vocab.is_language_token(SOT)
    assert not vocab.is_language_token(TRANSLATE)
    assert vocab.language_code(EN) == "en"
    assert vocab.language_code(SU) == "su"
    assert vocab.language_code(HELLO) is None


# ---- byte-level decoding ----
def test_bytes_to_unicode_is_bijective() -> None:
    table = bytes_to_unicode()
    assert len(table) == 256
    assert len(set(table.values())) == 256
    assert table[ord("a")] == "a"
    assert table[ord(" ")] == "Ġ"
    assert unicode_to_bytes()["Ġ"] == ord(" ")


def test_to_display_unicode_reverses_byte_encoding_and_trims() -> None:
    vocab = make_vocabulary()
    assert vocab.to_display_unicode("ĠhelloĠworld") == "hello world"
    assert vocab.to_display_unicode("cafÃ©") == "café"
    assert vocab.to_display_unicode("ĠĠ") == ""
    assert vocab.to_display_unicode("") == ""


def test_to_display_unicode_passes_through_unmapped_characters() -> None:
    vocab = make_vocabulary()
    assert vocab.to_display_unicode("日本") == "日本"


def test_to_display_unicode_replaces_invalid_utf8() -> None:
    vocab = make_vocabulary()
    assert vocab.to_display_unicode("Ã") == "�"


# ---- from_json_file ----
def test_from_json_file_dict_layout(tmp_path: Path) -> None:
    p = tmp_path / "vocab.json"
    p.write_text(json.dumps({t: i for i, t in enumerate(TOKENS)}), encoding="utf-8")
    vocab = Vocabulary.from_json_file(p)
    assert vocab.end_of_text == EOT
    assert vocab.id_to_text(HELLO) == "Ġhello"


def test_from_json_file_list_layout(tmp_path: Path) -> None:
    p = tmp_path / "vocab.json"
    p.write_text(json.dumps(TOKENS), encoding="utf-8")
    vocab = Vocabulary.from_json_file(p)
    assert vocab.text_to_id("Ġworld") == TOKENS.index("Ġworld")


def test_from_json_file_merges_added_tokens(tmp_path: Path) -> None:
    base = {t: i for i, t in enumerate(TOKENS) if not t.startswith("<|")}
    added = {t: i for i, t in enumerate(TOKENS) if t.startswith("<|")}
    vocab_path = tmp_path / "vocab.json"
    added_path = tmp_path / "added_tokens.json"
    vocab_path.write_text(json.dumps(base), encoding="utf-8")
    added_path.write_text(json.dumps(added), encoding="utf-8")
    with pytest.raises(VocabularyLoadError):
        Vocabulary.from_json_file(vocab_path)
    vocab = Vocabulary.from_json_file(vocab_path, added_tokens_path=added_path)
    assert vocab.start_of_transcript == SOT


def test_from_json_file_missing_raises(tmp_path: Path) -> None:
    with pytest.raises(VocabularyLoadError) as exc_info:
        Vocabulary.from_json_file(tmp_path / "nope.json")
    assert "not found" in str(exc_info.value)


def test_from_json_file_invalid_json_raises(tmp_path: Path) -> None:
    p = tmp_path / "vocab.json"
    p.write_text("{not json", encoding="utf-8")
    with pytest.raises(VocabularyLoadError):
        Vocabulary.from_json_file(p)


def test_from_json_file_wrong_type_raises(tmp_path: Path) -> None:
    p = tmp_path / "vocab.json"
    p.write_text("42", encoding="utf-8")
    with pytest.raises(VocabularyLoadError):
        Vocabulary.from_json_file(p)


def test_from_json_file_bad_id_raises(tmp_path: Path) -> None:
    p = tmp_path / "vocab.json"
    p.write_text(json.dumps({"a": "x"}), encoding="utf-8")
    with pytest.raises(VocabularyLoadError):
        Vocabulary.from_json_file(p)
