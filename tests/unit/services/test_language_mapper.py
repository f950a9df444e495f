"""Unit tests for language and text classification."""

from pathlib import Path

import pytest

from code_search.services.language_mapper import (
    NO_HIGHLIGHT_CLASS,
    UNKNOWN_LANGUAGE,
    LanguageClassifier,
    decode_content,
    is_text,
)
from code_search.utils.yaml_utils import (
    DEFAULT_COLOR,
    LANGUAGE_MAPPINGS_FILENAME,
    create_language_mappings_yaml,
)


@pytest.fixture
def classifier() -> LanguageClassifier:
    return LanguageClassifier(config_dir=None)


class TestIsText:
    """Tests for text detection."""

    def test_plain_ascii(self):
        assert is_text(b"def main():\n    pass\n")

    def test_utf8(self):
        assert is_text("größe = '世界'\n".encode("utf-8"))

    def test_empty_content_is_text(self):
        assert is_text(b"")

    def test_null_bytes_mean_binary(self):
        assert not is_text(b"abc\x00def")

    def test_multibyte_sequence_cut_at_sniff_boundary(self):
        content = b"a" * 1023 + "é".encode("utf-8")
        assert is_text(content)

    def test_control_heavy_content_is_binary(self):
        assert not is_text(bytes(range(1, 32)) * 10 + b"\xff")

    def test_latin1_text(self):
        assert is_text("café au lait\n".encode("latin-1"))


class TestDecodeContent:
    def test_bom_is_removed(self):
        assert decode_content(b"\xef\xbb\xbfx = 1") == "x = 1"

    def test_invalid_bytes_are_replaced(self):
        assert decode_content(b"ok\xff") == "ok�"


class TestGetCodeLanguage:
    """Tests for language detection."""

    @pytest.mark.parametrize(
        "filename,language",
        [
            ("main.py", "Python"),
            ("src/App.TSX", "TypeScript"),
            ("lib/util.h", "C"),
            ("README.md", "Markdown"),
            ("Dockerfile", "Dockerfile"),
            ("build/Makefile", "Makefile"),
        ],
    )
    def test_from_filename(self, classifier, filename, language):
        assert classifier.get_code_language(filename) == language

    def test_shebang(self, classifier):
        assert classifier.get_code_language("bin/run", b"#!/usr/bin/env python3\n") == "Python"
        assert classifier.get_code_language("bin/deploy", b"#!/bin/bash\nset -e\n") == "Shell"

    def test_unknown(self, classifier):
        assert classifier.get_code_language("data.xyz123", b"stuff") == UNKNOWN_LANGUAGE
        assert classifier.get_code_language("noext") == UNKNOWN_LANGUAGE

    def test_yaml_mappings_override_defaults(self, tmp_path: Path):
        (tmp_path / LANGUAGE_MAPPINGS_FILENAME).write_text("Pascal:\n  - pas\n  - .PP\n")

        classifier = LanguageClassifier(config_dir=tmp_path)

        assert classifier.get_code_language("unit.pas") == "Pascal"
        assert classifier.get_code_language("unit.pp") == "Pascal"
        assert classifier.get_code_language("main.py") == UNKNOWN_LANGUAGE

    def test_generated_yaml_matches_defaults(self, tmp_path: Path):
        assert create_language_mappings_yaml(tmp_path) is True
        assert create_language_mappings_yaml(tmp_path) is False

        classifier = LanguageClassifier(config_dir=tmp_path)

        assert classifier.get_code_language("main.go") == "Go"

    def test_invalid_yaml_falls_back_to_defaults(self, tmp_path: Path):
        (tmp_path / LANGUAGE_MAPPINGS_FILENAME).write_text("Python: [py\n")

        classifier = LanguageClassifier(config_dir=tmp_path)

        assert classifier.get_code_language("main.py") == "Python"


class TestColorsAndHighlighting:
    def test_known_color(self):
        assert LanguageClassifier.get_color("Python") == "#3572A5"

    def test_unknown_color(self):
        assert LanguageClassifier.get_color("Klingon") == DEFAULT_COLOR

    def test_highlight_class(self, classifier):
        assert classifier.highlight_class("pkg/main.go") == "go"
        assert classifier.highlight_class("Makefile") == "makefile"

    def test_license_files_are_not_highlighted(self, classifier):
        assert classifier.highlight_class("LICENSE") == NO_HIGHLIGHT_CLASS
        assert classifier.highlight_class("docs/COPYING") == NO_HIGHLIGHT_CLASS

    def test_unknown_files_are_not_highlighted(self, classifier):
        assert classifier.highlight_class("blob.bin") == NO_HIGHLIGHT_CLASS
