"""
Language and text classification for indexed files.

This module decides, for a file about to be indexed:
- whether its content is text at all (binary files are never indexed)
- which language it is written in, from its name and, failing that, a shebang
- the display colour of a language and the highlight.js class of a filename

Mappings come from ``.code-search/language-mappings.yaml`` when present and
fall back to the built-in defaults otherwise.
"""

import codecs
import logging
import posixpath
import re
from pathlib import Path
from typing import Dict, Optional, Set

from ..utils.yaml_utils import (
    DEFAULT_COLOR,
    DEFAULT_FILENAME_LANGUAGES,
    DEFAULT_HIGHLIGHT_CLASSES,
    DEFAULT_LANGUAGE_COLORS,
    DEFAULT_LANGUAGE_MAPPINGS,
    LANGUAGE_MAPPINGS_FILENAME,
    load_language_mappings_yaml,
)

logger = logging.getLogger(__name__)

UNKNOWN_LANGUAGE = "unknown"
NO_HIGHLIGHT_CLASS = "nohighlight"

# Bytes inspected when sniffing content.
SNIFF_LENGTH = 1024

_IGNORED_HIGHLIGHT_FILENAMES = {"license", "copying", "notice"}

_SHEBANG_RE = re.compile(rb"^#!\s*(?:\S*/)?(?:env\s+(?:-\S+\s+)*)?([A-Za-z0-9_.+-]+)")

_SHEBANG_INTERPRETERS = {
    "python": "Python",
    "sh": "Shell",
    "bash": "Shell",
    "zsh": "Shell",
    "dash": "Shell",
    "node": "JavaScript",
    "ruby": "Ruby",
    "perl": "Perl",
    "php": "PHP",
    "lua": "Lua",
}

_TEXT_CONTROL_BYTES = {0x08, 0x09, 0x0A, 0x0C, 0x0D, 0x1B}


def decode_content(content: bytes) -> str:
    """Decode file content as UTF-8, replacing invalid bytes and dropping a BOM."""
    if content.startswith(codecs.BOM_UTF8):
        content = content[len(codecs.BOM_UTF8) :]
    return content.decode("utf-8", errors="replace")


def is_text(content: bytes) -> bool:
    """
    Check whether file content is likely text.

    Empty content counts as text so that emptied files replace their
    previously indexed version.
    """
    chunk = content[:SNIFF_LENGTH]
    if not chunk:
        return True

    # Null bytes are the strongest binary signal.
    if b"\x00" in chunk:
        return False

    # A trailing multi-byte sequence may be cut by the sniff window.
    try:
        codecs.getincrementaldecoder("utf-8")().decode(chunk, final=False)
        return True
    except UnicodeDecodeError:
        pass

    control = sum(1 for b in chunk if b < 0x20 and b not in _TEXT_CONTROL_BYTES)
    return control / len(chunk) < 0.1


class LanguageClassifier:
    """
    Maps filenames and content to language names, colours and highlight classes.

    Features:
    - Case-insensitive extension matching
    - Well-known extensionless filenames (Dockerfile, Makefile, ...)
    - Shebang detection for extensionless scripts
    - YAML-based extension mappings with fallback to defaults
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize the classifier.

        Args:
            config_dir: Directory holding language-mappings.yaml. When None the
                nearest .code-search directory above the working directory is used.
        """
        if config_dir is None:
            config_dir = self._find_config_dir()

        mappings: Optional[Dict[str, Set[str]]] = None
        if config_dir is not None:
            yaml_path = config_dir / LANGUAGE_MAPPINGS_FILENAME
            if yaml_path.exists():
                try:
                    mappings = load_language_mappings_yaml(yaml_path)
                    logger.debug(f"Loaded language mappings from {yaml_path}")
                except Exception as e:
                    logger.warning(
                        f"Failed to load YAML mappings: {e}, using defaults"
                    )

        if mappings is None:
            mappings = {
                lang: set(exts) for lang, exts in DEFAULT_LANGUAGE_MAPPINGS.items()
            }

        self._extension_to_language: Dict[str, str] = {}
        for language, extensions in mappings.items():
            for ext in extensions:
                self._extension_to_language.setdefault(ext.lower(), language)

    def _find_config_dir(self) -> Optional[Path]:
        """Find .code-search directory by walking up from current directory."""
        try:
            current = Path.cwd()
        except (FileNotFoundError, OSError):
            return None

        for path in [current] + list(current.parents):
            config_dir = path / ".code-search"
            if config_dir.is_dir():
                return config_dir
        return None

    def _language_from_filename(self, filename: str) -> Optional[str]:
        basename = posixpath.basename(filename).lower()
        if basename in DEFAULT_FILENAME_LANGUAGES:
            return DEFAULT_FILENAME_LANGUAGES[basename]
        if basename.startswith("dockerfile."):
            return "Dockerfile"

        _, ext = posixpath.splitext(basename)
        if not ext:
            return None
        return self._extension_to_language.get(ext[1:])

    def get_code_language(self, filename: str, content: Optional[bytes] = None) -> str:
        """
        Detect the language of a file.

        Args:
            filename: Path of the file inside the repository
            content: Raw file content used for shebang detection

        Returns:
            Language name, or "unknown" when it cannot be determined
        """
        language = self._language_from_filename(filename)
        if language is not None:
            return language

        if content:
            match = _SHEBANG_RE.match(content[:SNIFF_LENGTH])
            if match:
                interpreter = match.group(1).decode("ascii", errors="ignore")
                interpreter = re.sub(r"[\d.]+$", "", interpreter)
                if interpreter in _SHEBANG_INTERPRETERS:
                    return _SHEBANG_INTERPRETERS[interpreter]

        return UNKNOWN_LANGUAGE

    @staticmethod
    def get_color(language: str) -> str:
        """Return the display colour of a language."""
        return DEFAULT_LANGUAGE_COLORS.get(language, DEFAULT_COLOR)

    def highlight_class(self, filename: str) -> str:
        """Return the highlight.js class used to render a file."""
        basename = posixpath.basename(filename).lower()
        if basename in _IGNORED_HIGHLIGHT_FILENAMES:
            return NO_HIGHLIGHT_CLASS

        language = self._language_from_filename(filename)
        if language is None:
            return NO_HIGHLIGHT_CLASS
        return DEFAULT_HIGHLIGHT_CLASSES.get(language, NO_HIGHLIGHT_CLASS)
