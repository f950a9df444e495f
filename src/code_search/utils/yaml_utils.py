"""YAML utilities for language mappings configuration."""

import yaml  # type: ignore
from pathlib import Path
from typing import Dict, Set
import logging

logger = logging.getLogger(__name__)

LANGUAGE_MAPPINGS_FILENAME = "language-mappings.yaml"

DEFAULT_LANGUAGE_MAPPINGS = {
    # Programming languages
    "Python": ["py", "pyw", "pyi"],
    "JavaScript": ["js", "jsx", "mjs", "cjs"],
    "TypeScript": ["ts", "tsx"],
    "Java": ["java"],
    "C#": ["cs"],
    "C": ["c", "h"],
    "C++": ["cpp", "cc", "cxx", "c++", "hpp", "hh", "hxx"],
    "Go": ["go"],
    "Rust": ["rs"],
    "PHP": ["php"],
    "Ruby": ["rb"],
    "Swift": ["swift"],
    "Kotlin": ["kt", "kts"],
    "Scala": ["scala"],
    "Dart": ["dart"],
    "Lua": ["lua"],
    "Perl": ["pl", "pm"],
    "Haskell": ["hs"],
    "Groovy": ["groovy", "gradle"],
    "Objective-C": ["m"],
    # Web technologies
    "HTML": ["html", "htm"],
    "CSS": ["css"],
    "SCSS": ["scss"],
    "Vue": ["vue"],
    # Markup and documentation
    "Markdown": ["md", "markdown"],
    "XML": ["xml"],
    "TeX": ["tex"],
    "reStructuredText": ["rst"],
    # Data and configuration
    "JSON": ["json"],
    "YAML": ["yaml", "yml"],
    "TOML": ["toml"],
    "INI": ["ini", "cfg"],
    "SQL": ["sql"],
    # Shell and scripting
    "Shell": ["sh", "bash", "zsh"],
    "PowerShell": ["ps1", "psm1", "psd1"],
    "Batchfile": ["bat", "cmd"],
    # Build files
    "CMake": ["cmake"],
    "Makefile": ["mk"],
    # Other formats
    "Text": ["txt"],
}

# Files recognised by name rather than extension (matched case-insensitively).
DEFAULT_FILENAME_LANGUAGES = {
    "dockerfile": "Dockerfile",
    "makefile": "Makefile",
    "gnumakefile": "Makefile",
    "cmakelists.txt": "CMake",
    "gemfile": "Ruby",
    "rakefile": "Ruby",
    "vagrantfile": "Ruby",
    "jenkinsfile": "Groovy",
}

# Colours follow the GitHub linguist palette.
DEFAULT_LANGUAGE_COLORS = {
    "Python": "#3572A5",
    "JavaScript": "#f1e05a",
    "TypeScript": "#3178c6",
    "Java": "#b07219",
    "C#": "#178600",
    "C": "#555555",
    "C++": "#f34b7d",
    "Go": "#00ADD8",
    "Rust": "#dea584",
    "PHP": "#4F5D95",
    "Ruby": "#701516",
    "Swift": "#F05138",
    "Kotlin": "#A97BFF",
    "Scala": "#c22d40",
    "Dart": "#00B4AB",
    "Lua": "#000080",
    "Perl": "#0298c3",
    "Haskell": "#5e5086",
    "Groovy": "#4298b8",
    "Objective-C": "#438eff",
    "HTML": "#e34c26",
    "CSS": "#563d7c",
    "SCSS": "#c6538c",
    "Vue": "#41b883",
    "Markdown": "#083fa1",
    "TeX": "#3D6117",
    "Shell": "#89e051",
    "PowerShell": "#012456",
    "Batchfile": "#C1F12E",
    "CMake": "#DA3434",
    "Makefile": "#427819",
    "Dockerfile": "#384d54",
}

DEFAULT_COLOR = "#cccccc"

# highlight.js class names for the languages above.
DEFAULT_HIGHLIGHT_CLASSES = {
    "Python": "python",
    "JavaScript": "javascript",
    "TypeScript": "typescript",
    "Java": "java",
    "C#": "csharp",
    "C": "c",
    "C++": "cpp",
    "Go": "go",
    "Rust": "rust",
    "PHP": "php",
    "Ruby": "ruby",
    "Swift": "swift",
    "Kotlin": "kotlin",
    "Scala": "scala",
    "Dart": "dart",
    "Lua": "lua",
    "Perl": "perl",
    "Haskell": "haskell",
    "Groovy": "groovy",
    "Objective-C": "objectivec",
    "HTML": "html",
    "CSS": "css",
    "SCSS": "scss",
    "Vue": "html",
    "Markdown": "markdown",
    "XML": "xml",
    "TeX": "latex",
    "JSON": "json",
    "YAML": "yaml",
    "TOML": "ini",
    "INI": "ini",
    "SQL": "sql",
    "Shell": "bash",
    "PowerShell": "powershell",
    "Batchfile": "dos",
    "CMake": "cmake",
    "Makefile": "makefile",
    "Dockerfile": "dockerfile",
}


def create_language_mappings_yaml(config_dir: Path, force: bool = False) -> bool:
    """
    Create language-mappings.yaml file with default mappings.

    Args:
        config_dir: The .code-search directory path
        force: Whether to overwrite existing file

    Returns:
        True if file was created, False if already exists and not forced
    """
    yaml_path = config_dir / LANGUAGE_MAPPINGS_FILENAME

    if yaml_path.exists() and not force:
        logger.debug(f"Language mappings file already exists: {yaml_path}")
        return False

    config_dir.mkdir(parents=True, exist_ok=True)

    yaml_content = """# Language Mappings Configuration
# Maps language names to file extensions for language detection.
# The language name is what gets stored in the index and shown in facets.
#
# Format:
#   Language Name: [extension1, extension2, ...]
#
# Changes take effect for files indexed after the next restart.

"""

    with open(yaml_path, "w") as f:
        f.write(yaml_content)
        yaml.dump(
            DEFAULT_LANGUAGE_MAPPINGS,
            f,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )

    logger.info(f"Created language mappings file: {yaml_path}")
    return True


def load_language_mappings_yaml(yaml_path: Path) -> Dict[str, Set[str]]:
    """
    Load language mappings from YAML file.

    Args:
        yaml_path: Path to language-mappings.yaml

    Returns:
        Dictionary mapping language names to sets of extensions

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        yaml.YAMLError: If YAML parsing fails
    """
    if not yaml_path.exists():
        raise FileNotFoundError(f"Language mappings file not found: {yaml_path}")

    try:
        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f) or {}

        mappings = {}
        for lang, extensions in data.items():
            if isinstance(extensions, list):
                mappings[str(lang)] = {str(ext).lstrip(".").lower() for ext in extensions}
            elif isinstance(extensions, str):
                mappings[str(lang)] = {extensions.lstrip(".").lower()}
            else:
                logger.warning(f"Invalid extension format for {lang}, skipping")

        return mappings

    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML file {yaml_path}: {e}")
        raise
