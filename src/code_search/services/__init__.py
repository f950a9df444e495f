"""Repository changesets and language classification."""

from .changes import FileUpdate, GitRepository, RepoChanges
from .language_mapper import LanguageClassifier

__all__ = ["FileUpdate", "GitRepository", "RepoChanges", "LanguageClassifier"]
