"""
Code Search - full-text code search with highlighted result snippets.

Indexes git repositories into a pluggable full-text backend (Elasticsearch
or an embedded Tantivy index) and renders every hit as a window of
highlighted source lines.
"""

__version__ = "1.0.0"
