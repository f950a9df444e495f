"""Command line interface for Code Search."""

import html
import json
import logging
import re
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from . import __version__
from .config import ConfigManager
from .indexers.factory import IndexerFactory
from .search.models import Result
from .search.render import ACTIVE_CLOSE, ACTIVE_OPEN, LINE_CLOSE, LINE_OPEN
from .search.service import CodeSearchService
from .services.changes import GitRepository
from .services.language_mapper import LanguageClassifier
from .utils.yaml_utils import create_language_mappings_yaml

logger = logging.getLogger(__name__)

console = Console()

_ACTIVE_RE = re.compile(f"({re.escape(ACTIVE_OPEN)}|{re.escape(ACTIVE_CLOSE)})")


def _load_config_manager(ctx: click.Context) -> ConfigManager:
    config_path = ctx.obj.get("config_path")
    if config_path:
        return ConfigManager(Path(config_path))
    return ConfigManager.create_with_backtrack()


def _create_classifier(config_manager: ConfigManager) -> LanguageClassifier:
    return LanguageClassifier(config_manager.config_path.parent)


def format_result_lines(result: Result) -> Text:
    """Convert a rendered result into terminal text with highlighted matches."""
    text = Text()
    items = result.formatted_lines.split(LINE_CLOSE)
    for line_number, item in zip(result.line_numbers, items):
        text.append(f"{line_number:>5} ", style="dim")

        active = False
        for part in _ACTIVE_RE.split(item.replace(LINE_OPEN, "", 1)):
            if part == ACTIVE_OPEN:
                active = True
            elif part == ACTIVE_CLOSE:
                active = False
            elif part:
                text.append(
                    html.unescape(part), style="bold yellow" if active else None
                )

        if not text.plain.endswith("\n"):
            text.append("\n")
    return text


@click.group()
@click.option("--config", "-c", type=click.Path(exists=False), help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(version=__version__, prog_name="code-search")
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], verbose: bool) -> None:
    """Full-text code search over git repositories.

    \b
    GETTING STARTED:
      1. code-search init                          # Create config and index
      2. code-search index --repo-id 1 --repo-path .   # Index a repository
      3. code-search search "search term"          # Search your code

    \b
    CONFIGURATION:
      Config file: .code-search/config.json
      Language mappings: .code-search/language-mappings.yaml
      CODE_SEARCH_INDEXER_URL overrides the Elasticsearch URL.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s:%(name)s:%(message)s",
    )
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)


@cli.command()
@click.option("--force", "-f", is_flag=True, help="Overwrite existing configuration")
@click.option(
    "--backend",
    type=click.Choice(["elasticsearch", "tantivy"], case_sensitive=False),
    help="Search backend to configure",
)
@click.option("--url", type=str, help="Elasticsearch base URL")
@click.option(
    "--max-file-size",
    type=int,
    help="Maximum file size to index (bytes, default: 1048576)",
)
@click.pass_context
def init(
    ctx: click.Context,
    force: bool,
    backend: Optional[str],
    url: Optional[str],
    max_file_size: Optional[int],
) -> None:
    """Create .code-search/config.json and the search index."""
    config_manager = _load_config_manager(ctx)

    try:
        if config_manager.config_path.exists() and not force:
            config = config_manager.load()
            console.print(
                f"ℹ️  Using existing configuration at {config_manager.config_path}",
                style="dim",
            )
        else:
            config = config_manager.create_default_config()

        if backend:
            config.indexer.type = backend.lower()  # type: ignore[assignment]
        if url:
            config.indexer.url = url.rstrip("/")
        if max_file_size is not None:
            config.indexing.max_file_size = max_file_size
        config_manager.save(config)
        # Reload so relative paths resolve against the project root.
        config = config_manager.load()

        if create_language_mappings_yaml(config_manager.config_path.parent, force=force):
            console.print("📚 Created language-mappings.yaml")

        indexer = IndexerFactory.create(config, _create_classifier(config_manager))
        try:
            existed = indexer.init()
        finally:
            indexer.close()

        console.print(f"✅ Initialized configuration at {config_manager.config_path}")
        console.print(f"🔎 Backend: {config.indexer.type}")
        console.print(f"📏 Max file size: {config.indexing.max_file_size:,} bytes")
        if existed:
            console.print("ℹ️  Search index already existed", style="dim")
        else:
            console.print("✅ Created search index", style="green")

    except Exception as e:
        console.print(f"❌ Failed to initialize: {e}", style="red")
        sys.exit(1)


@cli.command()
@click.option("--repo-id", type=int, required=True, help="Numeric repository id")
@click.option(
    "--repo-path",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Path of the git repository (default: current directory)",
)
@click.option("--commit", default="HEAD", help="Commit to index (default: HEAD)")
@click.option(
    "--from-commit",
    help="Commit the index currently reflects; only changes since it are applied",
)
@click.pass_context
def index(
    ctx: click.Context,
    repo_id: int,
    repo_path: str,
    commit: str,
    from_commit: Optional[str],
) -> None:
    """Index a commit of a git repository."""
    try:
        config_manager = _load_config_manager(ctx)
        config = config_manager.load()

        repository = GitRepository(Path(repo_path))
        sha = repository.resolve_commit(commit)
        from_sha = repository.resolve_commit(from_commit) if from_commit else None
        changes = repository.get_changes(sha, from_sha)

        if changes.is_empty():
            console.print("✅ Nothing to index", style="green")
            return

        indexer = IndexerFactory.create(config, _create_classifier(config_manager))
        try:
            indexer.init()
            indexer.index(repo_id, sha, changes, repository)
        finally:
            indexer.close()

        console.print(
            f"✅ Indexed {sha[:8]} of repository {repo_id}: "
            f"{len(changes.updates)} updated, "
            f"{len(changes.removed_filenames)} removed",
            style="green",
        )

    except Exception as e:
        console.print(f"❌ Indexing failed: {e}", style="red")
        sys.exit(1)


@cli.command()
@click.option("--repo-id", type=int, required=True, help="Numeric repository id")
@click.pass_context
def delete(ctx: click.Context, repo_id: int) -> None:
    """Remove every indexed file of a repository."""
    try:
        config_manager = _load_config_manager(ctx)
        config = config_manager.load()

        indexer = IndexerFactory.create(config, _create_classifier(config_manager))
        try:
            indexer.open()
            indexer.delete(repo_id)
        finally:
            indexer.close()

        console.print(f"✅ Deleted repository {repo_id} from the index", style="green")

    except Exception as e:
        console.print(f"❌ Delete failed: {e}", style="red")
        sys.exit(1)


@cli.command()
@click.argument("keyword")
@click.option(
    "--repo-id",
    "repo_ids",
    type=int,
    multiple=True,
    help="Restrict to a repository (repeatable)",
)
@click.option("--language", "-l", default="", help="Filter by language")
@click.option("--page", type=int, default=1, help="Page number (default: 1)")
@click.option("--page-size", type=int, help="Results per page")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON")
@click.pass_context
def search(
    ctx: click.Context,
    keyword: str,
    repo_ids: Tuple[int, ...],
    language: str,
    page: int,
    page_size: Optional[int],
    as_json: bool,
) -> None:
    """Search indexed file contents for KEYWORD."""
    try:
        config_manager = _load_config_manager(ctx)
        config = config_manager.load()
        classifier = _create_classifier(config_manager)

        indexer = IndexerFactory.create(config, classifier)
        try:
            indexer.open()
            service = CodeSearchService(
                indexer,
                context_lines=config.search.context_lines,
                classifier=classifier,
            )
            total, results, languages = service.perform_search(
                list(repo_ids),
                language,
                keyword,
                page,
                page_size or config.search.page_size,
            )
        finally:
            indexer.close()

    except Exception as e:
        console.print(f"❌ Search failed: {e}", style="red")
        sys.exit(1)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "total": total,
                    "results": [r.to_dict() for r in results],
                    "languages": [lang.to_dict() for lang in languages],
                },
                indent=2,
            )
        )
        return

    if not results:
        console.print("No results found", style="yellow")
        return

    console.print(f"🔍 {total} matching files (page {page})")
    for result in results:
        console.print(
            f"\n📄 [bold]{result.filename}[/bold] "
            f"(repo {result.repo_id}, {result.language}, {result.commit_id[:8]})"
        )
        console.print(format_result_lines(result), end="")

    if languages:
        table = Table(title="Languages")
        table.add_column("Language")
        table.add_column("Files", justify="right")
        for lang in languages:
            table.add_row(Text(lang.language, style=lang.color), str(lang.count))
        console.print(table)


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
