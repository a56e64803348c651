from contextlib import contextmanager
from functools import partial
from pathlib import Path
from typing import Iterator, List, Optional

import anyio
import typer

from .config import ConfigurationError, Settings
from .library import LocalFileDeleter, Photo, scan_folder
from .logging import get_logger
from .review.finalize import finalize_review, write_deletion_plan
from .review.session import KeyBindings, ReviewAction, ReviewSession
from .similarity.cluster import cluster_similar_photos
from .similarity.duplicates import DuplicatePair, detect_duplicates, detect_duplicates_async
from .similarity.hash import HashConfig, ImageLoadError, ProgressCallback, compute_hash

app = typer.Typer(help="photocull – cull a photo folder and flag likely duplicates", no_args_is_help=True)

CLI_BINDINGS = KeyBindings(keep="k", trash="t", skip="s", previous="b")
QUIT_KEY = "q"


def _load_settings() -> Settings:
    logger = get_logger(__name__)
    try:
        return Settings.from_env()
    except ConfigurationError as exc:
        logger.error(f"Invalid configuration: {exc}")
        raise typer.Exit(code=2) from exc


def _scan(folder: Path, recursive: bool) -> List[Photo]:
    logger = get_logger(__name__)
    try:
        return scan_folder(folder, recursive=recursive)
    except (FileNotFoundError, NotADirectoryError) as exc:
        logger.error(f"Cannot read folder {folder}: {exc}")
        raise typer.Exit(code=1) from exc


def _format_size(size_bytes: int) -> str:
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size_bytes} B"


@contextmanager
def _hash_progress(count: int) -> Iterator[ProgressCallback]:
    """Progress bar fed by hashing ``on_progress`` callbacks."""
    with typer.progressbar(length=count, label="Hashing photos") as bar:
        def on_progress(completed: int, total: int) -> None:
            bar.update(completed - bar.pos)

        yield on_progress


def _find_duplicates(photos: List[Photo], settings: Settings, threshold: Optional[float]) -> List[DuplicatePair]:
    """Run duplicate detection, hashing in worker threads when ``max_workers`` > 1."""
    threshold = settings.similarity_threshold if threshold is None else threshold
    with _hash_progress(len(photos)) as on_progress:
        if settings.max_workers > 1:
            return anyio.run(partial(
                detect_duplicates_async,
                photos,
                threshold=threshold,
                on_progress=on_progress,
                config=settings.hash_config(),
                max_workers=settings.max_workers,
            ))
        return detect_duplicates(
            photos,
            threshold=threshold,
            on_progress=on_progress,
            config=settings.hash_config(),
        )


@app.command("hash")
def hash_image(
    image_path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Image to fingerprint"),
    width: int = typer.Option(9, help="Hash grid width"),
    height: int = typer.Option(8, help="Hash grid height"),
) -> None:
    """Print the difference-hash fingerprint of a single image."""
    logger = get_logger(__name__)
    try:
        fingerprint = compute_hash(image_path, HashConfig(width=width, height=height))
    except ConfigurationError as exc:
        logger.error(f"Invalid hash grid: {exc}")
        raise typer.Exit(code=2) from exc
    except ImageLoadError as exc:
        logger.error(str(exc))
        raise typer.Exit(code=1) from exc

    typer.echo(fingerprint.hex)


@app.command()
def duplicates(
    folder: Path = typer.Argument(..., help="Folder containing photos"),
    threshold: Optional[float] = typer.Option(None, help="Minimum similarity (0-1) to flag a pair"),
    recursive: Optional[bool] = typer.Option(None, "--recursive/--no-recursive", help="Descend into sub-folders"),
) -> None:
    """List likely duplicate pairs, most similar first."""
    logger = get_logger(__name__)
    settings = _load_settings()
    photos = _scan(folder, settings.recursive if recursive is None else recursive)

    logger.info(f"Hashing {len(photos)} photos with {settings.max_workers} worker(s)...")
    pairs = _find_duplicates(photos, settings, threshold)

    if not pairs:
        typer.echo("No duplicates found")
        return

    for pair in pairs:
        typer.echo(f"{pair.similarity:.3f}  (distance {pair.distance:2d})  {pair.photo1.rel_path}  <->  {pair.photo2.rel_path}")
    typer.echo(f"\n{len(pairs)} duplicate pairs")


@app.command()
def clusters(
    folder: Path = typer.Argument(..., help="Folder containing photos"),
    distance: Optional[int] = typer.Option(None, help="Maximum Hamming distance to the cluster anchor"),
    recursive: Optional[bool] = typer.Option(None, "--recursive/--no-recursive", help="Descend into sub-folders"),
) -> None:
    """Group similar photos around anchor photos."""
    settings = _load_settings()
    photos = _scan(folder, settings.recursive if recursive is None else recursive)

    with _hash_progress(len(photos)) as on_progress:
        found = cluster_similar_photos(
            photos,
            threshold=settings.cluster_distance if distance is None else distance,
            on_progress=on_progress,
            config=settings.hash_config(),
        )

    if not found:
        typer.echo("No similar photos found")
        return

    for cluster in found:
        typer.echo(f"{cluster.id} ({len(cluster.photos)} photos)")
        for photo in cluster.photos:
            typer.echo(f"   {photo.rel_path}")


def _run_review_loop(session: ReviewSession) -> bool:
    """Prompt until every photo is decided. Returns False if the user quits."""
    total = len(session.photos)
    while not session.ready_to_finalize:
        photo = session.current_photo
        stats = session.stats()
        badge = " [duplicate]" if session.has_duplicates() else ""
        decision = session.current_decision
        marker = f" ({decision.value})" if decision is not None else ""
        typer.echo(f"[{session.index + 1}/{total}] {photo.rel_path}{badge}{marker}  - {stats.decided}/{total} decided")

        key = typer.prompt("k=keep t=trash s=skip b=back q=quit", default="", show_default=False).strip().lower()
        if key == QUIT_KEY:
            return False

        tour_was_completed = session.tour_completed
        action = session.handle_key(key, CLI_BINDINGS)
        if action is None:
            typer.echo(f"Unknown key: {key!r}")
            continue
        if action is not ReviewAction.PREVIOUS and session.tour_completed and not tour_was_completed:
            # Leave the last photo straight away and start the sweep
            session.next()
    return True


@app.command()
def review(
    folder: Path = typer.Argument(..., help="Folder containing photos"),
    dedup: bool = typer.Option(True, "--dedup/--no-dedup", help="Flag duplicates and review them together"),
    threshold: Optional[float] = typer.Option(None, help="Minimum similarity (0-1) to flag a pair"),
    recursive: Optional[bool] = typer.Option(None, "--recursive/--no-recursive", help="Descend into sub-folders"),
    delete: bool = typer.Option(False, "--delete", help="Delete trashed photos after confirmation"),
    plan_dir: Optional[Path] = typer.Option(None, "--plan-dir", help="Write a file list and delete script here instead"),
) -> None:
    """
    Review every photo in FOLDER and decide keep / trash / skip.

    After a first pass over all photos, skipped photos are revisited until
    each one is kept or trashed. Trashed photos are only deleted with
    --delete; --plan-dir writes a deletion script for later use instead.
    """
    logger = get_logger(__name__)
    settings = _load_settings()
    photos = _scan(folder, settings.recursive if recursive is None else recursive)
    if not photos:
        typer.echo(f"No photos found in {folder}")
        return

    pairs: List[DuplicatePair] = []
    if dedup:
        logger.info(f"Detecting duplicates among {len(photos)} photos...")
        pairs = _find_duplicates(photos, settings, threshold)

    session = ReviewSession(settings)
    session.load(photos, pairs)

    if not _run_review_loop(session):
        typer.echo("Review cancelled, nothing deleted")
        session.clear()
        return

    stats = session.stats()
    typer.echo(f"\nKeep: {stats.keep_count} ({_format_size(stats.keep_bytes)})")
    typer.echo(f"Trash: {stats.trash_count} ({_format_size(stats.trash_bytes)})")

    if stats.trash_count == 0:
        session.clear()
        return

    if plan_dir is not None:
        written = write_deletion_plan(session.photos, session.decisions, plan_dir)
        for path in written:
            typer.echo(f"Wrote {path}")
    elif delete:
        if typer.confirm(f"Delete {stats.trash_count} photos from {folder}?"):
            try:
                deleted = finalize_review(LocalFileDeleter(folder), session.photos, session.decisions)
            except PermissionError as exc:
                logger.error(str(exc))
                raise typer.Exit(code=1) from exc
            typer.echo(f"Deleted {deleted} photos")
        else:
            typer.echo("Nothing deleted")
    else:
        for photo in session.trash_photos():
            typer.echo(f"   {photo.rel_path}")
        typer.echo("Run again with --delete or --plan-dir to remove these photos")

    session.clear()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
