"""CLI entry point for agent notes."""

import json
import os
import sys
from pathlib import Path
from typing import NoReturn

import click

from agentnotes.anchors import AnchorError, build_anchor_from_range, build_anchor_from_unique_text
from agentnotes.locking import LockTimeout
from agentnotes.models import CommentStatus, Note, NoteComment
from agentnotes.resolution import get_all_highlight_ranges
from agentnotes.search import get_sorted_tags, search
from agentnotes.store import CommentNotFound, NoteNotFound, NoteStore, RevisionMismatch
from agentnotes.utils.logging import get_logger, init_logger

STATUS_COLORS = {
    CommentStatus.ATTACHED: "green",
    CommentStatus.STALE: "yellow",
    CommentStatus.DETACHED: "red",
}


def _fail(message: str, code: int = 1, suggestion: str | None = None) -> NoReturn:
    get_logger().error(message, suggestion=suggestion)
    sys.exit(code)


def _fail_system(message: str, exc: Exception) -> NoReturn:
    get_logger().exception(message, exc)
    sys.exit(2)


def _style(text: str, **styles) -> str:
    if os.environ.get("NO_COLOR") is not None:
        return text
    return click.style(text, **styles)


def _read_stdin() -> str:
    """Piped stdin, or "" when stdin is an interactive terminal."""
    stream = click.get_text_stream("stdin")
    if stream.isatty():
        return ""
    return stream.read()


def _parse_tags(value: str) -> list[str]:
    return [tag.strip() for tag in value.split(",") if tag.strip()]


def resolve_note(store: NoteStore, reference: str) -> Note:
    """
    Find a note by id, id without ``.md``, exact title, or partial title/filename.

    Title and filename matching is case-insensitive; the first match in
    path order wins.

    Raises:
        NoteNotFound: If nothing matches
    """
    for candidate in (reference, f"{reference}.md"):
        if candidate.endswith(".md"):
            try:
                return store.get_note(candidate)
            except NoteNotFound:
                pass

    notes = store.list_notes().notes
    lowered = reference.lower()
    for matches in (
        lambda n: n.title.lower() == lowered,
        lambda n: lowered in n.title.lower(),
        lambda n: lowered in n.filename.lower(),
    ):
        for note in notes:
            if matches(note):
                return note

    raise NoteNotFound(f"Note not found: {reference}")


def _load_note(store: NoteStore, reference: str) -> Note:
    try:
        return resolve_note(store, reference)
    except NoteNotFound as e:
        _fail(str(e))
    except FileNotFoundError as e:
        _fail(str(e), code=2, suggestion="Create it or pass --notes-dir")


def _tags_text(tags: list[str]) -> str:
    return " ".join(f"#{tag}" for tag in tags)


def format_comment(comment: NoteComment) -> list[str]:
    """Human-readable lines for one comment."""
    status = comment.status or CommentStatus.DETACHED
    anchor = comment.anchor
    lines = [
        f"{_style(comment.id[:8], fg='yellow', bold=True)} "
        f"{_style(comment.author or 'anonymous', fg='magenta')}",
        f"  {comment.content}",
        f"  {_style(status.value, fg=STATUS_COLORS[status])} "
        f"[{anchor.from_}:{anchor.to}] rev={anchor.rev}",
    ]
    if anchor.quote:
        lines.append(_style(f'  "{anchor.quote[:60]}"', dim=True))
    return lines


def _note_json(note: Note) -> dict:
    return note.model_dump(mode="json", by_alias=True)


@click.group()
@click.version_option(version="0.1.0", prog_name="agentnotes")
@click.option(
    "--notes-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="AGENTNOTES_DIR",
    default=lambda: Path.home() / "notes",
    show_default="~/notes or $AGENTNOTES_DIR",
    help="Notes directory",
)
@click.option(
    "--lock-timeout",
    type=click.FloatRange(min=0),
    envvar="AGENTNOTES_LOCK_TIMEOUT",
    default=5.0,
    show_default=True,
    help="Seconds to wait for another writer to release a note",
)
@click.option("-v", "--verbose", is_flag=True, help="Print debug output")
@click.pass_context
def cli(ctx: click.Context, notes_dir: Path, lock_timeout: float, verbose: bool):
    """Plain-text notes with comments anchored to ranges of text."""
    init_logger(verbose=verbose)
    ctx.obj = NoteStore(notes_dir, lock_timeout=lock_timeout)


@cli.command(name="list")
@click.option("-t", "--tag", "tags", multiple=True, help="Only notes with this tag (repeatable)")
@click.option("-q", "--query", help="Case-insensitive text to search for")
@click.option(
    "--sort",
    "sort_by",
    type=click.Choice(["created", "updated", "title"]),
    default="created",
    show_default=True,
)
@click.option("--reverse", is_flag=True, help="Reverse sort order")
@click.option("--limit", type=int, help="Show at most this many notes")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_obj
def list_notes(
    store: NoteStore,
    tags: tuple[str, ...],
    query: str | None,
    sort_by: str,
    reverse: bool,
    limit: int | None,
    json_output: bool,
):
    """
    List notes.

    Examples:

        agentnotes list --tag draft --sort title

        agentnotes list -q "release plan" --json
    """
    notes = search(
        store.list_notes().notes,
        query=query,
        tags=list(tags),
        limit=limit,
        sort_by=sort_by,  # type: ignore[arg-type]
        reverse=reverse,
    )

    if json_output:
        click.echo(
            json.dumps(
                [
                    {"id": n.id, "title": n.title, "tags": n.tags, "comments": len(n.comments)}
                    for n in notes
                ],
                indent=2,
            )
        )
        return

    if not notes:
        click.echo("No notes found.")
        return

    for note in notes:
        line = f"{_style(note.title, fg='cyan', bold=True)} {_style(f'[{note.id}]', dim=True)}"
        if note.tags:
            line += f" {_style(_tags_text(note.tags), fg='green')}"
        click.echo(line)


@cli.command()
@click.argument("note_ref")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--highlights", is_flag=True, help="Also print merged highlight ranges")
@click.pass_obj
def show(store: NoteStore, note_ref: str, json_output: bool, highlights: bool):
    """Show a note with its comments."""
    note = _load_note(store, note_ref)
    ranges = get_all_highlight_ranges(note.content, note.comments) if highlights else []

    if json_output:
        payload = _note_json(note)
        if highlights:
            payload["highlights"] = [{"from": r.from_, "to": r.to} for r in ranges]
        click.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    separator = "─" * 50
    click.echo(separator)
    click.echo(_style(note.title, fg="cyan", bold=True))
    click.echo(f"ID:       {note.id}")
    if note.tags:
        click.echo(f"Tags:     {_tags_text(note.tags)}")
    click.echo(f"Revision: {note.comment_rev}")
    click.echo(separator)
    click.echo(note.content)

    if note.comments:
        click.echo("")
        click.echo(_style("Comments:", bold=True))
        for comment in note.comments:
            for line in format_comment(comment):
                click.echo(f"  {line}")

    if highlights:
        click.echo("")
        click.echo(_style("Highlights:", bold=True))
        for r in ranges:
            click.echo(f"  [{r.from_}:{r.to}] {note.content[r.from_:r.to][:60]!r}")


@cli.command()
@click.argument("title")
@click.option("-d", "--dir", "directory", default="", help="Directory relative to the notes root")
@click.pass_obj
def add(store: NoteStore, title: str, directory: str):
    """Create a new note."""
    try:
        note = store.create_note(title, directory)
    except ValueError as e:
        _fail(str(e))
    except FileNotFoundError as e:
        _fail(str(e), code=2, suggestion="Create it or pass --notes-dir")

    get_logger().success(f"Created note {note.id}")
    click.echo(note.id)


@cli.command()
@click.argument("note_ref")
@click.option("--content", help="Replace the content")
@click.option("--append", "append_text", help="Append a line")
@click.option("--prepend", "prepend_text", help="Prepend a line")
@click.option(
    "--file",
    "source_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Replace the content with this file's text",
)
@click.option("--tags", help="Replace all tags (comma separated)")
@click.option("--add-tags", help="Add tags (comma separated)")
@click.option("--remove-tags", help="Remove tags (comma separated)")
@click.pass_obj
def edit(
    store: NoteStore,
    note_ref: str,
    content: str | None,
    append_text: str | None,
    prepend_text: str | None,
    source_file: Path | None,
    tags: str | None,
    add_tags: str | None,
    remove_tags: str | None,
):
    """
    Edit a note's content or tags.

    New content comes from piped stdin, --content, --file, --append or
    --prepend. Comments are carried across the edit; comments whose text
    was changed become stale, and comments whose text was deleted become
    detached.

    Examples:

        cat draft.txt | agentnotes edit "Release plan"

        agentnotes edit release-plan --append "- ship it" --add-tags done
    """
    note = _load_note(store, note_ref)
    changed = False

    try:
        if tags is not None or add_tags is not None or remove_tags is not None:
            new_tags = _parse_tags(tags) if tags is not None else list(note.tags)
            if add_tags is not None:
                new_tags += _parse_tags(add_tags)
            if remove_tags is not None:
                removed = {tag.lower() for tag in _parse_tags(remove_tags)}
                new_tags = [tag for tag in new_tags if tag.lower() not in removed]
            note = store.update_note_metadata(note.id, new_tags)
            get_logger().success("Tags updated")
            changed = True

        new_content: str | None = _read_stdin() or None
        if new_content is None:
            if content is not None:
                new_content = content
            elif source_file is not None:
                new_content = source_file.read_text(encoding="utf-8")
            elif append_text is not None:
                new_content = f"{note.content}\n{append_text}"
            elif prepend_text is not None:
                new_content = f"{prepend_text}\n{note.content}"

        if new_content is not None:
            before = {c.id: c.status for c in note.comments}
            note = store.update_note(note.id, new_content)
            get_logger().success(f"Note updated (rev {note.comment_rev})")
            for comment in note.comments:
                if comment.status != before.get(comment.id) and comment.status is not None:
                    get_logger().warning(f"Comment {comment.id[:8]} is now {comment.status.value}")
            changed = True
    except (NoteNotFound, ValueError) as e:
        _fail(str(e))
    except (LockTimeout, OSError) as e:
        _fail_system("Could not update note", e)

    if not changed:
        _fail("Nothing to change", suggestion="Pipe new content on stdin or pass --content/--tags")


@cli.command()
@click.argument("note_ref")
@click.option("--force", is_flag=True, help="Skip confirmation")
@click.pass_obj
def delete(store: NoteStore, note_ref: str, force: bool):
    """Delete a note and its comments."""
    note = _load_note(store, note_ref)
    if not force and not click.confirm(f"Delete note {note.id}?", default=False):
        click.echo("Cancelled.")
        return

    try:
        store.delete_note(note.id)
    except (LockTimeout, OSError) as e:
        _fail_system("Could not delete note", e)
    get_logger().success(f"Deleted {note.id}")


@cli.command()
@click.pass_obj
def tags(store: NoteStore):
    """Show tags with note counts."""
    counts = get_sorted_tags(store.list_notes().notes)
    if not counts:
        click.echo("No tags found.")
        return
    for tag_count in counts:
        click.echo(f"{_style('#' + tag_count.tag, fg='green')} ({tag_count.count})")


@cli.group()
def comment():
    """Manage comments on notes."""
    pass


@comment.command(name="add")
@click.argument("note_ref")
@click.argument("body", required=False)
@click.option("-a", "--author", default="", help="Comment author (empty = anonymous)")
@click.option("--exact", "exact_text", metavar="TEXT", help="Anchor to the unique occurrence of TEXT")
@click.option("--from", "from_", type=int, help="Start character offset")
@click.option("--to", type=int, help="End character offset (exclusive)")
@click.pass_obj
def comment_add(
    store: NoteStore,
    note_ref: str,
    body: str | None,
    author: str,
    exact_text: str | None,
    from_: int | None,
    to: int | None,
):
    """
    Add a comment anchored to a range of the note's text.

    Examples:

        agentnotes comment add "Release plan" --exact "next Friday" "Too optimistic?"

        agentnotes comment add release-plan --from 10 --to 42 -a alice "Reword"
    """
    note = _load_note(store, note_ref)

    body = body or _read_stdin().strip()
    if not body:
        _fail("Comment content required (as argument or stdin)")

    try:
        if exact_text is not None:
            if from_ is not None or to is not None:
                _fail("Cannot use --exact with --from/--to")
            anchor = build_anchor_from_unique_text(note.content, exact_text, note.comment_rev)
        elif from_ is not None and to is not None:
            anchor = build_anchor_from_range(note.content, from_, to, note.comment_rev)
        else:
            _fail("Must specify either --exact or --from and --to")

        note = store.add_comment(note.id, body, author, anchor)
    except AnchorError as e:
        _fail(str(e))
    except RevisionMismatch as e:
        _fail(str(e), suggestion="The note changed while commenting; run the command again")
    except (LockTimeout, OSError) as e:
        _fail_system("Could not add comment", e)

    get_logger().success(f"Comment added ({note.comments[-1].id})")


@comment.command(name="list")
@click.argument("note_ref")
@click.option(
    "--status",
    type=click.Choice([s.value for s in CommentStatus]),
    help="Only comments with this status",
)
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_obj
def comment_list(store: NoteStore, note_ref: str, status: str | None, json_output: bool):
    """List comments on a note."""
    note = _load_note(store, note_ref)
    comments = [c for c in note.comments if status is None or c.status == CommentStatus(status)]

    if json_output:
        click.echo(
            json.dumps(
                [c.model_dump(mode="json", by_alias=True) for c in comments],
                indent=2,
                ensure_ascii=False,
            )
        )
        return

    if not comments:
        click.echo("No comments.")
        return
    for c in comments:
        for line in format_comment(c):
            click.echo(line)
        click.echo("")


@comment.command(name="delete")
@click.argument("note_ref")
@click.argument("comment_id")
@click.option("--force", is_flag=True, help="Skip confirmation")
@click.pass_obj
def comment_delete(store: NoteStore, note_ref: str, comment_id: str, force: bool):
    """Delete a comment (a unique id prefix is enough)."""
    note = _load_note(store, note_ref)
    matches = [c for c in note.comments if c.id == comment_id or c.id.startswith(comment_id)]
    if not matches:
        _fail(f"Comment not found: {comment_id}")
    if len(matches) > 1 and not any(c.id == comment_id for c in matches):
        _fail(f"Comment id prefix is ambiguous: {comment_id}")
    target = next((c for c in matches if c.id == comment_id), matches[0])

    if not force and not click.confirm(f"Delete comment {target.id[:8]}?", default=False):
        click.echo("Cancelled.")
        return

    try:
        store.delete_comment(note.id, target.id)
    except CommentNotFound as e:
        _fail(str(e))
    except (LockTimeout, OSError) as e:
        _fail_system("Could not delete comment", e)
    get_logger().success("Comment deleted")


if __name__ == "__main__":
    cli()
