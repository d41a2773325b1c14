"""Dreem CLI - Dream Journal."""

import json
import logging
import sys
from dataclasses import asdict
from datetime import date

import click

from .config import load_config
from .core.navigation import (
    JOURNAL_ROUTE,
    Decision,
    DecisionMade,
    EditChanged,
    NavigationAttempted,
    PromptUser,
    Saved,
    prompt_message,
)
from .core.records import Role
from .ports.interpreter import InterpretationError, RateLimitError
from .ports.record_store import StorageWriteError
from .repositories import THEME_CHOICES, list_chats_by_recency
from .workflows import (
    EmptyEntryError,
    EntryEditor,
    NavigationInterceptor,
    Services,
    build_services,
    journal_list,
    send_chat_message,
)

SECTIONS = ["Calendar", "Chat", "Settings"]

DECISIONS = {
    "discard": Decision.DISCARD,
    "cancel": Decision.CANCEL,
    "draft": Decision.SAVE_DRAFT,
}


def _services(ctx: click.Context) -> Services:
    return ctx.obj["services"]


def _date_key(target_date: str | None) -> str:
    """Validate a YYYY-MM-DD option, defaulting to today."""
    if not target_date:
        return date.today().isoformat()
    try:
        return date.fromisoformat(target_date).isoformat()
    except ValueError:
        raise click.BadParameter(f"{target_date!r} is not a YYYY-MM-DD date", param_hint="--date")


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _ai_error_message(e: InterpretationError) -> str:
    if isinstance(e, RateLimitError):
        return f"Luna is busy: {e}"
    return str(e)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.version_option(package_name="dreem")
@click.pass_context
def main(ctx: click.Context, debug: bool):
    """Dreem - Dream Journal CLI."""
    config = load_config()
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else getattr(logging, config.log_level, logging.WARNING),
    )
    ctx.ensure_object(dict)
    if "services" not in ctx.obj:
        ctx.obj["services"] = build_services(config)


# ============== Journal ==============


@main.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_entries(ctx: click.Context, as_json: bool):
    """List journal entries and drafts, newest first."""
    s = _services(ctx)
    items = journal_list(s.entries, s.drafts)

    if as_json:
        click.echo(json.dumps([asdict(item) for item in items], indent=2, ensure_ascii=False))
        return

    if not items:
        click.echo("No entries yet.")
        return

    for item in items:
        marker = "[draft]" if item.is_draft else f"{item.moon_phase_emoji} {item.moon_phase}".strip()
        preview = item.preview.splitlines()[0] if item.preview else ""
        click.echo(f"{item.date_key}  {marker:20} {preview[:60]}")


@main.command()
@click.option("--date", "-d", "target_date", default=None, help="Date to view (YYYY-MM-DD), defaults to today")
@click.pass_context
def show(ctx: click.Context, target_date: str | None):
    """Show the entry (or draft) for a day."""
    s = _services(ctx)
    date_key = _date_key(target_date)
    day = date.fromisoformat(date_key).strftime("%A, %b %d %Y")

    entry = s.entries.find_by_key(date_key)
    if entry:
        click.echo(f"{day}  {entry.moon_phase_emoji} {entry.moon_phase}\n")
        click.echo(entry.text.strip() or "No content yet")
        if entry.ai_analysis:
            click.echo(f"\n--- Luna's Analysis ---\n\n{entry.ai_analysis.strip()}")
        return

    draft = s.drafts.find_by_key(date_key)
    if draft:
        click.echo(f"{day}  (draft saved {draft.saved_at})\n")
        click.echo(draft.text.strip() or "No content yet")
        return

    click.echo(f"No journal entry for {day}.")


@main.command()
@click.option("--date", "-d", "target_date", default=None, help="Date to write (YYYY-MM-DD), defaults to today")
@click.option("--text", "-t", required=True, help="Entry text")
@click.pass_context
def write(ctx: click.Context, target_date: str | None, text: str):
    """Save an entry for a day, replacing its text."""
    s = _services(ctx)
    editor = EntryEditor(_date_key(target_date), s.entries, s.drafts, s.guard).open()
    try:
        editor.set_text(text)
        result = editor.save()
    except StorageWriteError as e:
        _fail(str(e))
    finally:
        editor.close()

    click.echo(f"✓ Saved {editor.date_key}")
    if result.residual_draft:
        click.echo("  (an old draft for this day could not be removed)", err=True)


@main.command()
@click.option("--date", "-d", "target_date", required=True, help="Date to delete (YYYY-MM-DD)")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete(ctx: click.Context, target_date: str, yes: bool):
    """Delete the entry and any draft for a day."""
    s = _services(ctx)
    date_key = _date_key(target_date)
    if not yes and not click.confirm(f"Delete the entry for {date_key}?"):
        return

    editor = EntryEditor(date_key, s.entries, s.drafts, s.guard).open()
    try:
        editor.delete()
    except StorageWriteError as e:
        _fail(str(e))
    finally:
        editor.close()
    click.echo(f"✓ Deleted {date_key}")


@main.command()
@click.option("--date", "-d", "target_date", default=None, help="Date to interpret (YYYY-MM-DD), defaults to today")
@click.pass_context
def interpret(ctx: click.Context, target_date: str | None):
    """Ask Luna to interpret the day's entry."""
    s = _services(ctx)
    editor = EntryEditor(_date_key(target_date), s.entries, s.drafts, s.guard, s.interpreter).open()
    try:
        answer = editor.ask_ai()
    except EmptyEntryError as e:
        _fail(str(e))
    except InterpretationError as e:
        _fail(_ai_error_message(e))
    finally:
        editor.close()

    if answer:
        click.echo(answer)


# ============== Interactive Editor ==============


def _ask_decision(target: str) -> Decision:
    title, body = prompt_message(target)
    click.echo(f"\n{title}\n{body}")
    choice = click.prompt(
        "Discard, cancel, or save as draft?",
        type=click.Choice(list(DECISIONS)),
        default="cancel",
    )
    return DECISIONS[choice]


def _leave(interceptor: NavigationInterceptor, services: Services, target: str) -> None:
    """Attempt navigation; ask the user when the interceptor blocks it."""
    effects = interceptor.dispatch(NavigationAttempted(target, services.guard.session))
    if any(isinstance(effect, PromptUser) for effect in effects):
        interceptor.dispatch(DecisionMade(_ask_decision(target)))


@main.command()
@click.option("--date", "-d", "target_date", default=None, help="Date to edit (YYYY-MM-DD), defaults to today")
@click.pass_context
def edit(ctx: click.Context, target_date: str | None):
    """Interactive editor with unsaved-change protection."""
    s = _services(ctx)
    editor = EntryEditor(_date_key(target_date), s.entries, s.drafts, s.guard, s.interpreter).open()
    destination: list[str] = []
    interceptor = NavigationInterceptor(s.guard, s.drafts, destination.append)

    day = editor.target_date.strftime("%A, %b %d %Y")
    click.echo(f"{day}  {editor.moon.emoji} {editor.moon.phase}")
    if editor.from_draft:
        click.echo("(resuming a saved draft)")
    click.echo(editor.text or "(empty)")

    commands = ["write", "save", "ask", "delete", "back"] + [name.lower() for name in SECTIONS]
    try:
        while not destination:
            command = click.prompt(
                "\nCommand",
                type=click.Choice(commands, case_sensitive=False),
                default="back",
                show_choices=True,
            ).lower()

            try:
                match command:
                    case "write":
                        text = click.prompt("Text", default=editor.text, show_default=False)
                        dirty = editor.set_text(text)
                        interceptor.dispatch(EditChanged(dirty))
                    case "save":
                        result = editor.save()
                        interceptor.dispatch(Saved())
                        click.echo("✓ Saved")
                        if result.residual_draft:
                            click.echo("  (an old draft for this day could not be removed)", err=True)
                    case "ask":
                        answer = editor.ask_ai()
                        interceptor.dispatch(EditChanged(editor.has_unsaved_changes))
                        if answer:
                            click.echo(f"\n--- Luna's Analysis ---\n\n{answer}")
                    case "delete":
                        if click.confirm("Delete this entry?"):
                            editor.delete()
                            interceptor.dispatch(Saved())
                            click.echo("✓ Deleted")
                    case "back":
                        _leave(interceptor, s, JOURNAL_ROUTE)
                    case section:
                        _leave(interceptor, s, section.capitalize())
            except EmptyEntryError as e:
                click.echo(str(e), err=True)
            except InterpretationError as e:
                click.echo(f"AI Error: {_ai_error_message(e)}", err=True)
            except StorageWriteError as e:
                click.echo(f"Error: {e}", err=True)
    finally:
        editor.close()

    click.echo(f"→ {destination[0]}")


# ============== Chat ==============


@main.group()
def chat():
    """Chat with Luna."""
    pass


@chat.command("new")
@click.pass_context
def chat_new(ctx: click.Context):
    """Start a new chat."""
    new_chat = _services(ctx).chats.create()
    click.echo(new_chat.id)


@chat.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def chat_list(ctx: click.Context, as_json: bool):
    """List chats, most recent first."""
    chats = list_chats_by_recency(_services(ctx).chats.find_all())

    if as_json:
        click.echo(json.dumps([c.to_dict() for c in chats], indent=2, ensure_ascii=False))
        return

    if not chats:
        click.echo("No chats yet.")
        return

    for c in chats:
        click.echo(f"{c.id}  {c.title}  ({len(c.messages)} messages)")


@chat.command("send")
@click.argument("chat_id")
@click.argument("content")
@click.option("--offline", is_flag=True, help="Store the message without asking Luna")
@click.pass_context
def chat_send(ctx: click.Context, chat_id: str, content: str, offline: bool):
    """Send a message to a chat."""
    s = _services(ctx)
    try:
        updated = send_chat_message(s.chats, chat_id, content, None if offline else s.interpreter)
    except ValueError as e:
        _fail(str(e))
    except InterpretationError as e:
        _fail(_ai_error_message(e))

    if updated is None:
        _fail(f"No chat with id {chat_id}")

    last = updated.messages[-1]
    if last.role == Role.ASSISTANT:
        click.echo(last.content)


@chat.command("delete")
@click.argument("chat_id")
@click.pass_context
def chat_delete(ctx: click.Context, chat_id: str):
    """Delete a chat."""
    _services(ctx).chats.remove(chat_id)
    click.echo(f"✓ Deleted chat {chat_id}")


# ============== Settings ==============


@main.command()
@click.argument("preference", required=False, type=click.Choice(THEME_CHOICES))
@click.pass_context
def theme(ctx: click.Context, preference: str | None):
    """Show or set the theme preference."""
    settings = _services(ctx).settings
    if preference:
        settings.set_theme(preference)
    click.echo(settings.get_theme())


@main.group()
def auth():
    """Manage the OpenAI API key."""
    pass


@auth.command("set-key")
@click.option("--key", prompt="OpenAI API key", hide_input=True, help="API key to store")
@click.pass_context
def auth_set_key(ctx: click.Context, key: str):
    """Store the OpenAI API key."""
    key = key.strip()
    if not key:
        _fail("API key is empty")
    _services(ctx).credentials.set(key)
    click.echo("✓ API key saved")


@auth.command("verify")
@click.pass_context
def auth_verify(ctx: click.Context):
    """Check that the stored API key works."""
    try:
        _services(ctx).interpreter.verify_credential()
    except InterpretationError as e:
        _fail(str(e))
    click.echo("✓ API key is valid")


if __name__ == "__main__":
    main()
