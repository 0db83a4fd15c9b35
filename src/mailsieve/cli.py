"""Command-line interface for mailsieve.

Provides commands for configuration validation, spam scoring, classifier
training and conversation threading over message files (JSON or YAML lists
of message mappings, see Message.from_dict).

Usage:
    python -m mailsieve validate-config
    python -m mailsieve score messages.yaml
    python -m mailsieve train spam.json --spam
    python -m mailsieve train ham.json --ham
    python -m mailsieve stats
    python -m mailsieve threads inbox.yaml
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
import yaml
from rich.console import Console
from rich.table import Table

from mailsieve.config import validate_config_file
from mailsieve.core.logging import configure_logging

if TYPE_CHECKING:
    from mailsieve.classifier.bayes import ClassifierModel
    from mailsieve.config_schema import AppConfig
    from mailsieve.models import Message

console = Console()


def _load_app_config() -> AppConfig:
    """Load config.yaml, falling back to defaults when it does not exist.

    Applies the logging section unless --debug was given. Prints the error
    and calls sys.exit(1) when the file exists but is invalid.
    """
    from mailsieve.config import get_config
    from mailsieve.config_schema import AppConfig
    from mailsieve.core.errors import (
        ConfigLoadError,
        ConfigNotFoundError,
        ConfigValidationError,
    )

    try:
        config = get_config()
    except ConfigNotFoundError:
        console.print("[yellow]No config file found, using defaults.[/yellow]")
        config = AppConfig()
    except (ConfigLoadError, ConfigValidationError) as e:
        console.print(f"[red]Config error:[/red] {e}")
        sys.exit(1)

    ctx = click.get_current_context(silent=True)
    if not (ctx and ctx.obj and ctx.obj.get("debug")):
        configure_logging(
            log_level=config.logging.level,
            json_output=config.logging.json_output,
        )
    return config


def _read_messages(path: Path) -> list[Message]:
    """Read a JSON/YAML message file.

    The file holds either a list of message mappings or a mapping with a
    "messages" list. Prints the error and calls sys.exit(1) on failure.
    """
    from mailsieve.models import Message

    try:
        with open(path, encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        console.print(f"[red]Could not read {path}:[/red] {e}")
        sys.exit(1)

    if isinstance(data, dict):
        data = data.get("messages")
    if not isinstance(data, list):
        console.print(
            f"[red]Invalid message file {path}:[/red] expected a list of messages "
            "or a mapping with a 'messages' list"
        )
        sys.exit(1)

    try:
        return [Message.from_dict(item) for item in data]
    except (KeyError, TypeError, ValueError) as e:
        console.print(f"[red]Invalid message in {path}:[/red] {e}")
        sys.exit(1)


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """mailsieve - spam scoring and conversation threading for mail.

    Logging follows the logging section of config.yaml; --debug forces
    DEBUG-level console logs.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    log_level = "DEBUG" if debug else "WARNING"
    configure_logging(log_level=log_level, json_output=False)


@cli.command("validate-config")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to config.yaml (default: config/config.yaml)",
)
def validate_config(config_path: Path | None) -> None:
    """Validate the configuration file.

    Checks that config.yaml exists and passes Pydantic schema validation.
    Reports specific errors for invalid fields.
    """
    if config_path:
        console.print(f"Validating config: [cyan]{config_path}[/cyan]")
    else:
        console.print("Validating config: [cyan]config/config.yaml[/cyan]")

    is_valid, message = validate_config_file(config_path)

    if is_valid:
        console.print(f"\n[green]✓[/green] {message}")
        sys.exit(0)
    else:
        console.print(f"\n[red]✗[/red] {message}")
        sys.exit(1)


@cli.command("score")
@click.argument("messages_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def score(messages_file: Path) -> None:
    """Score every message in MESSAGES_FILE for spam."""
    from mailsieve.classifier.spam_filter import SpamFilter

    config = _load_app_config()
    model = _load_model_or_exit(Path(config.classifier.model_path))
    spam_filter = SpamFilter.from_config(config.classifier, model=model)

    table = Table(box=None, padding=(0, 2))
    table.add_column("ID", style="cyan")
    table.add_column("Subject")
    table.add_column("Score", justify="right")
    table.add_column("Verdict")
    table.add_column("Reasons", style="dim")

    spam_total = 0
    messages = _read_messages(messages_file)
    for message in messages:
        result = spam_filter.calculate_spam_score(message)
        if result.is_spam:
            spam_total += 1
        table.add_row(
            message.id,
            message.subject[:60],
            f"{result.score:.1f}",
            "[red]spam[/red]" if result.is_spam else "[green]ham[/green]",
            "; ".join(result.reasons),
        )

    console.print(table)
    console.print(
        f"\n[bold]{spam_total}[/bold] of {len(messages)} messages at or above "
        f"threshold {spam_filter.threshold:g}"
    )


@cli.command("train")
@click.argument("messages_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--spam", "label", flag_value="spam", help="Train the messages as spam")
@click.option("--ham", "label", flag_value="ham", help="Train the messages as legitimate")
@click.option(
    "--untrain",
    is_flag=True,
    default=False,
    help="Reverse a previous training of the same messages",
)
def train(messages_file: Path, label: str | None, untrain: bool) -> None:
    """Train (or untrain) the saved classifier model with MESSAGES_FILE."""
    from mailsieve.classifier.model_store import save_model
    from mailsieve.classifier.spam_filter import SpamFilter
    from mailsieve.core.errors import ModelPersistenceError

    if label is None:
        console.print("[red]Choose --spam or --ham.[/red]")
        sys.exit(2)

    config = _load_app_config()
    model_path = Path(config.classifier.model_path)
    model = _load_model_or_exit(model_path)
    spam_filter = SpamFilter.from_config(config.classifier, model=model)

    messages = _read_messages(messages_file)
    for message in messages:
        if label == "spam":
            if untrain:
                spam_filter.untrain_spam(message)
            else:
                spam_filter.train_spam(message)
        elif untrain:
            spam_filter.untrain_ham(message)
        else:
            spam_filter.train_ham(message)

    try:
        save_model(model, model_path)
    except ModelPersistenceError as e:
        console.print(f"[red]Model error:[/red] {e}")
        sys.exit(1)

    action = "Untrained" if untrain else "Trained"
    console.print(
        f"[green]✓[/green] {action} {len(messages)} messages as {label} "
        f"([cyan]{model_path}[/cyan])"
    )


@cli.command("stats")
def stats() -> None:
    """Show statistics of the saved classifier model."""
    from mailsieve.classifier.spam_filter import SpamFilter

    config = _load_app_config()
    model_path = Path(config.classifier.model_path)
    model = _load_model_or_exit(model_path)
    filter_stats = SpamFilter.from_config(config.classifier, model=model).get_stats()

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Model file", str(model_path))
    table.add_row("Known tokens", f"{filter_stats.total_tokens:,}")
    table.add_row("Spam messages trained", str(filter_stats.spam_emails_trained))
    table.add_row("Ham messages trained", str(filter_stats.ham_emails_trained))
    table.add_row("Spam threshold", f"{filter_stats.threshold:g}")
    console.print(table)


@cli.command("threads")
@click.argument("messages_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def threads(messages_file: Path) -> None:
    """Thread the messages in MESSAGES_FILE and list the conversations."""
    from mailsieve.classifier.spam_filter import SpamFilter
    from mailsieve.engine.mail_processor import MailProcessor
    from mailsieve.threads.threader import EmailThreader

    config = _load_app_config()
    model = _load_model_or_exit(Path(config.classifier.model_path))
    threader = EmailThreader.from_config(config.threading)
    processor = MailProcessor(SpamFilter.from_config(config.classifier, model=model), threader)

    messages = threader.sort_thread_emails(_read_messages(messages_file))
    processor.process_batch(messages)

    grouped = threader.group_emails_into_threads(messages)
    aggregates = threader.sort_threads(
        [threader.build_thread_data(members) for members in grouped.values()]
    )

    table = Table(box=None, padding=(0, 2))
    table.add_column("Subject", style="cyan")
    table.add_column("Messages", justify="right")
    table.add_column("Unread", justify="right")
    table.add_column("Last message")
    table.add_column("Snippet", style="dim")
    for thread in aggregates:
        table.add_row(
            thread.subject[:50],
            str(thread.message_count),
            str(thread.unread_count),
            thread.last_message_at.strftime("%Y-%m-%d %H:%M"),
            thread.snippet[:60],
        )

    console.print(table)
    console.print(f"\n[bold]{len(aggregates)}[/bold] threads from {len(messages)} messages")


def _load_model_or_exit(path: Path) -> ClassifierModel:
    """Load the classifier model, printing the error and exiting on failure."""
    from mailsieve.classifier.model_store import load_model
    from mailsieve.core.errors import ModelPersistenceError

    try:
        return load_model(path)
    except ModelPersistenceError as e:
        console.print(f"[red]Model error:[/red] {e}")
        sys.exit(1)


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
