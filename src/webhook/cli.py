"""Click CLI for driving webhooks from a shell."""

from __future__ import annotations

import asyncio
import json
import mimetypes
from collections.abc import Awaitable, Callable
from pathlib import Path

import click

from src.webhook.client import DEFAULT_API_BASE, WebhookClient
from src.webhook.dispatcher import Dispatcher, HttpxDispatcher
from src.webhook.errors import RequestError, TransportError
from src.webhook.models import Attachment, DispatchResponse

Call = Callable[[WebhookClient], Awaitable[DispatchResponse]]


@click.group()
@click.option(
    "--api-base", envvar="WEBHOOK_API_BASE", default=DEFAULT_API_BASE,
    show_default=True, help="Base URL of the REST API.",
)
@click.pass_context
def cli(ctx: click.Context, api_base: str) -> None:
    """Webhook resource client CLI."""
    ctx.ensure_object(dict)
    ctx.obj["api_base"] = api_base


def _run(ctx: click.Context, call: Call) -> None:
    injected: Dispatcher | None = ctx.obj.get("dispatcher")

    async def runner() -> DispatchResponse:
        if injected is not None:
            return await call(WebhookClient(injected, api_base=ctx.obj["api_base"]))
        async with HttpxDispatcher.from_env() as dispatcher:
            return await call(WebhookClient(dispatcher, api_base=ctx.obj["api_base"]))

    try:
        resp = asyncio.run(runner())
    except RequestError as exc:
        click.echo(json.dumps({"status": exc.status_code, "error": exc.error}), err=True)
        ctx.exit(1)
    except TransportError as exc:
        raise click.ClickException(f"API unreachable: {exc}") from exc

    data = resp.json()
    if data is not None:
        click.echo(json.dumps(data, indent=2))


def _attachment(path: str) -> Attachment:
    file_path = Path(path)
    content_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
    return Attachment(
        filename=file_path.name, data=file_path.read_bytes(), content_type=content_type,
    )


@cli.command()
@click.argument("webhook_id")
@click.argument("webhook_token")
@click.pass_context
def get(ctx: click.Context, webhook_id: str, webhook_token: str) -> None:
    """Show a webhook."""
    _run(ctx, lambda client: client.token_webhook(webhook_token, webhook_id))


@cli.command()
@click.argument("webhook_id")
@click.argument("webhook_token")
@click.option("--content", default=None, help="Message text.")
@click.option("--username", default=None, help="Override the webhook's name.")
@click.option("--avatar-url", default=None, help="Override the webhook's avatar.")
@click.option("--tts", is_flag=True, help="Send as text-to-speech.")
@click.option("--file", "file_path", type=click.Path(exists=True, dir_okay=False), default=None)
@click.option("--wait", is_flag=True, help="Wait for and print the created message.")
@click.pass_context
def execute(
    ctx: click.Context,
    webhook_id: str,
    webhook_token: str,
    content: str | None,
    username: str | None,
    avatar_url: str | None,
    tts: bool,
    file_path: str | None,
    wait: bool,
) -> None:
    """Post a message through a webhook."""
    if content is None and file_path is None:
        raise click.UsageError("Provide --content or --file.")
    file = _attachment(file_path) if file_path else None
    _run(ctx, lambda client: client.token_execute_webhook(
        webhook_token,
        webhook_id,
        wait=wait,
        content=content,
        username=username,
        avatar_url=avatar_url,
        tts=tts or None,
        file=file,
    ))


@cli.command()
@click.argument("webhook_id")
@click.argument("webhook_token")
@click.option("--reason", default=None, help="Audit log reason.")
@click.pass_context
def delete(ctx: click.Context, webhook_id: str, webhook_token: str, reason: str | None) -> None:
    """Delete a webhook."""
    _run(ctx, lambda client: client.token_delete_webhook(webhook_token, webhook_id, reason))


@cli.command("edit-message")
@click.argument("webhook_id")
@click.argument("webhook_token")
@click.argument("message_id")
@click.option("--content", default=None, help="New message text; omit to clear.")
@click.pass_context
def edit_message(
    ctx: click.Context, webhook_id: str, webhook_token: str, message_id: str, content: str | None,
) -> None:
    """Edit a message sent by a webhook."""
    _run(ctx, lambda client: client.token_edit_message(
        webhook_token, webhook_id, message_id, content=content,
    ))


@cli.command("delete-message")
@click.argument("webhook_id")
@click.argument("webhook_token")
@click.argument("message_id")
@click.pass_context
def delete_message(
    ctx: click.Context, webhook_id: str, webhook_token: str, message_id: str,
) -> None:
    """Delete a message sent by a webhook."""
    _run(ctx, lambda client: client.token_delete_message(webhook_token, webhook_id, message_id))
