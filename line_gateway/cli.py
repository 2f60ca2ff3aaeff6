"""Click CLI for operating the webhook gateway."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

import click

from line_gateway.api.oauth import DEFAULT_API_BASE_URL, HttpAccessTokenIssuer
from line_gateway.audit.logger import validate_audit_chain
from line_gateway.config import ConfigError, load_channel_configs
from line_gateway.errors import OAuthError
from line_gateway.webhook.signature import compute_signature


@click.group()
def cli() -> None:
    """LINE Messaging API webhook gateway."""


@cli.command()
@click.argument("body_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--secret", default=None, help="Channel secret.")
@click.option("--secret-env", default=None, help="Environment variable holding the secret.")
def sign(body_file: str, secret: str | None, secret_env: str | None) -> None:
    """Print the X-Line-Signature value for a request body file."""
    if secret_env:
        secret = os.environ.get(secret_env)
    if not secret:
        raise click.UsageError("Provide --secret or a set --secret-env variable.")
    click.echo(compute_signature(secret, Path(body_file).read_bytes()).decode())


@cli.command()
@click.option("--config", "config_path", default="config/channels.json", help="Channel config JSON.")
def channels(config_path: str) -> None:
    """List configured channels (secrets are not shown)."""
    configs = load_channel_configs(config_path)
    output = [
        {"channel_id": c.channel_id, "user_id": c.user_id, "handler": c.handler}
        for c in configs
    ]
    click.echo(json.dumps(output, indent=2))


@cli.command("issue-token")
@click.argument("user_id")
@click.option("--config", "config_path", default="config/channels.json", help="Channel config JSON.")
@click.option("--api-base-url", default=DEFAULT_API_BASE_URL, help="Messaging API base URL.")
def issue_token(user_id: str, config_path: str, api_base_url: str) -> None:
    """Issue a channel access token for the channel with USER_ID."""
    matches = [c for c in load_channel_configs(config_path) if c.user_id == user_id]
    if not matches:
        raise click.ClickException(f"No channel configured for {user_id}")
    config = matches[-1]
    issuer = HttpAccessTokenIssuer(api_base_url)
    try:
        token = asyncio.run(issuer.issue(config.channel_id, config.resolve_secret()))
    except (OAuthError, ConfigError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(token)


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address.")
@click.option("--port", default=8000, type=int, help="Bind port.")
def serve(host: str, port: int) -> None:
    """Run the webhook receiver configured from environment variables."""
    import uvicorn

    uvicorn.run(
        "line_gateway.server.app:create_app_from_env", factory=True, host=host, port=port,
    )


@cli.command("verify-audit")
@click.argument("log_path", type=click.Path(exists=True, dir_okay=False))
def verify_audit(log_path: str) -> None:
    """Check the hash chain of an audit log file."""
    result = validate_audit_chain(Path(log_path))
    if not result.valid:
        raise click.ClickException(f"Audit chain broken at line {result.broken_at_line}")
    click.echo("Audit chain intact")
