"""Flask app, Cloud Functions entry point and CLI for the Discord/Telegram link bridge."""

import json
import logging
import os
import sys
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

import click
import functions_framework
from flask import Flask, request, jsonify, redirect

from .config_manager import BridgeConfig, ConfigManager
from .discord_client import DiscordOAuthClient
from .link_handler import LinkCallbackHandler, Reconcile
from .sheets_client import SheetsClient
from .table_reconciler import LinkResult, TableReconciler
from .telegram_notifier import TelegramNotifier
from .utils.exceptions import LinkBridgeError, ValidationError
from .utils.validation import validate_login_params

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def setup_logging(config: Optional[BridgeConfig] = None) -> None:
    """Setup logging configuration."""
    log_level = (config.log_level if config else os.getenv("LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level, logging.INFO))

    if not any(getattr(h, "_link_bridge", False) for h in root.handlers):
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler._link_bridge = True
        root.addHandler(console_handler)

    # Request URLs carry the bot token
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)


def build_reconcile(config: BridgeConfig, lock: Optional[threading.Lock] = None) -> Reconcile:
    """Return ``reconcile(external_id, correlation_value)`` bound to ``config``.

    A fresh Sheets client is opened per call; no store state survives between
    invocations.
    """

    def reconcile(external_id: str, correlation_value: str) -> LinkResult:
        store = SheetsClient.from_config(config)
        return TableReconciler(store, config, lock=lock).reconcile(
            external_id, correlation_value
        )

    return reconcile


def build_handler(config: BridgeConfig) -> LinkCallbackHandler:
    """Wire the callback handler from configuration."""
    lock = threading.Lock() if config.reconcile_lock else None
    return LinkCallbackHandler(
        provider=DiscordOAuthClient.from_config(config),
        reconcile=build_reconcile(config, lock),
        notifier=TelegramNotifier.from_config(config),
    )


def health_payload(config: BridgeConfig) -> Dict[str, Any]:
    """Health information; configuration warnings are listed, never fatal."""
    warnings = config.validate()
    return {
        "success": True,
        "status": "healthy",
        "version": VERSION,
        "configured": not warnings,
        "warnings": warnings,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def login_response(handler: LinkCallbackHandler, args: Mapping[str, Any]):
    """Redirect to the Discord consent screen with the Telegram chat id as state."""
    try:
        params = validate_login_params(args)
    except ValidationError as e:
        return e.message, 400, {"Content-Type": "text/plain; charset=utf-8"}

    return redirect(handler.provider.build_authorize_url(params["state"]), code=302)


def callback_response(handler: LinkCallbackHandler, args: Mapping[str, Any]):
    """Run the callback handler and render its outcome."""
    outcome = handler.handle_request(args)
    content_type = (
        "text/html; charset=utf-8"
        if outcome.status_code == 200
        else "text/plain; charset=utf-8"
    )
    return outcome.body, outcome.status_code, {"Content-Type": content_type}


def create_app(
    config: Optional[BridgeConfig] = None,
    handler: Optional[LinkCallbackHandler] = None,
) -> Flask:
    """Create the Flask app serving the OAuth callback."""
    if config is None:
        config = ConfigManager().load_and_validate()
    if handler is None:
        handler = build_handler(config)

    app = Flask(__name__)
    app.config["BRIDGE_CONFIG"] = config
    app.extensions["link_handler"] = handler

    @app.before_request
    def log_request():
        logger.debug(f"REQUEST: {request.method} {request.path}")

    @app.route("/api/v1/health", methods=["GET"])
    def health() -> Tuple[Dict[str, Any], int]:
        """Health check endpoint."""
        return jsonify(health_payload(config)), 200

    @app.route("/auth/discord/login", methods=["GET"])
    def login():
        """Redirect the user to Discord with their Telegram chat id as state."""
        return login_response(handler, request.args)

    def discord_callback():
        """OAuth2 redirect target."""
        return callback_response(handler, request.args)

    app.add_url_rule(
        config.callback_path,
        endpoint="discord_callback",
        view_func=discord_callback,
        methods=["GET"],
    )

    return app


_app: Optional[Flask] = None


def get_app() -> Flask:
    """Process-wide app, built on first use."""
    global _app
    if _app is None:
        config = ConfigManager().load_and_validate()
        setup_logging(config)
        _app = create_app(config)
    return _app


@functions_framework.http
def discord_oauth_callback(request):
    """Google Cloud Function entry point.

    A deployed function has a single URL, so every path other than the
    health and login paths is treated as the OAuth callback.
    """
    app = get_app()
    config = app.config["BRIDGE_CONFIG"]
    handler = app.extensions["link_handler"]

    if request.path in ("/health", "/api/v1/health"):
        return health_payload(config), 200

    if request.path.rstrip("/").endswith("/login"):
        return login_response(handler, request.args)

    return callback_response(handler, request.args)


@click.group()
def cli():
    """Discord/Telegram link bridge."""
    pass


@cli.command()
@click.option("--host", default="0.0.0.0", help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to (default: PORT or 3000)")
@click.option("--debug", is_flag=True, help="Enable debug mode")
def serve(host: str, port: Optional[int], debug: bool) -> None:
    """Start the Flask development server."""
    config = ConfigManager().load_and_validate()
    setup_logging(config)
    app = create_app(config)

    port = port or config.port
    logger.info(f"OAuth server running on port {port}")
    app.run(host=host, port=port, debug=debug)


@cli.command("check-config")
def check_config() -> None:
    """Print the effective configuration and any warnings."""
    config = ConfigManager().build_config()
    click.echo(json.dumps(config.get_summary(), indent=2, ensure_ascii=False))

    warnings = config.validate()
    for warning in warnings:
        click.echo(f"Warning: {warning}", err=True)
    sys.exit(1 if warnings else 0)


@cli.command("authorize-url")
@click.argument("state")
def authorize_url(state: str) -> None:
    """Print the Discord authorization URL for a Telegram chat id."""
    config = ConfigManager().build_config()
    click.echo(DiscordOAuthClient.from_config(config).build_authorize_url(state))


@cli.command()
@click.argument("discord_id")
@click.argument("telegram_id")
def link(discord_id: str, telegram_id: str) -> None:
    """Write TELEGRAM_ID into the sheet row of DISCORD_ID without OAuth."""
    config = ConfigManager().load_and_validate()
    setup_logging(config)

    try:
        result = build_reconcile(config)(discord_id, telegram_id)
    except LinkBridgeError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    click.echo(f"Linked {discord_id} -> {telegram_id} at {result.range}")


if __name__ == "__main__":
    cli()
