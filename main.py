"""Cloud Functions entry point for the Discord/Telegram link bridge."""

import functions_framework


@functions_framework.http
def discord_oauth_callback(request):
    """Cloud Function entry point - delegate to the package handler."""
    from link_bridge.main import discord_oauth_callback as bridge_handler
    return bridge_handler(request)
