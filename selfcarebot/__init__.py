"""Self-care course bot: 7-day program delivered over Telegram."""

__version__ = "1.0.0"
