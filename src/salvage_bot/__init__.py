"""Salvage Union Discord bot: links Discord users to their salvageunion.io account."""

__version__ = "0.1.0"
