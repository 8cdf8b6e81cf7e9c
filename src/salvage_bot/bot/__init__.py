"""Discord surface for account linking."""

from .client import SalvageUnionBot

__all__ = ["SalvageUnionBot"]
