"""
Errors raised while talking to Moonraker.

Every fetcher raises a FetchError subclass instead of letting httpx or json
exceptions escape. The snapshot collector catches them per module, so one
broken endpoint never takes down a whole scrape.
"""

from __future__ import annotations


class FetchError(Exception):
    """A request to the upstream did not produce usable data."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url = url


class TransportError(FetchError):
    """The request could not be built, sent, or answered with a 2xx status."""


class DecodeError(FetchError):
    """The response body was not the JSON document we expected."""


class CollectionCancelled(Exception):
    """The caller gave up on the scrape before it finished."""
