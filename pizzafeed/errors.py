"""
Exception taxonomy for the import pipeline.

  ConfigError          missing credential / bad option — fatal before any run starts
  FetchError           a source fetch failed — fatal to that run only
  TransientFetchError  timeout or 5xx — retried by the rate limiter
  RateLimitedError     HTTP 429 — retried by the rate limiter with backoff
  StoreError           persistence failure for a single item — counted, run continues

Filter skips and duplicate skips are not exceptions; they are counters on
the run summary.
"""


class PizzaFeedError(Exception):
    """Base class for everything raised by pizzafeed."""


class ConfigError(PizzaFeedError):
    """Missing credential or invalid configuration. Raised before a run log exists."""


class FetchError(PizzaFeedError):
    """A source fetch failed (network error, non-2xx, malformed top-level payload)."""

    def __init__(self, platform: str, message: str, status: int | None = None):
        super().__init__(f"{platform}: {message}")
        self.platform = platform
        self.status   = status


class TransientFetchError(FetchError):
    """Fetch failure worth retrying (timeout, connection reset, 5xx)."""


class RateLimitedError(TransientFetchError):
    """The upstream API answered 429 Too Many Requests."""


class StoreError(PizzaFeedError):
    """The content store rejected a write for a reason other than a unique-key clash."""
