"""gatesend - fee-metered token transfers through a gateway contract."""

__version__ = "0.1.0"
