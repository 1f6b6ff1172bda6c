"""Alert forwarding."""

from .forwarder import AlertForwarder, format_token_message

__all__ = ["AlertForwarder", "format_token_message"]
