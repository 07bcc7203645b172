"""Alert notifiers."""

from .base import BaseNotifier
from .webhook import WebhookNotifier

__all__ = ["BaseNotifier", "WebhookNotifier"]
