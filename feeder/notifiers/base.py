"""Base notifier interface."""

from abc import ABC, abstractmethod

from feeder.schemas import AlertPayload, AlertSeverity


class BaseNotifier(ABC):
    """Interface for sending alerts to a monitoring system."""

    @abstractmethod
    async def send(self, payload: AlertPayload) -> bool:
        """Send an alert. Return True if it was accepted."""
        pass

    async def close(self) -> None:
        """Release any held connections."""
        pass

    def create_payload(
        self,
        alert_id: str,
        title: str,
        message: str,
        severity: AlertSeverity = AlertSeverity.WARNING,
    ) -> AlertPayload:
        return AlertPayload(alert_id=alert_id, title=title, message=message, severity=severity)
