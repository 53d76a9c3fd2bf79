"""Connector registry — register and look up connectors by name."""

from connectors.base import BaseConnector


class ConnectorRegistry:
    def __init__(self):
        self._connectors: dict[str, BaseConnector] = {}

    def register(self, connector: BaseConnector) -> None:
        if connector.name in self._connectors:
            raise ValueError(f"Connector '{connector.name}' already registered")
        self._connectors[connector.name] = connector

    def get(self, name: str) -> BaseConnector:
        if name not in self._connectors:
            raise KeyError(f"Connector '{name}' not found. Registered: {list(self._connectors)}")
        return self._connectors[name]

    def remove(self, name: str) -> BaseConnector:
        connector = self.get(name)
        del self._connectors[name]
        return connector

    def all(self) -> list[BaseConnector]:
        return list(self._connectors.values())

    def __contains__(self, name: object) -> bool:
        return name in self._connectors

    async def disconnect_all(self) -> None:
        """Disconnect every registered connector (they stay registered)."""
        for connector in self._connectors.values():
            await connector.disconnect()
