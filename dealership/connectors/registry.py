# dealership/connectors/registry.py
"""The fixed set of inventory connectors available to the import pipeline."""
from typing import Iterable, List, Optional

from .base import Connector
from .dealer_page import DealerPageConnector
from .sample import SampleExternalAPIConnector


class ConnectorRegistry:
    def __init__(self, connectors: Iterable[Connector]):
        self._connectors: List[Connector] = []
        for connector in connectors:
            if self.find(connector.name) is not None:
                raise ValueError(f"duplicate connector name: {connector.name}")
            self._connectors.append(connector)

    def list(self) -> List[Connector]:
        return self._connectors[:]

    def find(self, name: str) -> Optional[Connector]:
        for connector in self._connectors:
            if connector.name == name:
                return connector
        return None

    def select(self, name: Optional[str] = None) -> List[Connector]:
        """All connectors when `name` is None, otherwise zero or one."""
        if name is None:
            return self.list()
        connector = self.find(name)
        return [connector] if connector else []


# register connectors here
registry = ConnectorRegistry([
    SampleExternalAPIConnector(),
    DealerPageConnector(),
])


def get_registry() -> ConnectorRegistry:
    return registry
