from abc import ABC, abstractmethod


class IPartyDirectory(ABC):
    """Read-only existence checks against shops and customers managed elsewhere."""

    @abstractmethod
    def shop_exists(self, shop_id: str) -> bool:
        pass

    @abstractmethod
    def customer_exists(self, customer_id: str) -> bool:
        pass
