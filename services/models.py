"""
Order model shared by the guest client and the relay.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from core.logging import utc_timestamp


GUEST_MAX_LENGTH = 40
DRINK_MAX_LENGTH = 80


@dataclass
class Order:
    """
    A single drink order. Created on submission, consumed once, never stored.

    Attributes:
        guest (str): Guest name
        drink (str): Drink choice
        source_url (str): Page the order was placed from
        timestamp (str): ISO-8601 creation time
    """
    guest: str
    drink: str
    source_url: str = ""
    timestamp: str = field(default_factory=utc_timestamp)

    def __str__(self) -> str:
        return f"{self.guest}: {self.drink}"

    def to_dict(self) -> Dict[str, Any]:
        """Wire form, as posted by the client."""
        return {
            "guest": self.guest,
            "drink": self.drink,
            "sourceUrl": self.source_url,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        """Create from the wire form. Missing optional fields get defaults."""
        return cls(
            guest=data.get("guest", ""),
            drink=data.get("drink", ""),
            source_url=data.get("sourceUrl", ""),
            timestamp=data.get("timestamp") or utc_timestamp(),
        )
