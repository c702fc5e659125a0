from __future__ import annotations

from abc import ABC, abstractmethod


class BotVerifierPort(ABC):
    @abstractmethod
    def verify(self, token: str) -> bool:
        """True if the token belongs to a human visitor."""
        raise NotImplementedError
