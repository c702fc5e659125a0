from __future__ import annotations

from app.application.ports.bot_verifier import BotVerifierPort


class MockBotVerifier(BotVerifierPort):
    def __init__(self, accept: bool = True) -> None:
        self.accept = accept

    def verify(self, token: str) -> bool:
        return self.accept and bool(token)
