"""
Study session over one deck: flip, navigate, shuffle and mark cards.

The session works on its own copy of the deck's cards so shuffling never
reorders the stored deck. Marking a card writes the status through the store.
"""

import random
from typing import Any

from utils.constants import CardStatus


class StudySession:
    def __init__(self, store, deck_id: str, rng: random.Random | None = None) -> None:
        deck = store.get_deck(deck_id)
        if deck is None:
            raise LookupError(f"Deck not found: {deck_id}")
        self.store = store
        self.deck_id = deck_id
        self.deck_name = deck['name']
        self.cards: list[dict[str, Any]] = [dict(c) for c in deck['cards']]
        self.index = 0
        self.flipped = False
        self._rng = rng or random.Random()

    @property
    def current(self) -> dict[str, Any] | None:
        if not self.cards:
            return None
        return self.cards[self.index]

    def flip(self) -> bool:
        self.flipped = not self.flipped
        return self.flipped

    def next(self) -> bool:
        """Move forward. False when already on the last card."""
        if self.index < len(self.cards) - 1:
            self.index += 1
            self.flipped = False
            return True
        return False

    def previous(self) -> bool:
        if self.index > 0:
            self.index -= 1
            self.flipped = False
            return True
        return False

    def mark(self, status) -> dict[str, Any] | None:
        """Persist ``status`` for the current card, then advance unless on the last card."""
        card = self.current
        if card is None:
            return None
        self.store.update_card_status(self.deck_id, card['id'], status)
        card['status'] = getattr(status, 'value', status)
        self.next()
        return card

    def shuffle(self) -> None:
        self._rng.shuffle(self.cards)
        self.index = 0
        self.flipped = False

    def stats(self) -> dict[str, int]:
        return {s.value: sum(1 for c in self.cards if c['status'] == s.value) for s in CardStatus}

    def progress(self) -> float:
        if not self.cards:
            return 0.0
        return (self.index + 1) / len(self.cards)

    def counter(self) -> str:
        if not self.cards:
            return "No cards in this deck"
        return f"Card {self.index + 1} of {len(self.cards)}"
