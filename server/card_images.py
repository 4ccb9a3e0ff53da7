"""
Card image path resolution.

Each art style is a directory under card_images/ with its own file naming
convention. Paths are relative to the HTTP server root so they can be
joined with HOST_URL to build an embed image URL.
"""

from enum import Enum
from typing import Optional

from game import ACE, JACK, KING, QUEEN, Card, Suit


class CardStyle(str, Enum):
    """
    Available card art styles.

    KENNEY: Kenney's playing card pack ("card_<suit>_<A|02..10|J|Q|K>.png")
    CLASSIC: Classic faces ("<rank>_of_<suit>.png", e.g. "queen_of_hearts.png")
    """

    KENNEY = "kenney"
    CLASSIC = "classic"

    @classmethod
    def from_name(cls, name: str) -> Optional["CardStyle"]:
        """Parse a style name, returning None for unknown styles."""
        key = name.strip().lower()
        for style in cls:
            if style.value == key:
                return style
        return None


STYLE_DIRECTORIES = {
    CardStyle.KENNEY: "card_images/kenney_cards_large",
    CardStyle.CLASSIC: "card_images/classic",
}

KENNEY_FACES = {ACE: "A", JACK: "J", QUEEN: "Q", KING: "K"}


def _kenney_name(card: Card) -> str:
    if card.is_joker:
        color = "red" if card.suit == Suit.RED_JOKER else "black"
        return f"card_joker_{color}.png"
    value = KENNEY_FACES.get(card.rank, f"{card.rank:02d}")
    return f"card_{card.suit.value}_{value}.png"


def _classic_name(card: Card) -> str:
    if card.is_joker:
        return f"{card.suit.value}.png"
    return f"{card.rank_name.lower()}_of_{card.suit.value}.png"


def get_card_path(card: Card, style: CardStyle = CardStyle.KENNEY) -> str:
    """
    Get the image path for a card in the given style.

    Args:
        card: Card to look up.
        style: Art style.

    Returns:
        Path relative to the server root, e.g. "card_images/kenney_cards_large/card_hearts_Q.png".
    """
    if style == CardStyle.CLASSIC:
        name = _classic_name(card)
    else:
        name = _kenney_name(card)
    return f"{STYLE_DIRECTORIES[style]}/{name}"


def get_card_url(card: Card, style: CardStyle, host_url: str) -> str:
    """Full URL to a card image on the server hosting card_images/."""
    return f"{host_url.rstrip('/')}/{get_card_path(card, style)}"
