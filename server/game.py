"""
Game logic for the Playing Cards bot.

This module implements the card and deck model and the per-guild
High or Low session state. It has no knowledge of Discord or of timing;
the timed loop lives in high_or_low.py and drives a GameSession through
the phases defined here.

High or Low Rules Summary:
    - Players join by reacting during a short pre-start window
    - Each round shows a card; players guess whether the next is higher or lower
    - Equal ranks are a tie: nobody is eliminated
    - Otherwise every active player with the wrong guess (or no guess) is out
    - If a round would eliminate everyone still in, it eliminates nobody
    - The game ends when nobody is left or the deck runs out
"""

import asyncio
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Suit(Enum):
    """Card suits, including the two joker variants."""

    CLUBS = "clubs"
    DIAMONDS = "diamonds"
    HEARTS = "hearts"
    SPADES = "spades"
    RED_JOKER = "red_joker"
    BLACK_JOKER = "black_joker"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @property
    def is_joker(self) -> bool:
        return self in (Suit.RED_JOKER, Suit.BLACK_JOKER)


STANDARD_SUITS = (Suit.CLUBS, Suit.DIAMONDS, Suit.HEARTS, Suit.SPADES)

# Rank shared by both jokers
JOKER_RANK = -1

ACE, JACK, QUEEN, KING = 1, 11, 12, 13

RANK_NAMES: dict[int, str] = {
    ACE: "Ace",
    JACK: "Jack",
    QUEEN: "Queen",
    KING: "King",
    JOKER_RANK: "Joker",
}


@dataclass(frozen=True)
class Card:
    """
    An immutable playing card.

    Attributes:
        rank: 1 (Ace) through 13 (King), or JOKER_RANK for jokers.
        suit: One of the four standard suits, or a joker suit.
    """

    rank: int
    suit: Suit

    def __post_init__(self) -> None:
        if self.suit.is_joker:
            if self.rank != JOKER_RANK:
                raise ValueError(f"{self.suit.display_name} must have the joker rank, got {self.rank}")
        elif not ACE <= self.rank <= KING:
            raise ValueError(f"Rank must be between {ACE} and {KING}, got {self.rank}")

    @classmethod
    def joker(cls, suit: Suit = Suit.RED_JOKER) -> "Card":
        return cls(JOKER_RANK, suit)

    @property
    def is_joker(self) -> bool:
        return self.suit.is_joker

    @property
    def rank_name(self) -> str:
        """Ace/Jack/Queen/King/Joker, or the number for pip cards."""
        if self.rank in RANK_NAMES:
            return RANK_NAMES[self.rank]
        if ACE < self.rank < JACK:
            return str(self.rank)
        return "Invalid"

    @property
    def color(self) -> str:
        if self.suit in (Suit.CLUBS, Suit.SPADES, Suit.BLACK_JOKER):
            return "Black"
        return "Red"

    def __str__(self) -> str:
        if self.is_joker:
            return self.suit.display_name
        return f"{self.rank_name} of {self.suit.display_name}"


class Deck:
    """
    A stack of playing cards. The top of the deck is the end of the list.

    Drawing from an empty deck returns None instead of raising, so callers
    must check the result before using it as a card.
    """

    def __init__(self, cards: Optional[list[Card]] = None, rng: Optional[random.Random] = None) -> None:
        """
        Initialize a deck.

        Args:
            cards: Cards in bottom-to-top order. Defaults to an empty deck.
            rng: Random source for shuffling. Defaults to a fresh Random().
        """
        self.cards: list[Card] = list(cards) if cards else []
        self._rng = rng or random.Random()

    def shuffle(self) -> None:
        """Randomize the order of the remaining cards in place."""
        if len(self.cards) > 1:
            self._rng.shuffle(self.cards)

    def draw(self) -> Optional[Card]:
        """
        Remove and return the top card.

        Returns:
            The drawn Card, or None if the deck is empty.
        """
        if self.cards:
            return self.cards.pop()
        return None

    def size(self) -> int:
        """Return the number of cards left in the deck."""
        return len(self.cards)

    def __len__(self) -> int:
        return len(self.cards)


def new_deck(include_jokers: bool = False, rng: Optional[random.Random] = None) -> Deck:
    """
    Build a full, unshuffled deck.

    Cards are ordered clubs, diamonds, hearts, spades, each Ace to King,
    followed by the red and black jokers when enabled.

    Args:
        include_jokers: Add the two jokers (54 cards instead of 52).
        rng: Random source used by later shuffles.
    """
    cards = [Card(rank, suit) for suit in STANDARD_SUITS for rank in range(ACE, KING + 1)]
    if include_jokers:
        cards.append(Card.joker(Suit.RED_JOKER))
        cards.append(Card.joker(Suit.BLACK_JOKER))
    return Deck(cards, rng=rng)


def shuffled_deck(include_jokers: bool = False) -> Deck:
    """Build a full deck and shuffle it."""
    deck = new_deck(include_jokers)
    deck.shuffle()
    return deck


# =============================================================================
# High or Low session state
# =============================================================================

class GameKind(Enum):
    NONE = "none"
    HIGH_OR_LOW = "high_or_low"


class GamePhase(Enum):
    """
    Phases of a High or Low session.

    IDLE -> PRE_START -> ROUND_ACTIVE -> RESOLVING -> (ROUND_ACTIVE | ENDED)
    """

    IDLE = "idle"
    PRE_START = "pre_start"
    ROUND_ACTIVE = "round_active"
    RESOLVING = "resolving"
    ENDED = "ended"


class Guess(Enum):
    NONE = "none"
    HIGH = "high"
    LOW = "low"


@dataclass
class PlayerState:
    """
    A participant's state within one session.

    Attributes:
        choice: Guess recorded this round (NONE until the first reaction).
        active: False once eliminated.
    """

    choice: Guess = Guess.NONE
    active: bool = True


@dataclass
class RoundResult:
    """
    Outcome of comparing the next card with the previous one.

    Attributes:
        previous: The card players were guessing against.
        card: The newly drawn card.
        correct: HIGH or LOW, or NONE for a tie.
        eliminated: Players eliminated this round (in join order).
        reverted: True when the last-survivors rule restored the eliminated players.
    """

    previous: Card
    card: Card
    correct: Guess
    eliminated: list[int] = field(default_factory=list)
    reverted: bool = False

    @property
    def is_tie(self) -> bool:
        return self.correct == Guess.NONE


@dataclass
class GameSession:
    """
    The High or Low session for one guild.

    A fresh GameSession (kind NONE) is installed whenever a game ends or is
    stopped; the game loop keeps a reference to its own session so it can
    tell when it has been replaced.

    Attributes:
        kind: Which game is running (NONE when idle).
        channel_id: Channel the game is bound to.
        last_message_id: Message whose reactions currently count.
        pre_phase: True during the join window.
        players: Participant id -> PlayerState.
        rounds_completed: Non-tie rounds resolved so far.
        phase: Current state machine phase.
        cancelled: Set by the quit command; checked by the loop at checkpoints.
    """

    kind: GameKind = GameKind.NONE
    channel_id: Optional[int] = None
    last_message_id: Optional[int] = None
    pre_phase: bool = False
    players: dict[int, PlayerState] = field(default_factory=dict)
    rounds_completed: int = 0
    phase: GamePhase = GamePhase.IDLE
    cancelled: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def is_active(self) -> bool:
        return self.kind != GameKind.NONE

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled.is_set()

    def begin(self, channel_id: int) -> None:
        """Enter the pre-start (join) phase for a new High or Low game."""
        self.kind = GameKind.HIGH_OR_LOW
        self.channel_id = channel_id
        self.pre_phase = True
        self.phase = GamePhase.PRE_START

    def cancel(self) -> None:
        """Request the loop to stop at its next checkpoint."""
        self.kind = GameKind.NONE
        self.pre_phase = False
        self.phase = GamePhase.IDLE
        self.cancelled.set()

    def add_player(self, user_id: int) -> bool:
        """
        Add a participant during the join window.

        Returns:
            True if the player was added, False if already joined or not joining.
        """
        if not self.pre_phase or user_id in self.players:
            return False
        self.players[user_id] = PlayerState()
        return True

    def open_round(self, message_id: int) -> None:
        """Start accepting guesses on the round prompt ``message_id``."""
        self.pre_phase = False
        self.last_message_id = message_id
        self.phase = GamePhase.ROUND_ACTIVE

    def close_round(self) -> None:
        """Stop accepting guesses; reactions on the old prompt no longer count."""
        self.last_message_id = None
        self.phase = GamePhase.RESOLVING

    def record_guess(self, user_id: int, guess: Guess) -> bool:
        """
        Record a guess for the current round. Only the first guess counts.

        Guesses are only accepted between open_round() and close_round().

        Returns:
            True if the guess was recorded.
        """
        if self.phase != GamePhase.ROUND_ACTIVE or guess == Guess.NONE:
            return False
        player = self.players.get(user_id)
        if player is None or not player.active or player.choice != Guess.NONE:
            return False
        player.choice = guess
        return True

    def active_players(self) -> list[int]:
        return [pid for pid, p in self.players.items() if p.active]

    def active_count(self) -> int:
        return sum(1 for p in self.players.values() if p.active)

    def resolve_round(self, previous: Card, card: Card) -> RoundResult:
        """
        Apply the outcome of drawing ``card`` after ``previous``.

        Eliminates active players whose guess differs from the correct one
        (a missing guess counts as wrong), reverts the eliminations if they
        would leave nobody, and resets every choice for the next round.

        Args:
            previous: Card shown during the guess window.
            card: The card drawn after the window closed.

        Returns:
            RoundResult describing the round.
        """
        if card.rank < previous.rank:
            correct = Guess.LOW
        elif card.rank > previous.rank:
            correct = Guess.HIGH
        else:
            correct = Guess.NONE

        if correct == Guess.NONE:
            for player in self.players.values():
                if player.active:
                    player.choice = Guess.NONE
            return RoundResult(previous=previous, card=card, correct=correct)

        active_at_start = self.active_count()
        eliminated = []
        for pid, player in self.players.items():
            if player.active and player.choice != correct:
                player.active = False
                eliminated.append(pid)
            player.choice = Guess.NONE

        # Last survivors: a round may not eliminate everyone still in
        reverted = bool(eliminated) and len(eliminated) >= active_at_start
        if reverted:
            for pid in eliminated:
                self.players[pid].active = True

        self.rounds_completed += 1
        return RoundResult(
            previous=previous,
            card=card,
            correct=correct,
            eliminated=eliminated,
            reverted=reverted,
        )
