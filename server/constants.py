"""
Constants shared by the game loop, handlers and the Discord adapter.

Emoji are stored as the exact unicode sequences Discord reports for a
reaction, so incoming reaction names can be compared with ``==``.
"""

# =============================================================================
# Reaction emoji
# =============================================================================

JOIN_EMOJI = "\U0001f3b2"         # 🎲
HIGH_EMOJI = "\u2b06\ufe0f"        # ⬆️
LOW_EMOJI = "\u2b07\ufe0f"         # ⬇️


# =============================================================================
# Embed colors
# =============================================================================

GAME_COLOR = 0x3DBB6B
DRAW_COLOR = 0x7FB2F0


# =============================================================================
# User-facing text
# =============================================================================

INFO_TEXT = "This bot allows users to play with a standard 52-card deck of playing cards."

HIGH_OR_LOW_TITLE = "High or Low"
HIGH_OR_LOW_DESCRIPTION = (
    "Guess whether the next card will be higher or lower.\n"
    f"React with {JOIN_EMOJI} to join.\n"
    "Only your first reaction in each round will be counted, so choose carefully!"
)

NO_CARDS_LEFT = "No more cards left!"
NOBODY_JOINED = "Nobody joined!"
TIE_ROUND = "Draw! Nobody was eliminated."
NO_PLAYERS_ELIMINATED = "No players eliminated."
PLAYERS_RESTORED = "Nobody can be the last one out, so they all stay in."
START_FAILED = "Error when trying to start the game."
LOOP_FAILED = "Error found while running the game. Exiting..."
NO_GAME_RUNNING = "There is no game in progress."
GAME_STOPPED = "Stopped the game."
CARDS_SHUFFLED = "Cards shuffled!"
CARDS_RESET = "Cards have been reset."
NO_CHANGE = "No change made."


def game_in_progress_warning(prefix: str) -> str:
    """Warning shown when a deck command is issued during a game."""
    return f"A game is currently in progress! Enter `{prefix}quitgame` to stop the game."
