"""
Tests for card image path resolution and configuration parsing.

Run with: pytest test_card_images.py -v
"""

import pytest

from card_images import CardStyle, get_card_path, get_card_url
from config import BotConfig, token_from_argv
from game import Card, Suit


class TestKenneyPaths:

    @pytest.mark.parametrize("rank,name", [(1, "A"), (2, "02"), (10, "10"), (11, "J"), (12, "Q"), (13, "K")])
    def test_rank_names(self, rank, name):
        path = get_card_path(Card(rank, Suit.HEARTS), CardStyle.KENNEY)
        assert path == f"card_images/kenney_cards_large/card_hearts_{name}.png"

    def test_jokers(self):
        assert get_card_path(Card.joker(Suit.RED_JOKER)).endswith("card_joker_red.png")
        assert get_card_path(Card.joker(Suit.BLACK_JOKER)).endswith("card_joker_black.png")


class TestClassicPaths:

    def test_number_card(self):
        assert get_card_path(Card(7, Suit.CLUBS), CardStyle.CLASSIC) == "card_images/classic/7_of_clubs.png"

    def test_face_card(self):
        assert get_card_path(Card(1, Suit.DIAMONDS), CardStyle.CLASSIC) == "card_images/classic/ace_of_diamonds.png"

    def test_joker(self):
        assert get_card_path(Card.joker(Suit.BLACK_JOKER), CardStyle.CLASSIC) == "card_images/classic/black_joker.png"


class TestUrls:

    def test_url_joins_host(self):
        url = get_card_url(Card(13, Suit.SPADES), CardStyle.KENNEY, "http://localhost:8080/")
        assert url == "http://localhost:8080/card_images/kenney_cards_large/card_spades_K.png"

    def test_style_parsing(self):
        assert CardStyle.from_name(" KENNEY ") == CardStyle.KENNEY
        assert CardStyle.from_name("nope") is None


class TestConfig:

    def test_token_flag(self):
        assert token_from_argv(["-t", "abc"]) == "abc"
        assert token_from_argv(["--other"]) == ""

    def test_flag_wins_over_env(self, monkeypatch):
        monkeypatch.setenv("BOT_TOKEN", "from-env")
        assert BotConfig.from_env(["-t", "from-flag"]).BOT_TOKEN == "from-flag"
        assert BotConfig.from_env([]).BOT_TOKEN == "from-env"

    def test_timing_from_env(self, monkeypatch):
        monkeypatch.setenv("JOIN_WINDOW_SECONDS", "3.5")
        monkeypatch.setenv("GUESS_WINDOW_SECONDS", "oops")
        cfg = BotConfig.from_env([])
        assert cfg.JOIN_WINDOW_SECONDS == 3.5
        assert cfg.GUESS_WINDOW_SECONDS == 5.0
