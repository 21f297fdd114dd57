"""牌堆管理测试"""
import random
import pytest
from collections import Counter

from core.cards import FULL_DECK, str_to_card, str_to_cards
from core.deck import DeckManager
from core.errors import InsufficientDeck, NoCardsAvailable, DeckError


class TestShuffle:
    """洗牌测试"""

    def test_is_permutation(self):
        manager = DeckManager(random.Random(1))
        shuffled = manager.shuffle(FULL_DECK)
        assert Counter(shuffled) == Counter(FULL_DECK)

    def test_reproducible(self):
        a = DeckManager(random.Random(7)).shuffle(FULL_DECK)
        b = DeckManager(random.Random(7)).shuffle(FULL_DECK)
        assert a == b

    def test_does_not_mutate_input(self):
        cards = list(FULL_DECK)
        DeckManager(random.Random(1)).shuffle(cards)
        assert cards == list(FULL_DECK)


class TestDeal:
    """发牌测试"""

    def test_deal_alternates_from_top(self):
        deck = str_to_cards("R1 R2 R3 R4 R5 R6")
        (first, second), remaining = DeckManager().deal(deck, 2)
        # 牌堆顶在末尾
        assert first == tuple(str_to_cards("R6 R4"))
        assert second == tuple(str_to_cards("R5 R3"))
        assert remaining == tuple(str_to_cards("R1 R2"))

    def test_insufficient(self):
        with pytest.raises(InsufficientDeck):
            DeckManager().deal(str_to_cards("R1 R2 R3"), 2)

    def test_insufficient_is_deck_error(self):
        assert issubclass(InsufficientDeck, DeckError)


class TestRecycle:
    """弃牌堆回收测试"""

    def test_noop_when_deck_not_empty(self):
        deck = tuple(str_to_cards("R1"))
        discard = tuple(str_to_cards("G1 G2"))
        assert DeckManager().recycle(deck, discard) == (deck, discard)

    def test_keeps_top_and_preserves_total(self):
        discard = tuple(str_to_cards("G1 G2 B3 Y4 R5"))
        deck, new_discard = DeckManager(random.Random(3)).recycle((), discard)

        assert new_discard == (str_to_card("R5"),)
        assert Counter(deck) == Counter(discard[:-1])
        assert len(deck) + len(new_discard) == len(discard)

    def test_exhausted(self):
        with pytest.raises(NoCardsAvailable):
            DeckManager().recycle((), (str_to_card("R5"),))


class TestDraw:
    """摸牌测试"""

    def test_draw_from_top(self):
        deck = str_to_cards("R1 R2 R3")
        drawn, deck, discard = DeckManager().draw(deck, (str_to_card("G5"),), 2)
        assert drawn == tuple(str_to_cards("R3 R2"))
        assert deck == (str_to_card("R1"),)
        assert discard == (str_to_card("G5"),)

    def test_draw_recycles(self):
        deck = str_to_cards("R1")
        discard = tuple(str_to_cards("B1 B2 B3 G5"))
        drawn, new_deck, new_discard = DeckManager(random.Random(0)).draw(deck, discard, 3)

        assert len(drawn) == 3
        assert drawn[0] == str_to_card("R1")
        assert new_discard == (str_to_card("G5"),)
        assert len(drawn) + len(new_deck) + len(new_discard) == 1 + len(discard)

    def test_draw_exhausted(self):
        with pytest.raises(NoCardsAvailable):
            DeckManager().draw((), (str_to_card("G5"),), 1)


class TestStartCard:
    """起始牌测试"""

    def test_skips_wild_to_bottom(self):
        deck = str_to_cards("R1 R2 W W+4")
        card, remaining = DeckManager().pick_start_card(deck)
        assert card == str_to_card("R2")
        # 翻过的万能牌放到牌堆底
        assert remaining == tuple(str_to_cards("W+4 W R1"))

    def test_first_card_is_not_wild(self):
        card, remaining = DeckManager().pick_start_card(str_to_cards("W R1 G7"))
        assert card == str_to_card("G7")
        assert remaining == tuple(str_to_cards("W R1"))

    def test_only_wilds(self):
        with pytest.raises(NoCardsAvailable):
            DeckManager().pick_start_card(str_to_cards("W W+4"))


class TestNewRound:
    """开局测试"""

    def test_sizes(self):
        player, ai, deck, start = DeckManager(random.Random(42)).new_round()
        assert len(player) == 7
        assert len(ai) == 7
        assert len(deck) == 108 - 14 - 1
        assert not start.is_wild

    def test_conservation(self):
        player, ai, deck, start = DeckManager(random.Random(5)).new_round(hand_size=5)
        assert Counter(player + ai + deck + (start,)) == Counter(FULL_DECK)

    def test_reproducible(self):
        a = DeckManager(random.Random(9)).new_round()
        b = DeckManager(random.Random(9)).new_round()
        assert a == b
