"""AI 出牌策略测试"""
import pytest

from core.cards import Color, str_to_card, str_to_cards
from ai.advisory import Advice
from ai.personality import (
    Personality,
    Difficulty,
    PersonalityTraits,
    PERSONALITY_TRAITS,
    DRAWN_CARD_PLAY_PROBABILITY,
    get_traits,
)
from ai.strategy import StrategySelector, HandState, PRESSURE_VALUES

BALANCED = get_traits(Personality.BALANCED)


def hand_state(hand, opponent=7, win_probability=0.5):
    return HandState(
        hand=tuple(str_to_cards(hand)),
        opponent_hand_size=opponent,
        win_probability=win_probability,
    )


def advice(card=None, color=None, degraded=False, win_probability=0.5):
    return Advice(
        win_probability=win_probability,
        confidence=0.9,
        recommended_card=str_to_card(card) if card else None,
        recommended_color=color,
        degraded=degraded,
    )


class TestPersonality:
    """性格参数测试"""

    def test_traits(self):
        aggressive = PERSONALITY_TRAITS[Personality.AGGRESSIVE]
        assert (aggressive.action_card_preference, aggressive.risk_tolerance, aggressive.wild_card_timing) == (0.8, 0.9, 0.7)
        defensive = PERSONALITY_TRAITS[Personality.DEFENSIVE]
        assert (defensive.action_card_preference, defensive.risk_tolerance, defensive.wild_card_timing) == (0.3, 0.2, 0.9)
        assert (BALANCED.action_card_preference, BALANCED.risk_tolerance, BALANCED.wild_card_timing) == (0.5, 0.5, 0.6)

    def test_get_traits_by_name(self):
        assert get_traits("aggressive") is PERSONALITY_TRAITS[Personality.AGGRESSIVE]

    def test_drawn_card_probabilities(self):
        assert DRAWN_CARD_PLAY_PROBABILITY[Difficulty.EASY] == 0.5
        assert DRAWN_CARD_PLAY_PROBABILITY[Difficulty.MEDIUM] == 0.7
        assert DRAWN_CARD_PLAY_PROBABILITY[Difficulty.HARD] == 0.9


class TestLastCard:
    """最后一张牌测试"""

    @pytest.mark.parametrize("difficulty", list(Difficulty))
    @pytest.mark.parametrize("personality", list(Personality))
    def test_plays_only_card(self, fixed_random, difficulty, personality):
        selector = StrategySelector(fixed_random(0.0))
        card = selector.choose_card(
            [str_to_card("G7")],
            hand_state("G7", opponent=1),
            get_traits(personality),
            difficulty,
            advice("R5"),
        )
        assert card == str_to_card("G7")

    def test_ignores_advice_for_last_card(self, fixed_random):
        selector = StrategySelector(fixed_random(0.5))
        card = selector.choose_card(
            [str_to_card("W")], hand_state("W"), BALANCED, Difficulty.HARD, advice("W+4"),
        )
        assert card == str_to_card("W")


class TestAdvisoryOverride:
    """建议覆盖测试"""

    def test_recommended_card_used(self, fixed_random):
        selector = StrategySelector(fixed_random(0.5))
        playable = str_to_cards("R5 R7 W")
        card = selector.choose_card(
            playable, hand_state("R5 R7 W G1"), BALANCED, Difficulty.HARD, advice("R7"),
        )
        assert card == str_to_card("R7")

    def test_degraded_advice_ignored(self, fixed_random):
        selector = StrategySelector(fixed_random(0.99))
        playable = str_to_cards("R5 G3")
        card = selector.choose_card(
            playable, hand_state("R5 R7 R9 G3"), BALANCED, Difficulty.HARD,
            advice("R5", degraded=True),
        )
        # 颜色权重: 绿色更少
        assert card == str_to_card("G3")

    def test_unplayable_recommendation_ignored(self, fixed_random):
        selector = StrategySelector(fixed_random(0.99))
        card = selector.choose_card(
            str_to_cards("R5 G3"), hand_state("R5 R7 R9 G3 B1"), BALANCED, Difficulty.HARD,
            advice("B1"),
        )
        assert card == str_to_card("G3")

    def test_empty_playable(self):
        with pytest.raises(ValueError):
            StrategySelector().choose_card([], hand_state("R1"), BALANCED, Difficulty.EASY)


class TestEasy:
    """easy 难度测试"""

    def test_bias_to_special(self, fixed_random):
        selector = StrategySelector(fixed_random(0.0))
        card = selector.choose_card(
            str_to_cards("R5 RS R7"), hand_state("R5 RS R7 G1"), BALANCED, Difficulty.EASY,
        )
        assert card == str_to_card("RS")

    def test_returns_playable(self):
        selector = StrategySelector()
        playable = str_to_cards("R5 RS R7 W")
        for _ in range(20):
            card = selector.choose_card(
                playable, hand_state("R5 RS R7 W G1"), BALANCED, Difficulty.EASY,
            )
            assert card in playable


class TestMedium:
    """medium 难度测试"""

    def test_special_when_winning(self, fixed_random):
        selector = StrategySelector(fixed_random(0.0))
        card = selector.choose_card(
            str_to_cards("R5 RS"), hand_state("R5 RS G1 G2", win_probability=0.9),
            BALANCED, Difficulty.MEDIUM,
        )
        assert card == str_to_card("RS")

    def test_rarest_color_first(self, fixed_random):
        selector = StrategySelector(fixed_random(0.99))
        card = selector.choose_card(
            str_to_cards("R5 G3"), hand_state("R5 R7 G3"), BALANCED, Difficulty.MEDIUM,
        )
        assert card == str_to_card("G3")

    def test_wild_first_with_high_timing(self, fixed_random):
        selector = StrategySelector(fixed_random(0.99))
        card = selector.choose_card(
            str_to_cards("R5 G3 W"), hand_state("R5 R7 G3 W"), BALANCED, Difficulty.MEDIUM,
        )
        assert card == str_to_card("W")


class TestHard:
    """hard 难度测试"""

    def test_pressure_low_opponent(self, fixed_random):
        selector = StrategySelector(fixed_random(0.99))
        card = selector.choose_card(
            str_to_cards("R5 RS R+2"), hand_state("R5 RS R+2 G1", opponent=2),
            BALANCED, Difficulty.HARD,
        )
        assert card.value in PRESSURE_VALUES
        assert card == str_to_card("RS")

    def test_wild_when_winning(self, fixed_random):
        selector = StrategySelector(fixed_random(0.99))
        card = selector.choose_card(
            str_to_cards("R5 W"), hand_state("R5 W G1 G2", win_probability=0.9),
            BALANCED, Difficulty.HARD,
        )
        assert card == str_to_card("W")

    def test_wild_with_large_hand_and_early_timing(self, fixed_random):
        early = PersonalityTraits(
            action_card_preference=0.5, risk_tolerance=0.5, wild_card_timing=0.3,
        )
        selector = StrategySelector(fixed_random(0.99))
        card = selector.choose_card(
            str_to_cards("R5 W"), hand_state("R5 W G1 G2 B3 Y4"), early, Difficulty.HARD,
        )
        assert card == str_to_card("W")

    def test_action_when_critical(self, fixed_random):
        selector = StrategySelector(fixed_random(0.99))
        card = selector.choose_card(
            str_to_cards("R5 RR"), hand_state("R5 RR G1 G2", opponent=3),
            BALANCED, Difficulty.HARD,
        )
        assert card == str_to_card("RR")

    def test_action_with_risky_personality(self, fixed_random):
        aggressive = get_traits(Personality.AGGRESSIVE)
        selector = StrategySelector(fixed_random(0.1))
        card = selector.choose_card(
            str_to_cards("R5 RR"), hand_state("R5 RR G1 G2"), aggressive, Difficulty.HARD,
        )
        assert card == str_to_card("RR")

    def test_color_weight(self, fixed_random):
        selector = StrategySelector(fixed_random(0.99))
        card = selector.choose_card(
            str_to_cards("R5 G3 W"), hand_state("R5 R7 R9 G3 W B1"),
            BALANCED, Difficulty.HARD,
        )
        assert card == str_to_card("G3")

    def test_wild_kept_last(self, fixed_random):
        selector = StrategySelector(fixed_random(0.99))
        card = selector.choose_card(
            str_to_cards("W R5"), hand_state("W R5 R7 R9 R1 R2 B1"),
            BALANCED, Difficulty.HARD,
        )
        assert card == str_to_card("R5")


class TestChooseColor:
    """选色测试"""

    def test_most_frequent(self):
        selector = StrategySelector()
        assert selector.choose_color(str_to_cards("R1 G2 G3 B4 W")) == Color.GREEN

    def test_tie_breaks_by_order(self):
        selector = StrategySelector()
        assert selector.choose_color(str_to_cards("B1 Y2")) == Color.YELLOW
        assert selector.choose_color(str_to_cards("B1 R2")) == Color.RED

    def test_empty_hand(self):
        assert StrategySelector().choose_color([]) == Color.RED

    def test_advice_color(self):
        selector = StrategySelector()
        chosen = selector.choose_color(str_to_cards("R1 R2"), advice(color=Color.BLUE))
        assert chosen == Color.BLUE

    def test_degraded_advice_color_ignored(self):
        selector = StrategySelector()
        chosen = selector.choose_color(str_to_cards("R1 R2"), advice(color=Color.BLUE, degraded=True))
        assert chosen == Color.RED


class TestDrawnCard:
    """摸牌后决定测试"""

    def test_thresholds(self, fixed_random):
        selector = StrategySelector(fixed_random(0.6))
        assert not selector.should_play_drawn_card(Difficulty.EASY)
        assert selector.should_play_drawn_card(Difficulty.MEDIUM)
        assert selector.should_play_drawn_card("hard")
