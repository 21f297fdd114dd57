"""对局引擎测试"""
import pytest

from core.cards import Color, str_to_card, str_to_cards
from core.errors import InvalidMove
from core.state import Player, Phase
from ai.advisory import Advisor, Advice
from engine.config import MatchConfig, EASY, HARD, INSTANT
from engine.match import Match


class StubAdvisor(Advisor):
    """总是推荐同一张牌的建议服务"""

    def __init__(self, card=None, color=None):
        super().__init__("stub")
        self.card = card
        self.color = color
        self.requests = []

    def advise(self, request):
        self.requests.append(request)
        return Advice(
            win_probability=0.5,
            confidence=0.9,
            recommended_card=str_to_card(self.card) if self.card else None,
            recommended_color=self.color,
        )


@pytest.fixture
def new_match(make_state):
    """开好一局、注入指定局面的 Match 工厂"""
    created = []

    def factory(config=None, advisor=None, rng=None, **state_kwargs):
        match = Match(config or MatchConfig(seed=0), advisor=advisor, rng=rng)
        match.start_round()
        if state_kwargs:
            match.state = make_state(**state_kwargs)
        created.append(match)
        return match

    yield factory

    for match in created:
        match.close()


class TestMatchConfig:
    """配置测试"""

    def test_defaults(self):
        config = MatchConfig()
        assert config.hand_size == 7
        assert config.ai_turn_delay == 1.5
        assert config.uno_grace_period == 3.0
        assert config.uno_penalty_cards == 2

    def test_from_dict_ignores_unknown(self):
        config = MatchConfig.from_dict({"difficulty": "hard", "unknown": 1, "seed": 3})
        assert config.difficulty == "hard"
        assert config.seed == 3

    def test_to_dict(self):
        data = HARD.to_dict()
        assert data["difficulty"] == "hard"
        assert MatchConfig.from_dict(data) == HARD

    def test_presets(self):
        assert EASY.difficulty == "easy"
        assert INSTANT.ai_turn_delay == 0.0
        assert INSTANT.color_reveal_delay == 0.0


class TestRoundLifecycle:
    """开局与快照测试"""

    def test_start_round(self):
        match = Match(MatchConfig(seed=1))
        snapshot = match.start_round()

        assert len(snapshot.player_hand) == 7
        assert snapshot.ai_hand_size == 7
        assert snapshot.current_player is Player.HUMAN
        assert snapshot.phase == Phase.AWAITING_PLAY
        assert snapshot.current_color != Color.WILD
        assert match.state.total_cards == 108
        assert match.round_number == 1
        assert len(match.scheduler) == 0

    def test_ai_first(self):
        match = Match(MatchConfig(seed=1, first_player="ai"))
        match.start_round()
        assert [t.name for t in match.scheduler.pending()] == ["ai_turn"]

        snapshot = match.run_until_human_turn()
        assert snapshot.current_player is Player.HUMAN or snapshot.phase == Phase.ROUND_OVER

    def test_same_seed_same_deal(self):
        a = Match(MatchConfig(seed=5)).start_round()
        b = Match(MatchConfig(seed=5)).start_round()
        assert a.player_hand == b.player_hand
        assert a.discard_top == b.discard_top

    def test_requires_round(self):
        match = Match()
        with pytest.raises(InvalidMove):
            match.play_card("R1")
        with pytest.raises(InvalidMove):
            match.snapshot()


class TestHumanIntents:
    """玩家意图测试"""

    def test_play_card(self, new_match):
        match = new_match(player="R1 R2 R3", ai="G2 B3 Y4", top="R5")
        snapshot = match.play_card("R1")

        assert snapshot.player_hand == tuple(str_to_cards("R2 R3"))
        assert snapshot.discard_top == str_to_card("R1")
        assert snapshot.current_player is Player.AI

    def test_not_your_turn(self, new_match):
        match = new_match(player="R1 R2 R3", ai="G2 B3 Y4", top="R5")
        match.play_card("R1")
        with pytest.raises(InvalidMove):
            match.play_card("R2")
        with pytest.raises(InvalidMove):
            match.draw_card()

    def test_card_not_in_hand(self, new_match):
        match = new_match(player="R1 R2", ai="G2 B3", top="R5")
        with pytest.raises(InvalidMove):
            match.play_card("R9")
        with pytest.raises(InvalidMove):
            match.play_card("nonsense")

    def test_unplayable_card(self, new_match):
        match = new_match(player="G1 R2", ai="G2 B3", top="R5")
        with pytest.raises(InvalidMove):
            match.play_card("G1")
        assert match.state.current_player is Player.HUMAN

    def test_wild_color_choice(self, new_match):
        match = new_match(player="W R2 R3", ai="G2 B3", top="R5")
        snapshot = match.play_card("W")
        assert snapshot.phase == Phase.AWAITING_COLOR_CHOICE
        assert snapshot.current_player is Player.HUMAN

        with pytest.raises(InvalidMove):
            match.choose_color("purple")

        snapshot = match.choose_color("green")
        assert snapshot.current_color == Color.GREEN
        assert snapshot.current_player is Player.AI

    def test_choose_color_outside_phase(self, new_match):
        match = new_match(player="R1 R2", ai="G2 B3", top="R5")
        with pytest.raises(InvalidMove):
            match.choose_color(Color.BLUE)

    def test_draw_then_pass(self, new_match):
        match = new_match(player="G1 B2", ai="G2 B3", top="R5", deck_top="R9")
        snapshot = match.draw_card()
        assert snapshot.drawn_card == str_to_card("R9")
        assert snapshot.current_player is Player.HUMAN
        assert "You drew R9. Play it or pass." in match.messages

        snapshot = match.pass_turn()
        assert snapshot.current_player is Player.AI
        assert len(snapshot.player_hand) == 3

    def test_pass_without_draw(self, new_match):
        match = new_match(player="R1 R2", ai="G2 B3", top="R5")
        with pytest.raises(InvalidMove):
            match.pass_turn()

    def test_call_uno_needs_one_card(self, new_match):
        match = new_match(player="R1 R2", ai="G2 B3", top="R5")
        with pytest.raises(InvalidMove):
            match.call_uno()


class TestUnoWindow:
    """UNO 宽限窗口测试"""

    def config(self):
        return MatchConfig(seed=0, ai_turn_delay=100.0, uno_grace_period=3.0)

    def test_penalty_once(self, new_match):
        match = new_match(self.config(), player="R1 R2", ai="G2 B3 Y4", top="R5")
        match.play_card("R1")
        assert len(match.scheduler.pending("uno_window")) == 1

        match.advance(2.0)
        assert len(match.state.player_hand) == 1

        match.advance(1.0)
        assert len(match.state.player_hand) == 3
        assert "You forgot to call UNO! Draw 2 cards." in match.messages

        match.advance(3.0)
        assert len(match.state.player_hand) == 3
        assert match.state.total_cards == 108

    def test_calling_uno_prevents_penalty(self, new_match):
        match = new_match(self.config(), player="R1 R2", ai="G2 B3 Y4", top="R5")
        match.play_card("R1")
        snapshot = match.call_uno()
        assert snapshot.uno_called
        assert "You called UNO!" in match.messages

        match.advance(5.0)
        assert len(match.state.player_hand) == 1
        assert match.scheduler.skipped == 1

    def test_penalty_does_not_cancel_ai_turn(self, new_match):
        match = new_match(self.config(), player="R1 R2", ai="G2 B3 R7", top="R5")
        match.play_card("R1")
        match.advance(3.0)
        assert len(match.state.player_hand) == 3

        match.advance(97.0)
        assert match.state.current_player is Player.HUMAN
        assert match.state.current_card == str_to_card("R7")

    def test_ai_calls_uno(self, new_match):
        match = new_match(INSTANT, player="R1 R2 R3", ai="G2 R7", top="R5")
        match.play_card("R1")
        match.run_until_human_turn()

        assert match.state.ai_hand == (str_to_card("G2"),)
        assert Player.AI in match.state.uno_called
        assert "AI calls UNO!" in match.messages
        assert match.scheduler.pending("uno_window") == []

    def test_ai_without_auto_call_is_penalized(self, new_match):
        config = MatchConfig(seed=0, ai_turn_delay=0.0, ai_calls_uno=False, uno_grace_period=3.0)
        match = new_match(config, player="R1 R2 R3", ai="G2 R7", top="R5")
        match.play_card("R1")
        match.advance(0.0)
        assert len(match.state.ai_hand) == 1

        match.advance(3.0)
        assert len(match.state.ai_hand) == 3
        assert "AI forgot to call UNO! AI draws 2 cards." in match.messages


class TestRoundEnd:
    """结算测试"""

    def test_player_wins_without_calling(self, new_match):
        match = new_match(player="R1", ai="G5 GS W+4", top="R5")
        snapshot = match.play_card("R1")

        assert snapshot.phase == Phase.ROUND_OVER
        assert snapshot.winner is Player.HUMAN
        assert snapshot.uncalled_uno
        assert match.is_round_over
        assert match.scores[Player.HUMAN] == 75

        result = match.results[-1]
        assert result.points == 75
        assert result.uncalled_uno
        assert result.ai_hand_size == 3
        assert "You won without calling UNO!" in match.messages

        with pytest.raises(InvalidMove):
            match.draw_card()

    def test_called_uno_win(self, new_match):
        match = new_match(player="R1", ai="G5", top="R5")
        match.call_uno()
        snapshot = match.play_card("R1")
        assert not snapshot.uncalled_uno
        assert match.scores[Player.HUMAN] == 5

    def test_ai_wins(self, new_match):
        match = new_match(INSTANT, player="R1 R2 R3", ai="R7", top="R5")
        match.play_card("R1")
        snapshot = match.run_until_human_turn()

        assert snapshot.winner is Player.AI
        assert match.scores[Player.AI] == 5
        assert match.results[-1].adaptation.reason == "ai_won"
        assert "AI won the round! +5 points" in match.messages

    def test_scores_carry_over(self, new_match):
        match = new_match(player="R1", ai="G5", top="R5")
        match.play_card("R1")
        match.start_round()

        assert match.round_number == 2
        assert match.scores[Player.HUMAN] == 5
        assert len(match.state.player_hand) == 7
        assert match.state.winner is None

    def test_summary(self, new_match):
        match = new_match(player="R1", ai="G5 GS W+4", top="R5")
        match.play_card("R1")
        summary = match.summary()

        assert summary["rounds"] == 1
        assert summary["player_wins"] == 1
        assert summary["scores"] == {"player": 75, "ai": 0}
        assert summary["ai"]["rounds"] == 1


class TestAITurn:
    """AI 回合测试"""

    def test_turn_timing(self, new_match):
        match = new_match(player="R1 R2 R3", ai="R7 R8 G2", top="R5")
        match.play_card("R1")

        match.advance(1.0)
        assert match.state.current_player is Player.AI

        match.advance(0.5)
        assert match.state.current_player is Player.HUMAN
        assert len(match.state.ai_hand) == 2

    def test_stacking(self, new_match):
        match = new_match(INSTANT, player="R+2 R3 B4", ai="G+2 Y5 B7", top="R5")
        match.play_card("R+2")
        snapshot = match.run_until_human_turn()

        assert snapshot.discard_top == str_to_card("G+2")
        assert snapshot.draw_stack == 4

        snapshot = match.draw_card()
        assert len(snapshot.player_hand) == 6
        assert snapshot.draw_stack == 0
        assert snapshot.current_player is Player.AI

    def test_ai_takes_stack(self, new_match):
        match = new_match(INSTANT, player="R+2 R3 B4", ai="Y5 B7 G1", top="R5")
        match.play_card("R+2")
        snapshot = match.run_until_human_turn()

        assert snapshot.ai_hand_size == 5
        assert snapshot.draw_stack == 0
        assert "AI draws 2 cards" in match.messages

    def test_advised_wild_and_color(self, new_match):
        advisor = StubAdvisor(card="W")
        match = new_match(
            INSTANT, advisor=advisor, player="B1 B2 B3", ai="W R2 R3 B4", top="B5",
        )
        match.play_card("B1")
        snapshot = match.run_until_human_turn()

        assert snapshot.discard_top == str_to_card("W")
        assert snapshot.current_color == Color.RED
        assert match.state.ai_hand == tuple(str_to_cards("R2 R3 B4"))
        assert advisor.requests[0].playable == tuple(str_to_cards("W B4"))
        assert "AI chose red" in match.messages

    def test_advised_color(self, new_match):
        advisor = StubAdvisor(card="W", color=Color.YELLOW)
        match = new_match(
            INSTANT, advisor=advisor, player="B1 B2 B3", ai="W R2 R3 B4", top="B5",
        )
        match.play_card("B1")
        assert match.run_until_human_turn().current_color == Color.YELLOW

    def test_color_reveal_delay(self, new_match):
        config = MatchConfig(seed=0, ai_turn_delay=1.0, color_reveal_delay=2.0)
        match = new_match(config, advisor=StubAdvisor(card="W"), player="B1 B2 B3", ai="W R2 R3", top="B5")
        match.play_card("B1")

        match.advance(1.0)
        assert match.state.phase == Phase.AWAITING_COLOR_CHOICE
        assert [t.due for t in match.scheduler.pending("ai_color")] == [3.0]

        match.advance(2.0)
        assert match.state.current_color == Color.RED
        assert match.state.current_player is Player.HUMAN

    def test_extra_turn_delay(self, new_match):
        config = MatchConfig(seed=0, ai_turn_delay=1.0, ai_extra_turn_delay=5.0)
        match = new_match(config, advisor=StubAdvisor(card="RS"), player="R1 R2 R3", ai="RS R7 R8", top="R5")
        match.play_card("R1")
        match.advance(1.0)

        assert match.state.current_card == str_to_card("RS")
        assert match.state.current_player is Player.AI
        assert [t.due for t in match.scheduler.pending("ai_turn")] == [6.0]

    def test_drawn_card_played(self, new_match, fixed_random):
        match = new_match(
            INSTANT, rng=fixed_random(0.0),
            player="R1 R2 R3", ai="G2 B3 Y4", top="R5", deck_top="R9",
        )
        match.play_card("R1")
        snapshot = match.run_until_human_turn()

        assert snapshot.discard_top == str_to_card("R9")
        assert match.state.ai_hand == tuple(str_to_cards("G2 B3 Y4"))
        assert "AI played the drawn card R9" in match.messages

    def test_drawn_card_passed(self, new_match, fixed_random):
        match = new_match(
            INSTANT, rng=fixed_random(0.99),
            player="R1 R2 R3", ai="G2 B3 Y4", top="R5", deck_top="R9",
        )
        match.play_card("R1")
        snapshot = match.run_until_human_turn()

        assert snapshot.discard_top == str_to_card("R1")
        assert snapshot.ai_hand_size == 4
        assert "AI passed" in match.messages

    def test_ai_draw_unplayable(self, new_match):
        match = new_match(INSTANT, player="R1 R2 R3", ai="G2 B3 Y4", top="R5", deck_top="G7")
        match.play_card("R1")
        snapshot = match.run_until_human_turn()

        assert snapshot.ai_hand_size == 4
        assert snapshot.current_player is Player.HUMAN
        assert "AI drew a card" in match.messages


class TestStaleTasks:
    """过期任务测试"""

    def test_new_round_invalidates_tasks(self, new_match):
        match = new_match(player="R1 R2 R3", ai="R7 R8 G2", top="R5")
        match.play_card("R1")
        assert len(match.scheduler.pending("ai_turn")) == 1

        match.start_round()
        match.run_until_idle()

        assert match.scheduler.skipped >= 1
        assert len(match.state.ai_hand) == 7
        assert match.state.current_player is Player.HUMAN

    def test_reentrant_ai_turn_skipped(self, new_match):
        match = new_match(player="R1 R2 R3", ai="R7 R8 G2", top="R5", current_player=Player.AI)
        version = match.state.version

        match._ai_turn_in_progress = True
        match._ai_turn()
        assert match.state.version == version

        match._ai_turn_in_progress = False
        match._ai_turn()
        assert match.state.version > version
        assert not match._ai_turn_in_progress

    def test_records_ai_moves(self, new_match):
        match = new_match(INSTANT, player="R1 R2 R3", ai="R7 R8 G2", top="R5")
        match.play_card("R1")
        match.run_until_human_turn()

        assert len(match.profile.moves) == 1
        assert match.profile.moves[0].player is Player.AI
        assert len(match.profile.predictions) == 1
