"""
对局引擎

Match 持有唯一的对局状态，负责:
- 接收玩家意图 (出牌/摸牌/过/喊 UNO/选色)，返回只读快照
- 通过任务队列安排 AI 回合、AI 选色、摸牌后决定、UNO 宽限窗口
- 每局结束时计分、AI 自适应

所有延迟任务执行前都会重新校验前提 (局号、回合序号、当前玩家、阶段)，
过期任务直接跳过。
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Union
import random
import logging

from core.cards import Card, Color, str_to_card, card_to_str, parse_color
from core.deck import DeckManager
from core.errors import InvalidMove
from core.rules import RuleEngine
from core.state import MatchState, MatchSnapshot, Player, Phase, Move, MoveType, PLAY_ORDER

from ai.personality import Personality, Difficulty
from ai.advisory import Advisor, Advice, AdvisoryRequest, FallbackAdvisor
from ai.strategy import StrategySelector, HandState
from ai.learning import AIProfile, Adaptation

from .config import MatchConfig
from .scheduler import TaskQueue

logger = logging.getLogger(__name__)

# 改变回合归属的动作 (喊 UNO 和罚牌不影响回合)
TURN_MOVES = frozenset({
    MoveType.PLAY,
    MoveType.DRAW,
    MoveType.STACK_DRAW,
    MoveType.PASS,
    MoveType.CHOOSE_COLOR,
})


@dataclass
class RoundResult:
    """
    一局的结果

    Attributes:
        round_number: 局号 (从 1 开始)
        winner: 赢家
        points: 赢家本局得分 (对手剩余手牌点数)
        uncalled_uno: 玩家赢了但没喊 UNO
        player_hand_size: 结束时玩家手牌数
        ai_hand_size: 结束时 AI 手牌数
        turns: 出牌步数
        elapsed: 本局耗时 (虚拟时间)
        adaptation: AI 自适应结果
    """
    round_number: int
    winner: Player
    points: int
    uncalled_uno: bool = False
    player_hand_size: int = 0
    ai_hand_size: int = 0
    turns: int = 0
    elapsed: float = 0.0
    adaptation: Optional[Adaptation] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round_number": self.round_number,
            "winner": self.winner.value,
            "points": self.points,
            "uncalled_uno": self.uncalled_uno,
            "player_hand_size": self.player_hand_size,
            "ai_hand_size": self.ai_hand_size,
            "turns": self.turns,
            "elapsed": self.elapsed,
            "personality": self.adaptation.personality.value if self.adaptation else None,
        }


class Match:
    """
    人机对局

    Example:
        match = Match(MatchConfig(seed=42))
        snapshot = match.start_round()
        snapshot = match.play_card("R5")
        snapshot = match.run_until_human_turn()
    """

    def __init__(
        self,
        config: Optional[MatchConfig] = None,
        advisor: Optional[Advisor] = None,
        rng: Optional[random.Random] = None,
        scheduler: Optional[TaskQueue] = None,
    ):
        """
        Args:
            config: 对局配置
            advisor: 外部建议服务 (会被包装成 FallbackAdvisor)，None 表示只用本地分析
            rng: 随机源，默认按 config.seed 创建
            scheduler: 任务队列
        """
        self.config = config or MatchConfig()
        self.rng = rng if rng is not None else random.Random(self.config.seed)
        self.scheduler = scheduler or TaskQueue()

        self.deck_manager = DeckManager(self.rng)
        self.strategy = StrategySelector(self.rng)
        self.profile = AIProfile(
            personality=Personality(self.config.personality),
            smoothing=self.config.win_rate_smoothing,
            learning_enabled=self.config.learning_enabled,
            rng=self.rng,
        )
        self.difficulty = Difficulty(self.config.difficulty)

        if isinstance(advisor, FallbackAdvisor):
            self.advisor = advisor
        else:
            self.advisor = FallbackAdvisor(primary=advisor, timeout=self.config.advisory_timeout)

        self.scores: Dict[Player, int] = {p: 0 for p in PLAY_ORDER}
        self.messages: List[str] = []
        self.results: List[RoundResult] = []

        self.state: Optional[MatchState] = None
        self.round_number = 0
        self._turn_seq = 0
        self._round_started_at = 0.0
        self._last_advice: Optional[Advice] = None
        self._ai_turn_in_progress = False

    # ------------------------------------------------------------------
    # 对局生命周期
    # ------------------------------------------------------------------

    def start_round(self) -> MatchSnapshot:
        """
        开始新的一局: 重建牌堆、手牌和弃牌堆，清空本局标志，分数保留
        """
        self.round_number += 1
        self._turn_seq += 1
        self._last_advice = None
        self._round_started_at = self.scheduler.now

        self.state = MatchState.initial(
            self.deck_manager,
            hand_size=self.config.hand_size,
            first_player=Player(self.config.first_player),
        )
        self.state.check_invariants()

        logger.info(
            f"Round {self.round_number} started, start card {card_to_str(self.state.current_card)}, "
            f"AI personality {self.profile.personality.value}"
        )
        self._message(f"Round {self.round_number} started")

        if self.state.current_player is Player.AI:
            self._schedule_ai_turn(self.config.ai_turn_delay)

        return self.snapshot()

    def snapshot(self) -> MatchSnapshot:
        """当前只读快照"""
        self._require_round()
        return self.state.snapshot(self.scores)

    @property
    def is_round_over(self) -> bool:
        return self.state is not None and self.state.is_finished

    def close(self):
        """释放建议服务资源"""
        self.advisor.close()

    # ------------------------------------------------------------------
    # 玩家意图
    # ------------------------------------------------------------------

    def play_card(self, card: Union[Card, str]) -> MatchSnapshot:
        """
        玩家出牌

        Args:
            card: 牌或牌的字符串 (如 "R5", "W+4")

        Raises:
            InvalidMove: 不是玩家回合、牌不在手里或不能出
        """
        self._require_human_turn()
        if isinstance(card, str):
            try:
                card = str_to_card(card)
            except ValueError as e:
                raise InvalidMove(str(e)) from e

        if card not in self.state.player_hand:
            raise InvalidMove(f"{card_to_str(card)} is not in your hand")

        self._apply(self.state.with_play(card, Player.HUMAN))
        return self.snapshot()

    def draw_card(self) -> MatchSnapshot:
        """玩家摸牌 (有累积罚牌时一次摸完)"""
        self._require_human_turn()
        self._apply(self.state.with_draw(self.deck_manager, Player.HUMAN))
        return self.snapshot()

    def pass_turn(self) -> MatchSnapshot:
        """玩家摸到能出的牌后选择不出"""
        self._require_human_turn()
        self._apply(self.state.with_pass(Player.HUMAN))
        return self.snapshot()

    def call_uno(self) -> MatchSnapshot:
        """玩家喊 UNO (不要求是玩家回合)"""
        self._require_round()
        new_state = self.state.with_uno_call(Player.HUMAN)
        if new_state is not self.state:
            self._apply(new_state)
            self._message("You called UNO!")
        return self.snapshot()

    def choose_color(self, color: Union[Color, str]) -> MatchSnapshot:
        """
        玩家为万能牌选色

        Args:
            color: 颜色或颜色名 (如 "red", "r")
        """
        self._require_human_turn()
        if isinstance(color, str):
            try:
                color = parse_color(color)
            except ValueError as e:
                raise InvalidMove(str(e)) from e

        self._apply(self.state.with_color_choice(color, Player.HUMAN))
        return self.snapshot()

    # ------------------------------------------------------------------
    # 时间推进
    # ------------------------------------------------------------------

    def advance(self, dt: float) -> MatchSnapshot:
        """虚拟时钟前进 dt，执行到期任务"""
        self.scheduler.advance(dt)
        return self.snapshot()

    def run_until_idle(self) -> MatchSnapshot:
        """执行所有待执行任务"""
        self.scheduler.run_until_idle()
        return self.snapshot()

    def run_until_human_turn(self) -> MatchSnapshot:
        """
        执行任务直到轮到玩家行动或本局结束

        UNO 窗口等不影响玩家行动的任务可能仍在队列中
        """
        self._require_round()
        while not self._awaiting_human() and self.scheduler.run_next():
            pass
        return self.snapshot()

    def _awaiting_human(self) -> bool:
        state = self.state
        return state.is_finished or state.current_player is Player.HUMAN

    # ------------------------------------------------------------------
    # 状态转移与调度
    # ------------------------------------------------------------------

    def _apply(self, new_state: MatchState):
        """提交新状态并安排后续任务"""
        new_state.check_invariants()
        old_state = self.state
        self.state = new_state

        move = new_state.move_history[-1] if new_state.move_history else None
        if move is not None and move.player is Player.AI:
            self.profile.record_move(move)

        self._after_transition(old_state, new_state, move)

    def _after_transition(self, old: MatchState, new: MatchState, move: Optional[Move]):
        if new.is_finished:
            if not old.is_finished:
                self._close_round(new)
            return

        # UNO 窗口
        for player in PLAY_ORDER:
            if new.uno_window(player) != old.uno_window(player):
                self._open_uno_window(player, new.uno_window(player))

        if move is None or move.move_type not in TURN_MOVES:
            return

        self._turn_seq += 1

        if move.move_type == MoveType.DRAW and move.player is Player.HUMAN:
            if new.drawn_card is not None:
                self._message(f"You drew {card_to_str(new.drawn_card)}. Play it or pass.")
            else:
                self._message("You drew a card.")

        if new.current_player is not Player.AI:
            return

        if new.is_color_pending:
            self._schedule(
                self.config.color_reveal_delay, "ai_color", self._ai_choose_color, Phase.AWAITING_COLOR_CHOICE,
            )
        elif new.drawn_card is not None:
            self._schedule(
                self.config.ai_drawn_card_delay, "ai_drawn_card", self._ai_drawn_card, Phase.AWAITING_PLAY,
            )
        else:
            extra_turn = old.current_player is Player.AI and move.move_type == MoveType.PLAY
            delay = self.config.ai_extra_turn_delay if extra_turn else self.config.ai_turn_delay
            self._schedule_ai_turn(delay)

    def _schedule(self, delay: float, name: str, action, phase: Phase):
        """安排 AI 任务，执行前校验局号、回合序号和阶段"""
        round_number = self.round_number
        turn_seq = self._turn_seq

        def guard() -> bool:
            state = self.state
            return (
                self.round_number == round_number
                and self._turn_seq == turn_seq
                and state.current_player is Player.AI
                and state.phase == phase
            )

        self.scheduler.schedule(delay, name, action, guard)

    def _schedule_ai_turn(self, delay: float):
        self._schedule(delay, "ai_turn", self._ai_turn, Phase.AWAITING_PLAY)

    def _open_uno_window(self, player: Player, window: int):
        """手牌剩一张: AI 自动喊 UNO，玩家开始宽限计时"""
        if player is Player.AI and self.config.ai_calls_uno:
            self._apply(self.state.with_uno_call(Player.AI))
            self._message("AI calls UNO!")
            return

        round_number = self.round_number

        def guard() -> bool:
            state = self.state
            return (
                self.round_number == round_number
                and not state.is_finished
                and state.uno_window(player) == window
                and state.hand_size(player) == 1
                and player not in state.uno_called
                and player not in state.uno_penalized
            )

        def penalize():
            n = self.config.uno_penalty_cards
            self._apply(self.state.with_uno_penalty(player, self.deck_manager, n))
            logger.info(f"{player.value} missed UNO call, drew {n} penalty cards")
            if player is Player.HUMAN:
                self._message(f"You forgot to call UNO! Draw {n} cards.")
            else:
                self._message(f"AI forgot to call UNO! AI draws {n} cards.")

        self.scheduler.schedule(self.config.uno_grace_period, "uno_window", penalize, guard)

    # ------------------------------------------------------------------
    # AI 回合
    # ------------------------------------------------------------------

    def _consult_advisor(self) -> Advice:
        request = AdvisoryRequest.from_state(
            self.state,
            Player.AI,
            self.profile.personality,
            history_length=self.config.history_length,
        )
        advice = self.advisor.advise(request)
        self.profile.record_prediction(advice)
        self._last_advice = advice
        return advice

    def _ai_turn(self):
        if self._ai_turn_in_progress:
            logger.debug("AI turn already in progress, skipping")
            return

        self._ai_turn_in_progress = True
        try:
            state = self.state
            advice = self._consult_advisor()
            playable = state.playable_cards(Player.AI)

            if playable:
                hand_state = HandState(
                    hand=state.ai_hand,
                    opponent_hand_size=state.hand_size(Player.HUMAN),
                    win_probability=advice.win_probability,
                )
                card = self.strategy.choose_card(
                    playable, hand_state, self.profile.traits, self.difficulty, advice,
                )
                logger.debug(f"AI plays {card_to_str(card)} ({self.difficulty.value})")
                self._apply(state.with_play(card, Player.AI))
                self._message(f"AI played {card_to_str(card)}")
            elif state.draw_stack > 0:
                n = state.draw_stack
                self._apply(state.with_stack_draw(self.deck_manager, Player.AI))
                self._message(f"AI draws {n} cards")
            else:
                self._apply(state.with_draw(self.deck_manager, Player.AI))
                self._message("AI drew a card")
        finally:
            self._ai_turn_in_progress = False

    def _ai_choose_color(self):
        color = self.strategy.choose_color(self.state.ai_hand, self._last_advice)
        self._apply(self.state.with_color_choice(color, Player.AI))
        self._message(f"AI chose {color.value}")

    def _ai_drawn_card(self):
        card = self.state.drawn_card
        if self.strategy.should_play_drawn_card(self.difficulty):
            self._apply(self.state.with_play(card, Player.AI))
            self._message(f"AI played the drawn card {card_to_str(card)}")
        else:
            self._apply(self.state.with_pass(Player.AI))
            self._message("AI passed")

    # ------------------------------------------------------------------
    # 结算
    # ------------------------------------------------------------------

    def _close_round(self, state: MatchState) -> RoundResult:
        winner = state.winner
        points = RuleEngine.calculate_points(state.get_hand(winner.opponent))
        self.scores[winner] += points

        adaptation = self.profile.adapt(winner)

        result = RoundResult(
            round_number=self.round_number,
            winner=winner,
            points=points,
            uncalled_uno=state.uncalled_uno,
            player_hand_size=len(state.player_hand),
            ai_hand_size=len(state.ai_hand),
            turns=state.step_count,
            elapsed=self.scheduler.now - self._round_started_at,
            adaptation=adaptation,
        )
        self.results.append(result)

        logger.info(
            f"Round {self.round_number} over: {winner.value} won {points} points "
            f"(score {self.scores[Player.HUMAN]}-{self.scores[Player.AI]})"
        )
        if winner is Player.HUMAN:
            self._message(f"You won the round! +{points} points")
            if state.uncalled_uno:
                self._message("You won without calling UNO!")
        else:
            self._message(f"AI won the round! +{points} points")
        if adaptation.changed:
            self._message(f"AI switched to {adaptation.personality.value} strategy")

        return result

    def summary(self) -> Dict[str, Any]:
        """整场统计"""
        return {
            "rounds": len(self.results),
            "scores": {p.value: s for p, s in self.scores.items()},
            "player_wins": sum(1 for r in self.results if r.winner is Player.HUMAN),
            "ai_wins": sum(1 for r in self.results if r.winner is Player.AI),
            "advisor_failure_rate": self.advisor.failure_rate,
            "ai": self.profile.summary(),
        }

    # ------------------------------------------------------------------
    # 辅助
    # ------------------------------------------------------------------

    def _message(self, text: str):
        self.messages.append(text)

    def _require_round(self):
        if self.state is None:
            raise InvalidMove("No round in progress, call start_round() first")

    def _require_human_turn(self):
        self._require_round()
        if self.state.is_finished:
            raise InvalidMove("Round is over")
        if self.state.current_player is not Player.HUMAN:
            raise InvalidMove("It's not your turn")
