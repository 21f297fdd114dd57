"""
评估器

让智能体坐在玩家位置，与内置 AI 对局并统计表现
"""
from typing import Dict, List, Optional, Callable, Any
from dataclasses import dataclass, field
import numpy as np
import logging

from core.cards import COLORS, CARD_KINDS
from env.observation import (
    ActionType, get_action_encoder, CALL_UNO_INDEX, COLOR_OFFSET, DRAW_INDEX, PASS_INDEX,
)

logger = logging.getLogger(__name__)


@dataclass
class EvalResult:
    """评估结果"""
    win_rate: float
    avg_reward: float
    avg_length: float
    games_played: int
    avg_points_won: float = 0.0
    avg_points_lost: float = 0.0
    win_rate_ci: float = 0.0
    uncalled_uno_rate: float = 0.0
    extra_stats: Dict[str, float] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"EvalResult(win_rate={self.win_rate:.2%} ±{self.win_rate_ci:.2%}, "
            f"avg_reward={self.avg_reward:.2f}, "
            f"games={self.games_played})"
        )


class Agent:
    """智能体基类"""

    def __init__(self, name: str = "agent"):
        self.name = name

    def act(self, obs: Dict[str, Any], legal_actions: List[int]) -> int:
        """
        选择动作

        Args:
            obs: 观测
            legal_actions: 合法动作索引

        Returns:
            动作索引
        """
        raise NotImplementedError

    def reset(self):
        """重置状态"""
        pass


class RandomAgent(Agent):
    """随机智能体"""

    def __init__(self, name: str = "random", seed: Optional[int] = None):
        super().__init__(name)
        self.rng = np.random.default_rng(seed)

    def act(self, obs: Dict[str, Any], legal_actions: List[int]) -> int:
        if not legal_actions:
            return DRAW_INDEX
        return int(legal_actions[self.rng.integers(len(legal_actions))])


class RuleBasedAgent(Agent):
    """
    规则智能体

    - 能喊 UNO 就喊
    - 选手里最多的颜色
    - 对手快出完时优先 +2 / 跳过 / +4
    - 否则先出高分的有色牌，万能牌留到最后
    - 摸到能出的牌就出
    """

    def __init__(self, name: str = "rule"):
        super().__init__(name)
        self._encoder = get_action_encoder()

    def act(self, obs: Dict[str, Any], legal_actions: List[int]) -> int:
        if not legal_actions:
            return DRAW_INDEX

        if CALL_UNO_INDEX in legal_actions:
            return CALL_UNO_INDEX

        decoded = [self._encoder.decode(a) for a in legal_actions]

        colors = [a for a in decoded if a.action_type == ActionType.CHOOSE_COLOR]
        if colors:
            return COLOR_OFFSET + self._best_color(obs["hand"])

        plays = [a for a in decoded if a.action_type == ActionType.PLAY]
        if plays:
            opponent_cards = int(obs["cards_left"][1])
            if opponent_cards <= 2:
                pressure = [a for a in plays if a.card.is_draw or a.card.is_action]
                if pressure:
                    return self._encoder.encode(pressure[0])

            plays.sort(key=lambda a: (a.card.is_wild, -a.card.points))
            return self._encoder.encode(plays[0])

        if PASS_INDEX in legal_actions:
            return PASS_INDEX
        return DRAW_INDEX

    @staticmethod
    def _best_color(hand: np.ndarray) -> int:
        """手里张数最多的颜色索引"""
        counts = np.zeros(len(COLORS), dtype=np.float32)
        for idx in np.flatnonzero(hand):
            card = CARD_KINDS[idx]
            if card.color in COLORS:
                counts[COLORS.index(card.color)] += hand[idx]
        return int(np.argmax(counts))


def win_rate_confidence(wins: int, n_games: int, z: float = 1.96) -> float:
    """
    胜率的正态近似置信区间半宽

    Args:
        wins: 胜局数
        n_games: 总局数
        z: 分位数 (默认 95%)
    """
    if n_games == 0:
        return 0.0
    p = wins / n_games
    return float(z * np.sqrt(p * (1 - p) / n_games))


class Evaluator:
    """
    评估器

    评估智能体在环境中的表现
    """

    def __init__(self, env_fn: Callable):
        """
        Args:
            env_fn: 创建 UnoEnv 的工厂函数
        """
        self.env_fn = env_fn

    def evaluate(
        self,
        agent: Agent,
        n_games: int = 100,
        verbose: bool = False,
    ) -> EvalResult:
        """
        评估智能体

        Args:
            agent: 待评估智能体
            n_games: 局数
            verbose: 是否输出进度

        Returns:
            评估结果
        """
        env = self.env_fn()

        rewards = np.zeros(n_games, dtype=np.float32)
        lengths = np.zeros(n_games, dtype=np.float32)
        points_won = np.zeros(n_games, dtype=np.float32)
        points_lost = np.zeros(n_games, dtype=np.float32)
        uncalled = 0
        wins = 0

        try:
            for game_idx in range(n_games):
                agent.reset()
                obs, info = env.reset()
                done = False

                while not done:
                    action = agent.act(obs, info["legal_action_indices"])
                    obs, reward, terminated, truncated, info = env.step(action)
                    done = terminated or truncated
                    rewards[game_idx] += reward
                    lengths[game_idx] += 1

                winner = info.get("winner")
                if winner == "player":
                    wins += 1
                    points_won[game_idx] = info.get("points", 0)
                    uncalled += int(info.get("uncalled_uno", False))
                elif winner == "ai":
                    points_lost[game_idx] = info.get("points", 0)

                if verbose and (game_idx + 1) % 10 == 0:
                    logger.info(f"Game {game_idx + 1}/{n_games}, Win rate: {wins/(game_idx+1):.2%}")
        finally:
            env.close()

        if n_games == 0:
            return EvalResult(win_rate=0.0, avg_reward=0.0, avg_length=0.0, games_played=0)

        return EvalResult(
            win_rate=wins / n_games,
            avg_reward=float(rewards.mean()),
            avg_length=float(lengths.mean()),
            games_played=n_games,
            avg_points_won=float(points_won.mean()),
            avg_points_lost=float(points_lost.mean()),
            win_rate_ci=win_rate_confidence(wins, n_games),
            uncalled_uno_rate=uncalled / wins if wins else 0.0,
        )
