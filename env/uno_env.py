"""
UNO Gymnasium 环境

智能体坐在玩家位置，对手是引擎内置 AI；
遵循标准 Gymnasium API
"""
from typing import Dict, Any, Tuple, Optional, List, Union
import numpy as np

import gymnasium as gym
from gymnasium import spaces

from core.cards import NUM_CARD_KINDS, COLORS, cards_to_str, card_to_str
from core.errors import InvalidMove
from core.state import MatchState, Player, PLAY_ORDER

from ai.advisory import Advisor
from engine.config import MatchConfig
from engine.match import Match

from .observation import (
    ObservationBuilder, Action, ActionType, ActionEncoder, get_action_encoder,
)


class UnoEnv(gym.Env):
    """
    UNO Gymnasium 环境

    每个 episode 是一局。step() 执行智能体动作后推进虚拟时钟，
    直到再次轮到智能体或本局结束。

    API:
    - reset() -> observation, info
    - step(action) -> observation, reward, terminated, truncated, info
    """

    metadata = {
        "render_modes": ["human", "ansi"],
        "name": "Uno-v1",
    }

    def __init__(
        self,
        config: Optional[MatchConfig] = None,
        advisor: Optional[Advisor] = None,
        render_mode: Optional[str] = None,
        history_length: int = 10,
        max_steps: int = 500,
        invalid_action_penalty: float = -1.0,
        seed: Optional[int] = None,
    ):
        """
        Args:
            config: 对局配置
            advisor: AI 使用的外部建议服务
            render_mode: 渲染模式 ("human", "ansi", None)
            history_length: 观测中的出牌历史长度
            max_steps: 单局最大步数 (超过则 truncated)
            invalid_action_penalty: 非法动作的奖励
            seed: 随机种子
        """
        super().__init__()

        self.config = config or MatchConfig()
        self.advisor = advisor
        self.render_mode = render_mode
        self.max_steps = max_steps
        self.invalid_action_penalty = invalid_action_penalty
        self._seed = seed if seed is not None else self.config.seed

        self._obs_builder = ObservationBuilder(history_length=history_length)
        self._action_encoder: ActionEncoder = get_action_encoder()

        self._match: Optional[Match] = None
        self._steps = 0

        self._define_spaces(history_length)

    def _define_spaces(self, history_length: int):
        """定义观测和动作空间"""
        self.action_space = spaces.Discrete(self._action_encoder.num_actions)

        self.observation_space = spaces.Dict({
            "hand": spaces.Box(0, 108, shape=(NUM_CARD_KINDS,), dtype=np.float32),
            "discard_top": spaces.Box(0, 1, shape=(NUM_CARD_KINDS,), dtype=np.float32),
            "current_color": spaces.Box(0, 1, shape=(len(COLORS),), dtype=np.float32),
            "played_cards": spaces.Box(0, 108, shape=(NUM_CARD_KINDS,), dtype=np.float32),
            "history": spaces.Box(0, 4, shape=(history_length, NUM_CARD_KINDS), dtype=np.float32),
            "draw_stack": spaces.Box(0, 108, shape=(1,), dtype=np.float32),
            "draw_stack_type": spaces.Box(0, 1, shape=(3,), dtype=np.float32),
            "phase": spaces.Box(0, 1, shape=(3,), dtype=np.float32),
            "cards_left": spaces.Box(0, 108, shape=(3,), dtype=np.float32),
            "flags": spaces.Box(0, 1, shape=(3,), dtype=np.float32),
        })

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
        """
        开始新的一局

        Args:
            seed: 随机种子
            options: 额外选项 (未使用)

        Returns:
            (observation, info) 元组
        """
        super().reset(seed=seed)

        game_seed = seed if seed is not None else self._seed
        if self._match is None or seed is not None:
            if self._match is not None:
                self._match.close()
            config = MatchConfig.from_dict({**self.config.to_dict(), "seed": game_seed})
            self._match = Match(config, advisor=self.advisor)

        self._steps = 0
        self._match.start_round()
        self._match.run_until_human_turn()

        if self.render_mode == "human":
            self.render()

        return self._build_observation(), self._build_info()

    def step(
        self,
        action: Union[int, np.integer, Action],
    ) -> Tuple[Dict[str, np.ndarray], float, bool, bool, Dict[str, Any]]:
        """
        执行动作

        Args:
            action: 动作索引或 Action 对象

        Returns:
            (observation, reward, terminated, truncated, info) 元组
        """
        if self._match is None or self._match.state is None:
            raise RuntimeError("Environment not reset. Call reset() first.")

        concrete_action = self._decode_action(action)
        self._steps += 1
        truncated = self._steps >= self.max_steps

        if concrete_action not in self.get_legal_actions():
            info = self._build_info()
            info["error"] = f"Invalid action: {concrete_action}"
            return self._build_observation(), self.invalid_action_penalty, False, truncated, info

        try:
            self._execute(concrete_action)
        except InvalidMove as e:
            info = self._build_info()
            info["error"] = str(e)
            return self._build_observation(), self.invalid_action_penalty, False, truncated, info

        self._match.run_until_human_turn()

        state = self.state
        terminated = state.is_finished
        truncated = truncated and not terminated

        reward = 0.0
        if terminated:
            reward = 1.0 if state.winner is Player.HUMAN else -1.0

        if self.render_mode == "human":
            self.render()

        return self._build_observation(), reward, terminated, truncated, self._build_info()

    def _decode_action(self, action: Union[int, np.integer, Action]) -> Action:
        if isinstance(action, Action):
            return action
        if isinstance(action, (int, np.integer)):
            decoded = self._action_encoder.decode(int(action))
            if decoded is None:
                raise ValueError(
                    f"Invalid action index: {action}. "
                    f"Valid range: 0-{self._action_encoder.num_actions - 1}"
                )
            return decoded
        raise ValueError(f"Invalid action type: {type(action)}")

    def _execute(self, action: Action):
        match = self._match
        if action.action_type == ActionType.PLAY:
            match.play_card(action.card)
        elif action.action_type == ActionType.DRAW:
            match.draw_card()
        elif action.action_type == ActionType.PASS:
            match.pass_turn()
        elif action.action_type == ActionType.CHOOSE_COLOR:
            match.choose_color(action.color)
        else:
            match.call_uno()

    def _build_observation(self) -> Dict[str, np.ndarray]:
        return self._obs_builder.build(self.state, Player.HUMAN).to_dict()

    def _build_info(self) -> Dict[str, Any]:
        """构建 info 字典"""
        state = self.state
        legal_actions = self.get_legal_actions()

        info = {
            "current_player": state.current_player.value,
            "phase": state.phase.value,
            "legal_actions": legal_actions,
            "action_mask": self._action_encoder.build_legal_mask(legal_actions),
            "legal_action_indices": self._action_encoder.get_legal_action_indices(legal_actions),
            "step_count": state.step_count,
            "scores": {p.value: s for p, s in self._match.scores.items()},
        }

        if state.is_finished:
            result = self._match.results[-1]
            info["winner"] = result.winner.value
            info["points"] = result.points
            info["uncalled_uno"] = result.uncalled_uno

        return info

    def render(self) -> Optional[str]:
        """渲染环境"""
        if self.render_mode in ("ansi", "human"):
            return self._render_text()
        return None

    def _render_text(self) -> str:
        state = self.state
        lines = []
        lines.append("=" * 50)
        lines.append(f"Phase: {state.phase.value}")
        lines.append(f"Current Player: {state.current_player.value}")
        lines.append(f"Top: {card_to_str(state.current_card)} (color {state.current_color.value})")
        if state.draw_stack:
            lines.append(f"Draw stack: +{state.draw_stack}")

        for player in PLAY_ORDER:
            hand = state.get_hand(player)
            lines.append(f"{player.value}: {cards_to_str(hand)} ({len(hand)})")

        if state.is_finished:
            lines.append(f"Winner: {state.winner.value}")

        lines.append("=" * 50)

        output = "\n".join(lines)
        if self.render_mode == "human":
            print(output)
        return output

    def close(self):
        """关闭环境"""
        if self._match is not None:
            self._match.close()

    @property
    def state(self) -> Optional[MatchState]:
        """当前状态 (用于调试)"""
        return self._match.state if self._match is not None else None

    @property
    def match(self) -> Optional[Match]:
        return self._match

    def get_legal_actions(self) -> List[Action]:
        """智能体当前的合法动作"""
        if self.state is None:
            return []
        return self._action_encoder.legal_actions(self.state, Player.HUMAN)

    def sample_action(self) -> int:
        """随机采样一个合法动作的索引"""
        indices = self._action_encoder.get_legal_action_indices(self.get_legal_actions())
        if not indices:
            return 0
        return int(self.np_random.choice(indices))


def make_env(env_id: str = "Uno-v1", **kwargs) -> UnoEnv:
    """
    工厂函数: 创建环境

    Args:
        env_id: 环境 ID
        **kwargs: 环境参数

    Returns:
        UnoEnv 实例
    """
    return UnoEnv(**kwargs)
