"""
对战竞技场

让智能体与各难度的 AI 对战并汇总结果
"""
from typing import Dict, List, Optional, Sequence, Tuple
import copy
from dataclasses import dataclass, field
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
import numpy as np
import logging

from ai.personality import Difficulty
from engine.config import MatchConfig
from env.uno_env import UnoEnv

from .evaluator import Agent, win_rate_confidence

logger = logging.getLogger(__name__)


@dataclass
class GameRecord:
    """一局对战记录"""
    agent: str
    difficulty: str
    winner: str
    points: int
    length: int
    uncalled_uno: bool = False
    ai_personality: Optional[str] = None


@dataclass
class SweepResult:
    """难度扫描结果"""
    standings: Dict[Tuple[str, str], Dict[str, float]]
    total_games: int
    records: List[GameRecord] = field(default_factory=list, repr=False)

    def get_ranking(self) -> List[Tuple[str, float]]:
        """按总胜率排名"""
        totals: Dict[str, List[float]] = defaultdict(lambda: [0.0, 0.0])
        for (agent, _), stats in self.standings.items():
            totals[agent][0] += stats["wins"]
            totals[agent][1] += stats["games"]
        return sorted(
            [(name, wins / games if games else 0.0) for name, (wins, games) in totals.items()],
            key=lambda x: x[1],
            reverse=True,
        )

    def __repr__(self) -> str:
        lines = [f"Difficulty Sweep ({self.total_games} games):"]
        for (agent, difficulty), stats in sorted(self.standings.items()):
            lines.append(
                f"  {agent} vs {difficulty}: {stats['win_rate']:.2%} "
                f"±{stats['win_rate_ci']:.2%} ({int(stats['games'])} games, "
                f"avg length {stats['avg_length']:.1f})"
            )
        return "\n".join(lines)


class Arena:
    """
    对战竞技场

    每个难度使用独立的对局 (分数、AI 性格在同一难度的多局间延续)
    """

    def __init__(self, config: Optional[MatchConfig] = None, max_steps: int = 500):
        """
        Args:
            config: 基础配置 (difficulty 会被覆盖)
            max_steps: 单局最大步数
        """
        self.config = config or MatchConfig()
        self.max_steps = max_steps

    def make_env(self, difficulty: str, seed: Optional[int] = None) -> UnoEnv:
        config = MatchConfig.from_dict({
            **self.config.to_dict(),
            "difficulty": Difficulty(difficulty).value,
            "seed": seed if seed is not None else self.config.seed,
        })
        return UnoEnv(config=config, max_steps=self.max_steps)

    def play_games(
        self,
        agent: Agent,
        difficulty: str,
        n_games: int = 1,
        seed: Optional[int] = None,
    ) -> List[GameRecord]:
        """
        进行对局

        Args:
            agent: 智能体
            difficulty: AI 难度
            n_games: 局数
            seed: 随机种子

        Returns:
            对局记录列表
        """
        env = self.make_env(difficulty, seed)
        records = []

        try:
            for _ in range(n_games):
                agent.reset()
                obs, info = env.reset()
                done = False
                length = 0

                while not done:
                    action = agent.act(obs, info["legal_action_indices"])
                    obs, reward, terminated, truncated, info = env.step(action)
                    done = terminated or truncated
                    length += 1

                records.append(GameRecord(
                    agent=agent.name,
                    difficulty=Difficulty(difficulty).value,
                    winner=info.get("winner", "unknown"),
                    points=info.get("points", 0),
                    length=length,
                    uncalled_uno=info.get("uncalled_uno", False),
                    ai_personality=env.match.profile.personality.value,
                ))
        finally:
            env.close()

        return records

    def difficulty_sweep(
        self,
        agents: Sequence[Agent],
        games_per_difficulty: int = 10,
        difficulties: Optional[Sequence[str]] = None,
    ) -> SweepResult:
        """
        每个智能体与每个难度各打 games_per_difficulty 局

        每个难度使用智能体的独立副本，随机状态互不影响

        Args:
            agents: 智能体列表
            games_per_difficulty: 每个难度的局数
            difficulties: 难度列表 (默认全部)

        Returns:
            扫描结果
        """
        difficulties = difficulties or [d.value for d in Difficulty]
        all_records: List[GameRecord] = []

        for agent in agents:
            for i, difficulty in enumerate(difficulties):
                seed = None if self.config.seed is None else self.config.seed + i
                records = self.play_games(copy.deepcopy(agent), difficulty, games_per_difficulty, seed)
                all_records.extend(records)
                logger.info(
                    f"{agent.name} vs {difficulty}: "
                    f"{sum(r.winner == 'player' for r in records)}/{len(records)} wins"
                )

        return SweepResult(
            standings=self._aggregate(all_records),
            total_games=len(all_records),
            records=all_records,
        )

    @staticmethod
    def _aggregate(records: List[GameRecord]) -> Dict[Tuple[str, str], Dict[str, float]]:
        grouped: Dict[Tuple[str, str], List[GameRecord]] = defaultdict(list)
        for record in records:
            grouped[(record.agent, record.difficulty)].append(record)

        standings = {}
        for key, group in grouped.items():
            wins = sum(1 for r in group if r.winner == "player")
            games = len(group)
            lengths = np.array([r.length for r in group], dtype=np.float32)
            standings[key] = {
                "games": float(games),
                "wins": float(wins),
                "win_rate": wins / games if games else 0.0,
                "win_rate_ci": win_rate_confidence(wins, games),
                "avg_length": float(lengths.mean()) if games else 0.0,
                "avg_points": float(np.mean([r.points for r in group])) if games else 0.0,
            }
        return standings


class ParallelArena(Arena):
    """
    并行对战竞技场

    每个 (智能体, 难度) 组合在独立线程中运行，各自持有独立的环境
    """

    def __init__(self, config: Optional[MatchConfig] = None, max_steps: int = 500, n_workers: int = 4):
        super().__init__(config, max_steps)
        self.n_workers = n_workers

    def difficulty_sweep(
        self,
        agents: Sequence[Agent],
        games_per_difficulty: int = 10,
        difficulties: Optional[Sequence[str]] = None,
    ) -> SweepResult:
        """并行扫描"""
        difficulties = difficulties or [d.value for d in Difficulty]

        all_records: List[GameRecord] = []
        with ThreadPoolExecutor(max_workers=self.n_workers) as executor:
            futures = []
            for agent in agents:
                for i, difficulty in enumerate(difficulties):
                    seed = None if self.config.seed is None else self.config.seed + i
                    futures.append(executor.submit(
                        self.play_games, copy.deepcopy(agent), difficulty, games_per_difficulty, seed,
                    ))
            # 按提交顺序收集，结果与串行版本一致
            for future in futures:
                all_records.extend(future.result())

        return SweepResult(
            standings=self._aggregate(all_records),
            total_games=len(all_records),
            records=all_records,
        )
