#!/usr/bin/env python3
"""
评估脚本

Usage:
    python scripts/evaluate.py --agent rule --games 100 --difficulty hard
    python scripts/evaluate.py --sweep --games 50 --workers 4
"""
import argparse
import logging
import sys
from pathlib import Path
import json

# 添加项目根目录到路径
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from engine import MatchConfig
from env import UnoEnv
from evaluation import (
    Evaluator,
    RandomAgent,
    RuleBasedAgent,
    Arena,
    ParallelArena,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def parse_args():
    parser = argparse.ArgumentParser(description="UNO Evaluation")

    # 模式
    parser.add_argument("--sweep", action="store_true", help="Play every agent against every difficulty")

    # 评估参数
    parser.add_argument(
        "--agent",
        type=str,
        default="rule",
        choices=["random", "rule"],
        help="Agent in the player seat",
    )
    parser.add_argument("--games", type=int, default=100, help="Number of games")
    parser.add_argument(
        "--difficulty",
        type=str,
        default="medium",
        choices=["easy", "medium", "hard"],
        help="AI difficulty",
    )
    parser.add_argument("--config", type=str, help="JSON file with MatchConfig fields")

    # 其他
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--workers", type=int, default=1, help="Worker threads for --sweep")
    parser.add_argument("--output", type=str, help="Output file for results")
    parser.add_argument("--verbose", action="store_true", help="Verbose output")

    return parser.parse_args()


def load_config(args) -> MatchConfig:
    """读取配置，命令行参数优先"""
    data = {}
    if args.config:
        with open(args.config) as f:
            data = json.load(f)
    data["difficulty"] = args.difficulty
    if args.seed is not None:
        data["seed"] = args.seed
    return MatchConfig.from_dict(data)


def create_agent(name: str, seed=None):
    if name == "rule":
        return RuleBasedAgent("rule")
    return RandomAgent("random", seed=seed)


def evaluate_single(args):
    """评估单个智能体"""
    config = load_config(args)
    agent = create_agent(args.agent, args.seed)
    logger.info(f"Evaluating {agent.name} against {config.difficulty} AI for {args.games} games")

    evaluator = Evaluator(env_fn=lambda: UnoEnv(config=config))
    result = evaluator.evaluate(agent, n_games=args.games, verbose=args.verbose)

    logger.info("=" * 50)
    logger.info("Evaluation Results")
    logger.info("=" * 50)
    logger.info(f"Win Rate: {result.win_rate:.2%} ±{result.win_rate_ci:.2%}")
    logger.info(f"Avg Reward: {result.avg_reward:.3f}")
    logger.info(f"Avg Length: {result.avg_length:.1f}")
    logger.info(f"Avg Points Won: {result.avg_points_won:.1f}")
    logger.info(f"Avg Points Lost: {result.avg_points_lost:.1f}")
    logger.info(f"Uncalled UNO Rate: {result.uncalled_uno_rate:.2%}")
    logger.info("=" * 50)

    if args.output:
        with open(args.output, "w") as f:
            json.dump({
                "agent": agent.name,
                "difficulty": config.difficulty,
                "win_rate": result.win_rate,
                "win_rate_ci": result.win_rate_ci,
                "avg_reward": result.avg_reward,
                "avg_length": result.avg_length,
                "avg_points_won": result.avg_points_won,
                "avg_points_lost": result.avg_points_lost,
                "games_played": result.games_played,
            }, f, indent=2)

    return result


def run_sweep(args):
    """所有智能体对所有难度"""
    config = load_config(args)
    agents = [RandomAgent("random", seed=args.seed), RuleBasedAgent("rule")]

    if args.workers > 1:
        arena = ParallelArena(config, n_workers=args.workers)
    else:
        arena = Arena(config)

    result = arena.difficulty_sweep(agents, games_per_difficulty=args.games)

    logger.info("=" * 50)
    for line in repr(result).splitlines():
        logger.info(line)
    logger.info("=" * 50)

    ranking = result.get_ranking()
    for i, (name, win_rate) in enumerate(ranking):
        logger.info(f"{i+1}. {name}: {win_rate:.2%}")

    if args.output:
        with open(args.output, "w") as f:
            json.dump({
                "rankings": ranking,
                "total_games": result.total_games,
                "standings": {
                    f"{agent}/{difficulty}": stats
                    for (agent, difficulty), stats in result.standings.items()
                },
            }, f, indent=2)

    return result


def main():
    args = parse_args()

    if args.sweep:
        run_sweep(args)
    else:
        evaluate_single(args)


if __name__ == "__main__":
    main()
