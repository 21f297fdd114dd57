"""
Engine Layer - 对局引擎

Modules:
    config: 对局配置
    scheduler: 虚拟时钟任务队列
    match: 人机对局
"""
from .config import MatchConfig, EASY, MEDIUM, HARD, INSTANT
from .scheduler import ScheduledTask, TaskQueue
from .match import Match, RoundResult

__all__ = [
    # config
    "MatchConfig",
    "EASY",
    "MEDIUM",
    "HARD",
    "INSTANT",
    # scheduler
    "ScheduledTask",
    "TaskQueue",
    # match
    "Match",
    "RoundResult",
]
