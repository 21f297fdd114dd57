#!/usr/bin/env python3
"""
对战脚本

Usage:
    python scripts/play.py --difficulty hard          # 与 AI 对战
    python scripts/play.py --mode watch --agent rule  # 观看规则智能体与 AI 对战
"""
import argparse
import logging
import sys
from pathlib import Path
import time

# 添加项目根目录到路径
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from core.cards import cards_to_str, card_to_str
from core.errors import InvalidMove
from core.state import MatchSnapshot, Phase, Player
from engine import Match, MatchConfig
from env import UnoEnv, get_action_encoder
from evaluation import RandomAgent, RuleBasedAgent

logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
)
logger = logging.getLogger(__name__)

HELP = """
Commands:
    <card>          play a card, e.g. R5, GS (skip), BR (reverse), Y+2, W, W+4
    <card> uno      play a card and call UNO right away
    draw            draw a card (or take the whole draw stack)
    pass            keep the card you just drew
    uno             call UNO
    color <c>       choose a color for your wild card (red/yellow/green/blue or r/y/g/b)
    help            show this help
    q               quit
"""


def parse_args():
    parser = argparse.ArgumentParser(description="UNO Play")

    parser.add_argument(
        "--mode",
        type=str,
        default="play",
        choices=["play", "watch"],
        help="Mode: play against the AI or watch an agent play",
    )
    parser.add_argument(
        "--difficulty",
        type=str,
        default="medium",
        choices=["easy", "medium", "hard"],
        help="AI difficulty",
    )
    parser.add_argument(
        "--personality",
        type=str,
        default="balanced",
        choices=["aggressive", "defensive", "balanced"],
        help="Initial AI personality",
    )
    parser.add_argument(
        "--agent",
        type=str,
        default="rule",
        choices=["random", "rule"],
        help="Agent in the player seat (watch mode)",
    )
    parser.add_argument("--delay", type=float, default=0.5, help="Real seconds per AI step")
    parser.add_argument("--rounds", type=int, default=1, help="Number of rounds")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--verbose", action="store_true", help="Show engine logs")

    return parser.parse_args()


def print_snapshot(snapshot: MatchSnapshot):
    """打印对局状态"""
    print("\n" + "=" * 60)
    print(
        f"Score  you {snapshot.get_score(Player.HUMAN)} : {snapshot.get_score(Player.AI)} AI"
        f"    deck {snapshot.deck_size}"
    )
    print(f"Top card: {card_to_str(snapshot.discard_top)}  (color {snapshot.current_color.value})")
    if snapshot.draw_stack:
        print(f"Draw stack: +{snapshot.draw_stack}")
    print(f"AI has {snapshot.ai_hand_size} card(s)")
    print(f"Your hand ({len(snapshot.player_hand)}): {cards_to_str(snapshot.player_hand)}")
    if snapshot.drawn_card is not None:
        print(f"You drew {card_to_str(snapshot.drawn_card)}: play it or pass")
    print("=" * 60)


class MessagePrinter:
    """打印引擎新产生的消息"""

    def __init__(self, match: Match):
        self.match = match
        self.seen = 0

    def flush(self):
        for message in self.match.messages[self.seen:]:
            print(f"  > {message}")
        self.seen = len(self.match.messages)


def run_ai(match: Match, printer: MessagePrinter, delay: float):
    """推进任务队列直到轮到玩家，每步之间真实等待 delay 秒"""
    while True:
        snapshot = match.snapshot()
        if snapshot.phase == Phase.ROUND_OVER or snapshot.current_player is Player.HUMAN:
            break
        if not match.scheduler.run_next():
            break
        printer.flush()
        time.sleep(delay)


def handle_command(match: Match, command: str) -> bool:
    """
    执行玩家命令

    Returns:
        是否退出
    """
    tokens = command.strip().split()
    if not tokens:
        return False

    head = tokens[0].lower()
    if head == "q":
        return True
    if head == "help":
        print(HELP)
    elif head == "draw":
        match.draw_card()
    elif head == "pass":
        match.pass_turn()
    elif head == "uno":
        match.call_uno()
    elif head == "color" and len(tokens) == 2:
        match.choose_color(tokens[1])
    else:
        match.play_card(tokens[0])
        if len(tokens) > 1 and tokens[1].lower() == "uno":
            match.call_uno()
    return False


def play_game(args):
    """与 AI 对战"""
    config = MatchConfig(
        difficulty=args.difficulty,
        personality=args.personality,
        seed=args.seed,
    )
    match = Match(config)
    printer = MessagePrinter(match)
    print(HELP)

    try:
        for _ in range(args.rounds):
            match.start_round()
            printer.flush()

            while not match.is_round_over:
                run_ai(match, printer, args.delay)
                if match.is_round_over:
                    break

                snapshot = match.snapshot()
                print_snapshot(snapshot)
                if snapshot.phase == Phase.AWAITING_COLOR_CHOICE:
                    print("Choose a color: color <red|yellow|green|blue>")

                started = time.monotonic()
                command = input("\n> ")
                # 等待输入的真实时间计入虚拟时钟，UNO 宽限期照常到期
                match.advance(time.monotonic() - started)
                printer.flush()
                if match.is_round_over:
                    break

                try:
                    if handle_command(match, command):
                        print("Bye!")
                        return
                except InvalidMove as e:
                    print(f"  ! {e}")
                printer.flush()

            printer.flush()

        summary = match.summary()
        print("\n" + "=" * 60)
        print(f"Final score: you {summary['scores']['player']} : {summary['scores']['ai']} AI")
        print(f"AI personality: {summary['ai']['personality']}, win rate {summary['ai']['win_rate']:.2f}")
        print("=" * 60)
    finally:
        match.close()


def watch_game(args):
    """观看智能体与 AI 对战"""
    config = MatchConfig(
        difficulty=args.difficulty,
        personality=args.personality,
        seed=args.seed,
    )
    env = UnoEnv(config=config, render_mode="ansi")
    agent = RuleBasedAgent() if args.agent == "rule" else RandomAgent(seed=args.seed)
    encoder = get_action_encoder()

    try:
        for round_idx in range(args.rounds):
            print(f"\n{'='*60}")
            print(f"Round {round_idx + 1}/{args.rounds}")
            print("=" * 60)

            obs, info = env.reset()
            done = False
            step = 0

            while not done:
                print(env.render())
                action = agent.act(obs, info["legal_action_indices"])
                print(f"\n{agent.name}: {encoder.decode(action)}")

                obs, reward, terminated, truncated, info = env.step(action)
                done = terminated or truncated
                step += 1
                time.sleep(args.delay)

            print("\n" + "=" * 60)
            print(f"Round over! Winner: {info.get('winner', 'unknown')} (+{info.get('points', 0)})")
            print(f"Steps: {step}")
            print("=" * 60)
    finally:
        env.close()


def main():
    args = parse_args()
    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    print("=" * 60)
    print("UNO Master")
    print("=" * 60)

    if args.mode == "watch":
        watch_game(args)
    else:
        play_game(args)


if __name__ == "__main__":
    main()
