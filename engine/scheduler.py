"""
任务队列 (虚拟时钟)

单线程协作式调度: 延迟动作按 (到期时间, 提交顺序) 执行。
每个任务带一个 guard，执行前重新校验前提，失效的任务直接跳过。
没有取消操作。
"""
from dataclasses import dataclass, field
from typing import Callable, List, Optional
import heapq
import logging

logger = logging.getLogger(__name__)


@dataclass(order=True)
class ScheduledTask:
    """
    延迟任务

    Attributes:
        due: 到期时间
        seq: 提交序号 (同一时间按提交顺序执行)
        name: 任务名
        action: 要执行的动作
        guard: 执行前的前提校验，返回 False 时跳过
    """
    due: float
    seq: int
    name: str = field(compare=False)
    action: Callable[[], None] = field(compare=False, repr=False)
    guard: Optional[Callable[[], bool]] = field(default=None, compare=False, repr=False)

    def is_valid(self) -> bool:
        return self.guard is None or self.guard()


class TaskQueue:
    """
    确定性任务队列

    测试中通过 advance() / run_until_idle() 控制时间推进
    """

    def __init__(self):
        self.now: float = 0.0
        self._heap: List[ScheduledTask] = []
        self._seq = 0
        self.executed = 0
        self.skipped = 0

    def schedule(
        self,
        delay: float,
        name: str,
        action: Callable[[], None],
        guard: Optional[Callable[[], bool]] = None,
    ) -> ScheduledTask:
        """
        提交延迟任务

        Args:
            delay: 延迟 (>= 0)
            name: 任务名
            action: 动作
            guard: 前提校验

        Returns:
            任务
        """
        if delay < 0:
            raise ValueError(f"Delay must be non-negative, got {delay}")

        task = ScheduledTask(
            due=self.now + delay,
            seq=self._seq,
            name=name,
            action=action,
            guard=guard,
        )
        self._seq += 1
        heapq.heappush(self._heap, task)
        return task

    def __len__(self) -> int:
        return len(self._heap)

    def pending(self, name: Optional[str] = None) -> List[ScheduledTask]:
        """按执行顺序列出待执行任务"""
        tasks = sorted(self._heap)
        if name is not None:
            tasks = [t for t in tasks if t.name == name]
        return tasks

    @property
    def next_due(self) -> Optional[float]:
        return self._heap[0].due if self._heap else None

    def run_next(self) -> bool:
        """
        执行下一个任务 (时钟推进到它的到期时间)

        Returns:
            是否还有任务被取出
        """
        if not self._heap:
            return False

        task = heapq.heappop(self._heap)
        self.now = max(self.now, task.due)

        if not task.is_valid():
            self.skipped += 1
            logger.debug(f"Skipped stale task {task.name} at t={self.now:.2f}")
            return True

        self.executed += 1
        task.action()
        return True

    def advance(self, dt: float) -> int:
        """
        时钟前进 dt，执行期间到期的任务 (包括执行中新提交且到期的任务)

        Returns:
            取出的任务数
        """
        target = self.now + dt
        count = 0
        while self._heap and self._heap[0].due <= target:
            self.run_next()
            count += 1
        self.now = target
        return count

    def run_until_idle(self, max_tasks: int = 100_000) -> int:
        """
        执行所有任务直到队列为空

        Args:
            max_tasks: 防止死循环的上限

        Returns:
            取出的任务数
        """
        count = 0
        while self._heap:
            if count >= max_tasks:
                raise RuntimeError(f"Task queue did not settle after {max_tasks} tasks")
            self.run_next()
            count += 1
        return count
