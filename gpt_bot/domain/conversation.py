"""会话状态。

每次请求都会把完整（窗口内）的历史按插入顺序重新发给接口。
用户 prompt 在请求前先乐观追加，调用失败时必须撤销，
保证失败的一轮不会污染后续请求。
"""

from contextlib import contextmanager
from threading import Lock
from typing import Iterable, Iterator, List, Tuple

from gpt_bot.domain.models import Message


class ConversationState:
    """有序、线程安全的消息序列。"""

    def __init__(self, messages: Iterable[Message] = ()):
        self._messages: List[Message] = list(messages)
        self._lock = Lock()

    def append(self, message: Message) -> None:
        with self._lock:
            self._messages.append(message)

    def remove(self, message: Message, first_only: bool = False) -> int:
        """删除 content 完全相同的消息，返回删除条数。"""

        with self._lock:
            if first_only:
                for i, m in enumerate(self._messages):
                    if m.content == message.content:
                        del self._messages[i]
                        return 1
                return 0
            kept = [m for m in self._messages if m.content != message.content]
            removed = len(self._messages) - len(kept)
            self._messages = kept
            return removed

    def snapshot(self) -> Tuple[Message, ...]:
        with self._lock:
            return tuple(self._messages)

    def window(self, limit: int) -> Tuple[Message, ...]:
        """返回最近 limit 条消息（滑动窗口）。"""

        if limit <= 0:
            return ()
        with self._lock:
            return tuple(self._messages[-limit:])

    def clear(self) -> None:
        with self._lock:
            self._messages.clear()

    @contextmanager
    def stage(self, message: Message) -> Iterator[Message]:
        """追加 message；代码块抛出异常时撤销这一条并继续抛出。

        撤销按对象身份定位，而不是按 content，
        这样历史里内容相同的早先消息不会被误删。
        """

        self.append(message)
        try:
            yield message
        except BaseException:
            self._discard(message)
            raise

    def _discard(self, message: Message) -> None:
        with self._lock:
            for i in range(len(self._messages) - 1, -1, -1):
                if self._messages[i] is message:
                    del self._messages[i]
                    return

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.snapshot())
