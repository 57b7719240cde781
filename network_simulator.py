"""Thread-safe in-memory network simulator for participant communication."""

from __future__ import annotations

import logging
import threading
import time
from queue import Empty, Queue
from typing import Any, Dict, List, Set, Tuple

from constants import RECEIVE_POLL_INTERVAL

logger = logging.getLogger(__name__)

# 消息类型 / message kinds
SHARE = "share"
COMMITMENT = "commitment"
COMPLAINT = "complaint"
RESPONSE = "response"


class NetworkSimulator:
    """网络模拟器，用于参与者之间的通信 / Simulates authenticated channels between participants.

    Each participant owns a mailbox; messages are (kind, sender_id, payload)
    tuples and payloads are immutable or freshly built per send, so no
    mutable state is shared between participants.
    """

    def __init__(self) -> None:
        self.message_queues: Dict[int, Queue] = {}
        self.lock = threading.Lock()
        self.signing_public_keys: Dict[int, bytes] = {}
        self.kem_public_keys: Dict[int, bytes] = {}
        self._barriers: Dict[str, threading.Barrier] = {}
        self._dropped: Set[Tuple[int, int, str | None]] = set()

    def register_participant(
        self,
        participant_id: int,
        signing_public_key: bytes | None = None,
        kem_public_key: bytes | None = None,
    ) -> None:
        """注册参与者并记录其公钥 / Register participant mailbox and optionally publish public keys."""
        with self.lock:
            if participant_id not in self.message_queues:
                self.message_queues[participant_id] = Queue()
            if signing_public_key is not None and kem_public_key is not None:
                self.signing_public_keys[participant_id] = signing_public_key
                self.kem_public_keys[participant_id] = kem_public_key

    def get_signing_public_key(self, participant_id: int) -> bytes:
        with self.lock:
            return self.signing_public_keys[participant_id]

    def get_kem_public_key(self, participant_id: int) -> bytes:
        with self.lock:
            return self.kem_public_keys[participant_id]

    def drop(self, sender_id: int, receiver_id: int, kind: str | None = None) -> None:
        """丢弃该方向的消息 / Silently lose messages from sender to receiver (all kinds if ``kind`` is None)."""
        with self.lock:
            self._dropped.add((sender_id, receiver_id, kind))

    def _is_dropped(self, sender_id: int, receiver_id: int, kind: str) -> bool:
        return (sender_id, receiver_id, None) in self._dropped or (sender_id, receiver_id, kind) in self._dropped

    def send(self, sender_id: int, receiver_id: int, kind: str, payload: Any) -> None:
        """点对点发送 / Send a message to one participant."""
        with self.lock:
            if self._is_dropped(sender_id, receiver_id, kind):
                logger.debug("Dropped %s from %d to %d", kind, sender_id, receiver_id)
                return
            if receiver_id in self.message_queues:
                self.message_queues[receiver_id].put((kind, sender_id, payload))

    def broadcast(self, sender_id: int, kind: str, payload: Any) -> None:
        """广播消息（包括发送者自己）/ Broadcast to every participant, sender included."""
        with self.lock:
            for participant_id, queue in self.message_queues.items():
                if self._is_dropped(sender_id, participant_id, kind):
                    continue
                queue.put((kind, sender_id, payload))

    def receive(
        self,
        participant_id: int,
        kind: str,
        expected_count: int | None = None,
        timeout: float = 5.0,
    ) -> List[Tuple[int, Any]]:
        """接收指定类型的消息 / Collect (sender_id, payload) pairs of one kind.

        Stops at ``expected_count`` messages, at the timeout, or (when no
        count is given) as soon as the mailbox goes quiet.
        """
        received: List[Tuple[int, Any]] = []
        messages_to_requeue = []
        end_time = time.time() + timeout

        while time.time() < end_time:
            if expected_count is not None and len(received) >= expected_count:
                break
            try:
                msg_kind, sender_id, payload = self.message_queues[participant_id].get(
                    timeout=RECEIVE_POLL_INTERVAL
                )
            except Empty:
                if expected_count is None:
                    break
                continue
            if msg_kind == kind:
                received.append((sender_id, payload))
            else:
                # 其他类型的消息稍后放回队列
                messages_to_requeue.append((msg_kind, sender_id, payload))

        for msg in messages_to_requeue:
            self.message_queues[participant_id].put(msg)
        return received

    def pending(self, participant_id: int, kind: str) -> int:
        """当前邮箱中某类消息的数量 / Number of queued messages of ``kind``."""
        queue = self.message_queues[participant_id]
        with queue.mutex:
            return sum(1 for msg in queue.queue if msg[0] == kind)

    def barrier(self, phase: str, timeout: float) -> bool:
        """阶段同步屏障 / Wait until every registered participant reaches ``phase``.

        Returns False if the barrier timed out or was broken; the caller
        then proceeds and treats whatever is missing as a failure.
        """
        with self.lock:
            barrier = self._barriers.get(phase)
            if barrier is None:
                barrier = threading.Barrier(len(self.message_queues))
                self._barriers[phase] = barrier
        try:
            barrier.wait(timeout)
            return True
        except threading.BrokenBarrierError:
            logger.warning("Barrier for phase '%s' broken or timed out", phase)
            return False
