"""Distributed participant thread driving one party's DVSS session."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, List

from cryptography.exceptions import InvalidTag

from crypto_manager import CryptoManager
from data_models import (
    CommitmentBroadcast,
    Complaint,
    DualShare,
    DVSSConfig,
    EncryptedSharePackage,
    PerformanceStats,
)
from encoding import dual_share_from_dict, dual_share_to_dict
from errors import EncodingError, ProtocolAborted, SecretSharingError
from network_simulator import COMMITMENT, COMPLAINT, RESPONSE, SHARE, NetworkSimulator
from pedersen import PedersenCommitter
from pedersen_dvss import DVSSOutcome, DVSSSession
from secure_rng import SecureRandom

logger = logging.getLogger(__name__)

SessionFactory = Callable[[int, DVSSConfig, PedersenCommitter, object], DVSSSession]


class DistributedParticipant(threading.Thread):
    """分布式参与者 / Distributed participant running the DVSS protocol in its own thread.

    The participant owns its session, its keys and its mailbox; the only
    thing it shares with other participants is the network.
    """

    def __init__(
        self,
        participant_id: int,
        config: DVSSConfig,
        network: NetworkSimulator,
        committer: PedersenCommitter,
        rng=None,
        session_factory: SessionFactory = DVSSSession,
        secret: int | None = None,
    ) -> None:
        super().__init__(name=f"dvss-participant-{participant_id}")
        self.participant_id = participant_id
        self.config = config
        self.network = network
        self.committer = committer
        self.group = committer.group
        self.rng = rng or SecureRandom(f"participant-{participant_id}")
        self.session = session_factory(participant_id, config, committer, self.rng)
        self.initial_secret = secret

        # 投诉相关
        self.complaints_sent: List[Complaint] = []
        self.complaints_received: List[Complaint] = []

        self.performance_stats: List[PerformanceStats] = []
        self.outcome: DVSSOutcome | None = None
        self.error: Exception | None = None

        self.signing_private_key, self.signing_public_key = CryptoManager.generate_signature_keypair()
        self.kem_private_key, self.kem_public_key = CryptoManager.generate_kem_keypair()

        self.network.register_participant(
            self.participant_id,
            self.signing_public_key,
            self.kem_public_key,
        )

    def run(self) -> None:
        """参与者主流程 / Main thread routine for a participant."""
        try:
            self.outcome = self.run_protocol()
        except ProtocolAborted as exc:
            self.error = exc
            logger.error("[Participant %d] Protocol aborted: %s", self.participant_id, exc)
        except SecretSharingError as exc:
            self.error = exc
            logger.error("[Participant %d] Protocol failed: %s", self.participant_id, exc)
        except Exception as exc:
            self.error = exc
            logger.exception("[Participant %d] Unexpected error", self.participant_id)

    def run_protocol(self) -> DVSSOutcome:
        # verification may spend one phase_timeout on each of its two receives
        timeout = 3 * self.config.phase_timeout

        self._timed("Init", self.generate_contribution)
        self._timed("Distribution", self.distribute)
        self._sync("distribution", timeout)

        self._timed("Verification", self.receive_and_verify)
        self._sync("verification", timeout)

        self._timed("Resolution", self.answer_complaints)
        self._sync("resolution", timeout)
        self._timed("Resolution", self.collect_responses)

        self._timed("Qualification", self.session.qualify)
        return self._timed("Combination", self.session.combine)

    # —— 各阶段 / phases ——

    def generate_contribution(self) -> Dict[str, int]:
        self.session.initialize(self.initial_secret)
        logger.info("[Participant %d] Generated contribution and commitment", self.participant_id)
        return {"多项式生成 (秘密+盲化)": 2, "承诺计算 (g^a·h^b)": self.config.t + 1}

    def distribute(self) -> Dict[str, int]:
        """广播承诺并加密发送份额 / Broadcast the commitment, send encrypted dual-shares."""
        commitment, outgoing = self.session.distribute()

        broadcast = CommitmentBroadcast(dealer_id=self.participant_id, commitment=commitment)
        broadcast.signature = CryptoManager.sign_message(
            CryptoManager.serialize_commitment(broadcast, self.group), self.signing_private_key
        )
        self.network.broadcast(self.participant_id, COMMITMENT, broadcast)

        for receiver_id, share in sorted(outgoing.items()):
            self.network.send(self.participant_id, receiver_id, SHARE, self._seal_share(receiver_id, share))

        logger.info(
            "[Participant %d] Broadcast commitment and sent %d encrypted shares",
            self.participant_id,
            len(outgoing),
        )
        return {"发送加密份额 (KEM+AES-GCM)": len(outgoing), "广播承诺": 1, "Ed25519签名": len(outgoing) * 2 + 1}

    def receive_and_verify(self) -> Dict[str, int]:
        """接收并验证其他参与者的份额 / Receive shares and commitments, then verify."""
        others = self.config.n - 1
        timeout = self.config.phase_timeout

        commitments = self.network.receive(self.participant_id, COMMITMENT, expected_count=self.config.n, timeout=timeout)
        for sender_id, broadcast in commitments:
            if sender_id == self.participant_id:
                continue
            if not self._check_commitment_signature(sender_id, broadcast):
                logger.warning("[Participant %d] Bad signature on commitment from %d", self.participant_id, sender_id)
                continue
            self.session.receive_commitment(sender_id, broadcast.commitment)

        packages = self.network.receive(self.participant_id, SHARE, expected_count=others, timeout=timeout)
        decrypted = 0
        for sender_id, package in packages:
            share = self._open_share(sender_id, package)
            if share is not None:
                self.session.receive_share(sender_id, share)
                decrypted += 1

        if not self.session.has_required_inputs():
            logger.warning("[Participant %d] Some distribution messages never arrived", self.participant_id)

        complaints = self.session.verify()
        for complaint in complaints:
            complaint.signature = CryptoManager.sign_message(
                CryptoManager.serialize_complaint(complaint), self.signing_private_key
            )
            self.network.broadcast(self.participant_id, COMPLAINT, complaint)
            self.complaints_sent.append(complaint)
            logger.info(
                "[Participant %d] Broadcasting complaint against Participant %d",
                self.participant_id,
                complaint.accused_id,
            )

        logger.info(
            "[Participant %d] Verification complete: %d valid, %d complaints (out of %d)",
            self.participant_id,
            others - len(complaints),
            len(complaints),
            others,
        )
        return {
            "接收承诺": len(commitments),
            "AES-GCM解密操作": decrypted,
            "份额验证 (Pedersen)": others,
            "广播投诉": len(complaints),
        }

    def answer_complaints(self) -> Dict[str, int]:
        """记录投诉并公开应答 / Record all complaints, answer those against us in the clear."""
        received = self.network.receive(self.participant_id, COMPLAINT, timeout=self.config.phase_timeout)
        for sender_id, complaint in received:
            if complaint.accuser_id != sender_id or not CryptoManager.verify_signature(
                complaint.signature,
                CryptoManager.serialize_complaint(complaint),
                self.network.get_signing_public_key(sender_id),
            ):
                logger.warning("[Participant %d] Unverifiable complaint from %d ignored", self.participant_id, sender_id)
                continue
            self.complaints_received.append(complaint)
            self.session.record_complaint(complaint)

        responses = self.session.complaint_responses()
        for response in responses:
            response.signature = CryptoManager.sign_message(
                CryptoManager.serialize_response(response, self.group), self.signing_private_key
            )
            self.network.broadcast(self.participant_id, RESPONSE, response)
        if responses:
            logger.info("[Participant %d] Answered %d complaint(s) in the clear", self.participant_id, len(responses))
        return {"接收投诉": len(received), "公开应答": len(responses)}

    def collect_responses(self) -> Dict[str, int]:
        received = self.network.receive(self.participant_id, RESPONSE, timeout=self.config.phase_timeout)
        accepted = 0
        for sender_id, response in received:
            if response.dealer_id != sender_id or not CryptoManager.verify_signature(
                response.signature,
                CryptoManager.serialize_response(response, self.group),
                self.network.get_signing_public_key(sender_id),
            ):
                logger.warning("[Participant %d] Unverifiable response from %d ignored", self.participant_id, sender_id)
                continue
            self.session.receive_response(response)
            accepted += 1

        for event in self.session.resolve():
            logger.info("[Participant %d] %s", self.participant_id, event)
        return {"接收应答": accepted}

    # —— 工具方法 / helpers ——

    def _timed(self, phase_name: str, step: Callable):
        start_time = time.time()
        result = step()
        operations = result if isinstance(result, dict) else {}
        self.performance_stats.append(PerformanceStats(phase_name, time.time() - start_time, operations))
        return result

    def _sync(self, phase: str, timeout: float) -> None:
        if not self.network.barrier(phase, timeout):
            logger.warning("[Participant %d] Proceeding past '%s' without all parties", self.participant_id, phase)

    def _seal_share(self, receiver_id: int, share: DualShare) -> EncryptedSharePackage:
        context = CryptoManager.share_context(self.participant_id, receiver_id)
        receiver_kem_public = self.network.get_kem_public_key(receiver_id)
        symmetric_key, kem_public = CryptoManager.encapsulate_key(receiver_kem_public, context)
        encrypted_data, nonce = CryptoManager.encrypt_data(dual_share_to_dict(share, self.group), symmetric_key)

        key_binding = CryptoManager.serialize_key_binding(self.participant_id, receiver_id, symmetric_key)
        package = EncryptedSharePackage(
            sender_id=self.participant_id,
            receiver_id=receiver_id,
            encrypted_data=encrypted_data,
            nonce=nonce,
            kem_public=kem_public,
            key_signature=CryptoManager.sign_message(key_binding, self.signing_private_key),
            signature=b"",
        )
        package.signature = CryptoManager.sign_message(
            CryptoManager.serialize_share_package(package), self.signing_private_key
        )
        return package

    def _open_share(self, sender_id: int, package: EncryptedSharePackage) -> DualShare | None:
        """Decrypt and authenticate a share package; None means treat it as missing."""
        if package.sender_id != sender_id or package.receiver_id != self.participant_id:
            logger.warning("[Participant %d] Misaddressed share package from %d", self.participant_id, sender_id)
            return None
        sender_public_key = self.network.get_signing_public_key(sender_id)
        if not CryptoManager.verify_signature(
            package.signature, CryptoManager.serialize_share_package(package), sender_public_key
        ):
            logger.warning("[Participant %d] ✗ Invalid signature on share from %d", self.participant_id, sender_id)
            return None

        context = CryptoManager.share_context(sender_id, self.participant_id)
        try:
            symmetric_key = CryptoManager.decapsulate_key(package.kem_public, self.kem_private_key, context)
        except ValueError:
            logger.warning("[Participant %d] Bad KEM public key from %d", self.participant_id, sender_id)
            return None
        key_binding = CryptoManager.serialize_key_binding(sender_id, self.participant_id, symmetric_key)
        if not CryptoManager.verify_signature(package.key_signature, key_binding, sender_public_key):
            logger.warning("[Participant %d] ✗ Invalid key signature from %d", self.participant_id, sender_id)
            return None

        try:
            payload = CryptoManager.decrypt_data(package.encrypted_data, package.nonce, symmetric_key)
            return dual_share_from_dict(payload, self.group)
        except (EncodingError, InvalidTag, ValueError) as exc:
            logger.warning("[Participant %d] Failed to open share from %d: %s", self.participant_id, sender_id, exc)
            return None

    def _check_commitment_signature(self, sender_id: int, broadcast: CommitmentBroadcast) -> bool:
        if broadcast.dealer_id != sender_id:
            return False
        return CryptoManager.verify_signature(
            broadcast.signature,
            CryptoManager.serialize_commitment(broadcast, self.group),
            self.network.get_signing_public_key(sender_id),
        )
