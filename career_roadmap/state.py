"""Session state machine: input collection, plan generation, review and chat."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from enum import Enum
from typing import Any, Dict, List, Optional

from career_roadmap.models import ChatMessage, PlanRecord, Profile, Roadmap
from career_roadmap.prompt import (
    CHAT_FALLBACK_REPLY,
    ROADMAP_SYSTEM_PROMPT,
    build_chat_prompt,
    build_mentor_instruction,
    build_plan_prompt,
    welcome_message,
)
from career_roadmap.providers.gemini import GeminiClient, GenerationFailure
from career_roadmap.schema import ParseFailure, parse_roadmap
from career_roadmap.sync import PersistenceError, PlanSubscription, PlanSync

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    COLLECTING_INPUT = "collecting_input"
    GENERATING = "generating"
    REVIEWING = "reviewing"


class ChatStatus(str, Enum):
    IDLE = "idle"
    AWAITING_REPLY = "awaiting_reply"


class PlanSession:
    """Owns the profile, roadmap and chat transcript of one user session.

    All mutation happens on the event loop between awaits, so no locking is
    needed. Results of network calls are checked against the current
    generation / transcript before they are applied; anything that arrives
    after the session moved on is dropped.
    """

    def __init__(self, client: GeminiClient, sync: PlanSync):
        self.client = client
        self.sync = sync

        self.profile = Profile()
        self.roadmap: Optional[Roadmap] = None
        self.transcript: List[ChatMessage] = []
        self.phase = Phase.COLLECTING_INPUT
        self.chat_status = ChatStatus.IDLE
        self.last_error: Optional[str] = None
        self.identity: Optional[str] = None

        self._loaded = asyncio.Event()
        self._bootstrapped = False
        self._subscription: Optional[PlanSubscription] = None
        self._listener: Optional[asyncio.Task] = None
        self._generation_seq = 0
        self._transcript_epoch = 0
        self._closed = False

    @property
    def loading(self) -> bool:
        """True until the first snapshot arrives or we know there is no identity."""
        return not self._loaded.is_set()

    @property
    def record(self) -> PlanRecord:
        return PlanRecord(profile=replace(self.profile), roadmap=self.roadmap)

    def _set_phase(self, phase: Phase) -> None:
        if phase is not self.phase:
            logger.info("Session phase %s -> %s", self.phase.value, phase.value)
            self.phase = phase

    # --- identity & persistence -------------------------------------------

    def attach_identity(self, identity: Optional[str]) -> None:
        """React to the identity becoming available (or going away).

        Must be called on the event loop. Any previous subscription is
        cancelled first.
        """
        if self._closed:
            return
        self._stop_listening()
        self.identity = identity

        if identity is None:
            self._loaded.set()
            return

        self._loaded.clear()
        self._bootstrapped = False
        subscription = self.sync.subscribe(identity)
        self._subscription = subscription
        self._listener = asyncio.create_task(self._listen(subscription))

    async def wait_until_loaded(self, timeout: Optional[float] = None) -> bool:
        try:
            await asyncio.wait_for(self._loaded.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def _listen(self, subscription: PlanSubscription) -> None:
        try:
            async for record in subscription:
                if self._closed or subscription is not self._subscription:
                    break
                self.apply_snapshot(record)
        except PersistenceError as e:
            # Persistence is best effort; keep working on local state
            logger.error("Plan subscription failed: %s", e)
            if subscription is self._subscription:
                self._loaded.set()

    def apply_snapshot(self, record: Optional[PlanRecord]) -> None:
        """Apply a remote snapshot. The first one is the bootstrap delivery."""
        if self._closed:
            return
        bootstrap = not self._bootstrapped
        self._bootstrapped = True
        self._loaded.set()

        if record is None:
            # document absent, first-ever use
            return

        self.profile = replace(record.profile)
        self.roadmap = record.roadmap

        if record.roadmap is None:
            if self.phase is Phase.REVIEWING:
                self._set_phase(Phase.COLLECTING_INPUT)
            return

        # Resume a returning user; later pushes never pull the user out of an edit
        if bootstrap or self.phase is Phase.REVIEWING:
            if bootstrap:
                logger.info("Resuming saved roadmap for %s", self.identity)
            self._set_phase(Phase.REVIEWING)

    def _stop_listening(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    async def close(self) -> None:
        """Tear down: stop the subscription and ignore every later completion."""
        self._closed = True
        self._stop_listening()
        listener, self._listener = self._listener, None
        if listener is not None and not listener.done():
            await listener

    # --- profile & plan ---------------------------------------------------

    def update_profile(self, name: Optional[str] = None, interest: Optional[str] = None,
                       goal: Optional[str] = None) -> bool:
        """Edit profile fields. Only allowed while collecting input."""
        if self._closed or self.phase is not Phase.COLLECTING_INPUT:
            return False
        if name is not None:
            self.profile.name = name
        if interest is not None:
            self.profile.interest = interest
        if goal is not None:
            self.profile.goal = goal
        return True

    def _is_current_generation(self, seq: int) -> bool:
        return not self._closed and seq == self._generation_seq and self.phase is Phase.GENERATING

    def _fail_generation(self, message: str) -> None:
        logger.warning("Plan generation failed: %s", message)
        self.last_error = message
        self._set_phase(Phase.COLLECTING_INPUT)

    async def build_plan(self) -> bool:
        """Generate, parse and save a roadmap for the current profile.

        Returns:
            True if a new roadmap was set. False if the action was a no-op
            (precondition failed, already generating) or generation failed;
            in the latter case last_error says why.
        """
        if self._closed or self.phase is not Phase.COLLECTING_INPUT:
            return False
        if not self.profile.is_complete():
            return False

        self._generation_seq += 1
        seq = self._generation_seq
        profile = replace(self.profile)
        self.last_error = None
        self._set_phase(Phase.GENERATING)

        result = await self.client.generate(
            build_plan_prompt(profile),
            ROADMAP_SYSTEM_PROMPT,
            structured_output=True,
        )

        if not self._is_current_generation(seq):
            logger.info("Ignoring stale plan generation result")
            return False

        if isinstance(result, GenerationFailure):
            self._fail_generation(f"Could not generate a roadmap ({result.kind}): {result.detail}")
            return False

        try:
            roadmap = parse_roadmap(result)
        except ParseFailure as e:
            self._fail_generation(f"Generated roadmap was malformed: {e}")
            return False

        self.profile = profile
        self.roadmap = roadmap
        self._seed_transcript(profile)
        self._set_phase(Phase.REVIEWING)

        if self.identity is not None:
            # A failed save is logged by sync and does not undo the new roadmap
            await self.sync.commit(self.identity, self.record)
        return True

    def edit(self) -> bool:
        """Return to input collection. Roadmap and transcript are kept."""
        if self._closed or self.phase is not Phase.REVIEWING:
            return False
        self._set_phase(Phase.COLLECTING_INPUT)
        return True

    # --- chat -------------------------------------------------------------

    def _seed_transcript(self, profile: Profile) -> None:
        self._transcript_epoch += 1
        self.transcript = [ChatMessage(role="assistant", text=welcome_message(profile))]
        self.chat_status = ChatStatus.IDLE

    async def send_chat(self, text: str) -> bool:
        """Send a chat message about the roadmap.

        Returns:
            False if the message was rejected (not reviewing, blank, or a
            reply is still pending). True once the exchange completed.
        """
        if self._closed or self.phase is not Phase.REVIEWING:
            return False
        if not text or not text.strip():
            return False
        if self.chat_status is ChatStatus.AWAITING_REPLY:
            logger.info("Chat message rejected, a reply is still pending")
            return False

        epoch = self._transcript_epoch
        self.transcript.append(ChatMessage(role="user", text=text))
        self.chat_status = ChatStatus.AWAITING_REPLY

        result = await self.client.generate(
            build_chat_prompt(self.roadmap or [], text),
            build_mentor_instruction(self.profile),
        )

        if self._closed or epoch != self._transcript_epoch:
            logger.info("Dropping chat reply for a replaced transcript")
            return True

        if isinstance(result, GenerationFailure) or not result.strip():
            reply = CHAT_FALLBACK_REPLY
        else:
            reply = result
        self.transcript.append(ChatMessage(role="assistant", text=reply))
        self.chat_status = ChatStatus.IDLE
        return True

    # --- views ------------------------------------------------------------

    def get_history(self) -> List[Dict[str, Any]]:
        return [msg.to_dict() for msg in self.transcript]

    def snapshot(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "chat_status": self.chat_status.value,
            "loading": self.loading,
            "identity": self.identity,
            "last_error": self.last_error,
            "profile": self.profile.to_dict(),
            "roadmap": [step.to_dict() for step in self.roadmap] if self.roadmap is not None else None,
            "transcript": self.get_history(),
        }
