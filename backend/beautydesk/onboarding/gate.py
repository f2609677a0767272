"""Onboarding-status gate.

Decides, per navigation, whether the onboarding wizard must be shown and at
which step to resume:

  1. public paths, paths outside the gated set and non-admin users: skip
  2. completion flag set (local store or platform setting): hidden
  3. count outlets, users, services, staff; the first empty collection, in
     that order, is the resume step
  4. everything present: mark onboarding complete locally and on the
     platform so later checks short-circuit

A failed count leaves the wizard hidden.
"""

import asyncio
import logging
from datetime import datetime, timezone

from beautydesk.config import settings
from beautydesk.errors import ConsoleError
from beautydesk.onboarding.store import OnboardingStore
from beautydesk.platform.client import ONBOARDING_COLLECTIONS, PlatformClient
from beautydesk.schemas.auth import SessionUser
from beautydesk.schemas.onboarding import GateDecision, OnboardingStatus

logger = logging.getLogger("beautydesk.gate")

ADMIN_ROLES = ("admin", "tenant_admin", "owner")


def resume_step(counts: list[int]) -> int | None:
    """1-based index of the first empty collection, or None when all have records."""
    for index, count in enumerate(counts, start=1):
        if count == 0:
            return index
    return None


def _normalise(path: str) -> str:
    return path.rstrip("/") or "/"


class OnboardingGate:

    def __init__(
        self,
        store: OnboardingStore,
        platform: PlatformClient,
        public_paths: list[str] | None = None,
        gate_paths: list[str] | None = None,
    ):
        self.store = store
        self.platform = platform
        self.public_paths = {_normalise(p) for p in (public_paths or settings.public_path_list)}
        self.gate_paths = {_normalise(p) for p in (gate_paths or settings.gate_path_list)}

    async def _remote_completed(self) -> bool:
        try:
            status = await self.platform.get_onboarding_status()
        except ConsoleError as e:
            logger.debug(f"Onboarding status unavailable: {e.message}")
            return False
        return OnboardingStatus.model_validate(status or {}).operationalOnboardingCompleted

    async def _mark_complete(self) -> None:
        try:
            await self.store.mark_completed()
        except ConsoleError as e:
            logger.warning(f"Failed to persist onboarding completion: {e.message}")
        try:
            await self.platform.set_onboarding_status(
                True, datetime.now(timezone.utc).isoformat()
            )
        except ConsoleError as e:
            logger.warning(f"Failed to mark onboarding complete on the platform: {e.message}")

    async def evaluate(self, path: str, user: SessionUser | None) -> GateDecision:
        path = _normalise(path)
        if path in self.public_paths:
            return GateDecision(show_wizard=False, reason="public_path")
        if path not in self.gate_paths:
            return GateDecision(show_wizard=False, reason="ungated_path")
        if user is None or user.role not in ADMIN_ROLES:
            return GateDecision(show_wizard=False, reason="not_admin")

        if self.store.progress.is_completed or await self._remote_completed():
            logger.debug("Onboarding already completed")
            return GateDecision(show_wizard=False, reason="completed")

        try:
            counts = await asyncio.gather(
                *(self.platform.count(c) for c in ONBOARDING_COLLECTIONS)
            )
        except ConsoleError as e:
            logger.error(f"Failed to check onboarding status: {e.message}")
            return GateDecision(show_wizard=False, reason="count_failed")

        step = resume_step(list(counts))
        logger.debug(f"Onboarding counts={dict(zip(ONBOARDING_COLLECTIONS, counts))} step={step}")

        if step is None:
            await self._mark_complete()
            return GateDecision(show_wizard=False, reason="auto_completed")

        await self.store.clear_completion()
        return GateDecision(show_wizard=True, start_step=step, reason=f"missing_{ONBOARDING_COLLECTIONS[step - 1]}")
