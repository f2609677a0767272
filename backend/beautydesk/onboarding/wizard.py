"""Onboarding wizard orchestrator.

Walks the operator through Outlet -> Users -> Products -> Staff/Availability.
The cursor lives in the progress store; validity is tracked per step from
each step's `on_valid_change` callback, so a step that was satisfied earlier
stays satisfied when the operator comes back to it.
"""

import inspect
import logging
from functools import partial
from typing import Awaitable, Callable

from beautydesk.errors import NavigationBlocked
from beautydesk.onboarding.steps import STEP_CLASSES, Step
from beautydesk.onboarding.store import OnboardingStore
from beautydesk.platform.client import PlatformClient
from beautydesk.schemas.onboarding import WizardSnapshot, WizardStepInfo
from beautydesk.storage import Storage

logger = logging.getLogger(__name__)

OnComplete = Callable[[], Awaitable[None] | None]


class OnboardingWizard:

    def __init__(
        self,
        store: OnboardingStore,
        platform: PlatformClient,
        storage: Storage,
        initial_step: int | None = None,
        on_complete: OnComplete | None = None,
    ):
        self.store = store
        self.on_complete = on_complete
        self.steps: list[Step] = [cls(store, platform, storage) for cls in STEP_CLASSES]
        self.total_steps = len(self.steps)
        self._validity: dict[int, bool] = {step.number: False for step in self.steps}
        self._completing = False

        if initial_step is not None:
            self.store.progress.current_step = self._clamp(initial_step)

        for step in self.steps:
            step.mount(partial(self._set_valid, step.number))

    def _clamp(self, step: int) -> int:
        return max(1, min(self.total_steps, step))

    def _set_valid(self, number: int, valid: bool) -> None:
        self._validity[number] = valid

    # ── State ───────────────────────────────────────────────

    @property
    def current_step(self) -> int:
        return self._clamp(self.store.progress.current_step)

    @property
    def active_step(self) -> Step:
        return self.steps[self.current_step - 1]

    @property
    def busy(self) -> bool:
        return self._completing or any(step.busy for step in self.steps)

    @property
    def can_proceed(self) -> bool:
        return self._validity[self.current_step] and not self.busy

    def is_valid(self, number: int) -> bool:
        return self._validity.get(number, False)

    def step_for(self, kind: str) -> Step:
        for step in self.steps:
            if step.kind == kind:
                return step
        raise NavigationBlocked(f"Unknown onboarding step: {kind}")

    def refresh_validity(self) -> None:
        for step in self.steps:
            step.mount(partial(self._set_valid, step.number))

    def _ensure_idle(self) -> None:
        if self.busy:
            raise NavigationBlocked("Please wait for the current action to finish")

    # ── Transitions ─────────────────────────────────────────

    async def next(self) -> int:
        self._ensure_idle()
        current = self.current_step
        if current >= self.total_steps:
            raise NavigationBlocked("Already on the last step; complete onboarding instead")
        if not self._validity[current]:
            raise NavigationBlocked("Complete this step before continuing")
        await self.store.set_current_step(current + 1)
        return self.current_step

    async def back(self) -> int:
        self._ensure_idle()
        current = self.current_step
        if current <= 1:
            raise NavigationBlocked("Already on the first step")
        await self.store.set_current_step(current - 1)
        return self.current_step

    async def complete(self) -> None:
        self._ensure_idle()
        if self.current_step != self.total_steps:
            raise NavigationBlocked("Onboarding can only be completed from the last step")
        if not self._validity[self.total_steps]:
            raise NavigationBlocked("Complete this step before finishing onboarding")

        self._completing = True
        try:
            await self.store.complete_onboarding()
        finally:
            self._completing = False
        logger.info("Operational onboarding completed")

        if self.on_complete is not None:
            result = self.on_complete()
            if inspect.isawaitable(result):
                await result

    async def clear_all(self, confirmed: bool) -> None:
        self._ensure_idle()
        if self.current_step != 1:
            raise NavigationBlocked("Clear all is only available on the first step")
        if not self.store.progress.has_staged_data:
            raise NavigationBlocked("There is no onboarding data to clear")
        if not confirmed:
            raise NavigationBlocked("Confirm that all onboarding data should be cleared")

        await self.store.reset_onboarding()
        for step in self.steps:
            step.reset_form()
            step.errors = {}
        self.refresh_validity()

    # ── Rendering ───────────────────────────────────────────

    def snapshot(self) -> WizardSnapshot:
        current = self.current_step
        steps = [
            WizardStepInfo(
                number=step.number,
                title=step.title,
                description=step.description,
                status=(
                    "completed" if step.number < current
                    else "active" if step.number == current
                    else "pending"
                ),
            )
            for step in self.steps
        ]
        return WizardSnapshot(
            current_step=current,
            total_steps=self.total_steps,
            steps=steps,
            can_proceed=self.can_proceed,
            can_go_back=current > 1 and not self.busy,
            can_clear=current == 1 and self.store.progress.has_staged_data and not self.busy,
            busy=self.busy,
            primary_action="complete" if current == self.total_steps else "next",
            is_completed=self.store.progress.is_completed,
            state=self.active_step.state(),
        )
