"""Onboarding progress store.

Holds the wizard's staged drafts and cursor for one console session and
persists them as a single versioned document under ``operational-onboarding``:

    {
        "version": 2,
        "progress": {...} | null,     # working snapshot
        "completion": {"completed": true, "completed_at": "..."} | null
    }

Version 1 was the two-key layout (``operational-onboarding-progress`` and
``operational-onboarding-completed``, camelCase fields). It is migrated on
the first `open()` and the legacy keys are removed.
"""

import asyncio
import logging
from datetime import datetime, timezone

from pydantic import ValidationError

from beautydesk.errors import ConsoleError, StorageError
from beautydesk.platform.client import ONBOARDING_COLLECTIONS, PlatformClient
from beautydesk.schemas.onboarding import (
    AvailabilityDraft,
    OnboardingCompletion,
    OnboardingDocument,
    OnboardingProgress,
    OutletDraft,
    ProductDraft,
    StaffDraft,
    TemplateData,
    UserDraft,
)
from beautydesk.storage import Storage

logger = logging.getLogger(__name__)

ONBOARDING_KEY = "operational-onboarding"
LEGACY_PROGRESS_KEY = "operational-onboarding-progress"
LEGACY_COMPLETION_KEY = "operational-onboarding-completed"
DOCUMENT_VERSION = 2

_LEGACY_FIELDS = {
    "staffPositionTemplates": "staff_position_templates",
    "serviceCategoryTemplates": "service_category_templates",
    "currentStep": "current_step",
    "isCompleted": "is_completed",
    "isDismissed": "is_dismissed",
}


def migrate_legacy(progress_raw: dict | None, completion_raw: dict | None) -> OnboardingDocument:
    """Build a current document from the version 1 two-key layout."""
    progress = None
    if isinstance(progress_raw, dict):
        fields = {_LEGACY_FIELDS.get(k, k): v for k, v in progress_raw.items()}
        progress = OnboardingProgress.model_validate(fields)

    completion = None
    if isinstance(completion_raw, dict) and completion_raw.get("completed"):
        completion = OnboardingCompletion(
            completed=True,
            completed_at=completion_raw.get("completedAt") or completion_raw.get("completed_at"),
        )
    return OnboardingDocument(version=DOCUMENT_VERSION, progress=progress, completion=completion)


class OnboardingStore:
    """Single source of truth for staged wizard data and the cursor."""

    def __init__(self, storage: Storage, platform: PlatformClient, tenant_id: str | None = None):
        self._storage = storage
        self._platform = platform
        self.tenant_id = tenant_id
        self.progress = OnboardingProgress()
        self.completion: OnboardingCompletion | None = None

    # ── Loading ─────────────────────────────────────────────

    async def _read_document(self) -> OnboardingDocument:
        raw = await self._storage.get_json(ONBOARDING_KEY)
        if raw is not None:
            try:
                return OnboardingDocument.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Discarding unreadable onboarding document: {e}")
                return OnboardingDocument()

        legacy_progress = await self._storage.get_json(LEGACY_PROGRESS_KEY)
        legacy_completion = await self._storage.get_json(LEGACY_COMPLETION_KEY)
        if legacy_progress is None and legacy_completion is None:
            return OnboardingDocument()

        try:
            document = migrate_legacy(legacy_progress, legacy_completion)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable legacy onboarding progress: {e}")
            document = OnboardingDocument()
        try:
            await self._storage.set_json(ONBOARDING_KEY, document.model_dump(mode="json"))
            await self._storage.delete(LEGACY_PROGRESS_KEY, LEGACY_COMPLETION_KEY)
            logger.info("Migrated legacy onboarding progress")
        except StorageError as e:
            logger.warning(f"Legacy onboarding migration not persisted: {e}")
        return document

    async def open(self) -> None:
        """Load the working snapshot and completion marker."""
        document = await self._read_document()
        self.progress = document.progress or OnboardingProgress()
        self.completion = document.completion
        if self.completion and self.completion.completed:
            self.progress.is_completed = True

    async def load_progress(self) -> None:
        """Re-read the completion marker and reconcile `is_completed`."""
        document = await self._read_document()
        self.completion = document.completion
        self.progress.is_completed = bool(self.completion and self.completion.completed)

    # ── Persistence ─────────────────────────────────────────

    def _document(self) -> OnboardingDocument:
        progress = None if self.completion else self.progress
        return OnboardingDocument(
            version=DOCUMENT_VERSION, progress=progress, completion=self.completion
        )

    async def _save(self) -> None:
        try:
            await self._storage.set_json(ONBOARDING_KEY, self._document().model_dump(mode="json"))
        except StorageError as e:
            logger.error(f"Failed to save onboarding progress: {e}")

    # ── Staging ─────────────────────────────────────────────

    async def add_outlet(self, outlet: OutletDraft) -> None:
        self.progress.outlets.append(outlet)
        await self._save()

    async def add_user(self, user: UserDraft) -> None:
        self.progress.users.append(user)
        await self._save()

    async def add_product(self, product: ProductDraft) -> None:
        self.progress.products.append(product)
        await self._save()

    async def add_staff(self, staff: StaffDraft) -> None:
        self.progress.staff.append(staff)
        await self._save()

    async def add_availability(self, availability: AvailabilityDraft) -> None:
        self.progress.availabilities.append(availability)
        await self._save()

    async def set_staff_position_templates(self, templates: list[TemplateData]) -> None:
        self.progress.staff_position_templates = list(templates)
        await self._save()

    async def set_service_category_templates(self, templates: list[TemplateData]) -> None:
        self.progress.service_category_templates = list(templates)
        await self._save()

    async def set_current_step(self, step: int) -> None:
        self.progress.current_step = step
        await self._save()

    async def dismiss_wizard(self) -> None:
        self.progress.is_dismissed = True
        await self._save()

    async def resume_wizard(self) -> None:
        self.progress.is_dismissed = False
        await self._save()

    # ── Completion ──────────────────────────────────────────

    async def _push_templates(self) -> None:
        """Send selected templates to the tenant record when it has no outlets yet."""
        if not self.tenant_id:
            return
        tenant_settings = {}
        if self.progress.staff_position_templates:
            tenant_settings["staff_position_templates"] = [
                t.name for t in self.progress.staff_position_templates
            ]
        if self.progress.service_category_templates:
            tenant_settings["service_category_templates"] = [
                t.name for t in self.progress.service_category_templates
            ]
        if not tenant_settings:
            return

        try:
            if await self._platform.count("outlets") > 0:
                logger.debug("Tenant already has outlets, skipping template update")
                return
            await self._platform.update_tenant(self.tenant_id, {"settings": tenant_settings})
            logger.info(f"Updated templates for tenant {self.tenant_id}")
        except ConsoleError as e:
            logger.warning(f"Failed to update tenant templates: {e.message}")

    async def mark_completed(self) -> None:
        """Write the completion marker and drop the working snapshot.

        Raises:
            StorageError: if the write fails; `is_completed` stays false.
        """
        completion = OnboardingCompletion(completed=True, completed_at=datetime.now(timezone.utc))
        document = OnboardingDocument(version=DOCUMENT_VERSION, progress=None, completion=completion)
        await self._storage.set_json(ONBOARDING_KEY, document.model_dump(mode="json"))
        self.completion = completion
        self.progress = OnboardingProgress(is_completed=True)

    async def complete_onboarding(self) -> None:
        if self.progress.is_completed and self.completion:
            return
        await self._push_templates()
        await self.mark_completed()

    async def clear_completion(self) -> None:
        """Drop a completion marker that no longer matches the platform."""
        if self.completion is None and not self.progress.is_completed:
            return
        self.completion = None
        self.progress.is_completed = False
        await self._save()

    async def reset_onboarding(self) -> None:
        self.progress = OnboardingProgress()
        self.completion = None
        try:
            await self._storage.delete(ONBOARDING_KEY, LEGACY_PROGRESS_KEY, LEGACY_COMPLETION_KEY)
        except StorageError as e:
            logger.warning(f"Failed to reset onboarding in storage: {e}")

    # ── Queries ─────────────────────────────────────────────

    async def has_completed_step(self, step: int) -> bool:
        """True when the platform already has records for `step`'s collection."""
        if not 1 <= step <= len(ONBOARDING_COLLECTIONS):
            return False
        try:
            return await self._platform.count(ONBOARDING_COLLECTIONS[step - 1]) > 0
        except ConsoleError as e:
            logger.warning(f"Failed to check step {step} completion: {e.message}")
            return False

    async def incomplete_steps(self) -> list[int]:
        steps = range(1, len(ONBOARDING_COLLECTIONS) + 1)
        done = await asyncio.gather(*(self.has_completed_step(step) for step in steps))
        return [step for step, completed in zip(steps, done) if not completed]
