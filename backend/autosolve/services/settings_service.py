"""
Settings Service - user preferences with write-through persistence.
"""

from __future__ import annotations

from autosolve.core.logging import get_logger
from autosolve.db.repositories import SettingsRepository
from autosolve.schemas.settings import AppSettings, DefaultVehicle, Language, Units

logger = get_logger(__name__)


class SettingsService:
    """Read and update AppSettings."""

    def __init__(self, repository: SettingsRepository):
        self.repository = repository
        self._settings = repository.load()

    @property
    def settings(self) -> AppSettings:
        return self._settings.model_copy(deep=True)

    def _update(self, **changes) -> None:
        self._settings = self._settings.model_copy(update=changes)
        self.repository.save(self._settings)
        logger.debug("Settings updated", extra={"event": "settings_updated", "fields": sorted(changes)})

    def set_default_vehicle(self, vehicle: DefaultVehicle | None) -> None:
        self._update(default_vehicle=vehicle)

    def set_language(self, language: Language | str) -> None:
        self._update(language=Language(language))

    def set_units(self, units: Units | str) -> None:
        self._update(units=Units(units))

    def set_notifications(self, enabled: bool) -> None:
        self._update(notifications=enabled)

    def set_haptic_feedback(self, enabled: bool) -> None:
        self._update(haptic_feedback=enabled)
