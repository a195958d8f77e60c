"""
User preference schemas.
"""

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel


class Language(StrEnum):
    EN = "en"
    ES = "es"
    FR = "fr"
    DE = "de"


class Units(StrEnum):
    IMPERIAL = "imperial"
    METRIC = "metric"


class DefaultVehicle(BaseModel):
    """Vehicle pre-filled on the scan screen."""

    year: str = ""
    make: str = ""
    model: str = ""
    engine: str = ""


class AppSettings(BaseModel):
    """Persisted settings blob."""

    default_vehicle: Optional[DefaultVehicle] = None
    language: Language = Language.EN
    units: Units = Units.IMPERIAL
    notifications: bool = True
    haptic_feedback: bool = True
