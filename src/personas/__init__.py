"""
Personas module - Coaching persona prompts and persona detection
"""

from .prompts import Persona, PersonaType, PERSONAS, get_persona
from .detector import PersonaDetector, PersonaDetection

__all__ = [
    "Persona",
    "PersonaType",
    "PERSONAS",
    "get_persona",
    "PersonaDetector",
    "PersonaDetection",
]
