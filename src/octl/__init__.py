"""
octl - OlympusOSS production setup wizard
"""

__version__ = "0.4.0"

from .core import SetupWizard
from .errors import SetupError

__all__ = ["SetupWizard", "SetupError"]
