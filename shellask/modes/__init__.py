"""
Modes module for shellask.
Contains the interactive controller and the one-shot compose loop.
"""

from .compose import ComposeLoop
from .interactive import ControllerState, InteractiveController

__all__ = ["ComposeLoop", "ControllerState", "InteractiveController"]
