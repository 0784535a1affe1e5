"""ActionFlow - applies AI-proposed file changes to a workspace, safely."""

__version__ = "0.1.0"
