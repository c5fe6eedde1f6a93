"""Host (editor or terminal) services."""

from .base import Host, Progress, QuickPickItem
from .console import ConsoleHost

__all__ = ["ConsoleHost", "Host", "Progress", "QuickPickItem"]
