"""Configuration package.

Read the live settings as ``settings.cfg``; the singleton is rebuilt by
:func:`~vibeflow_notify.util.singletons.reset_all_singletons`.
"""

from . import settings
from .settings import Settings, SlackCredentials

__all__ = ["Settings", "SlackCredentials", "settings"]
