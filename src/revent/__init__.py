"""revent: campus events sync service.

Mirrors a GitHub resources repository behind a revalidating cache, schedules
event reminder notifications, and audits writes to tracked collections.
"""

__version__ = "0.1.0"
