"""InductLite background jobs.

Export-job queue, retention reaper and the resource guardrails they obey.
"""

__version__ = "0.1.0"
