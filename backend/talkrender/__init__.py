"""
talkrender — upload, schedule matching and render handoff for conference talks.

Raw talk recordings are uploaded against a schedule guid, tracked in a small
SQLite store, and handed to an external intro/outro toolchain that produces
the final composited video.
"""

__version__ = "0.1.0"
