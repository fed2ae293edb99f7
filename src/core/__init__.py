"""Core domain package for magicbot.

Core contains rule matching, warn escalation, membership diffing and the
event dispatcher without any signal-cli or storage-specific code, keeping
the moderation logic portable and testable with fakes.
"""
