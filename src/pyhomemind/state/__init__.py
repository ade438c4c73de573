"""State/store layer.

This package is the single source of truth for how remote snapshots and
local mutations are merged into the local state cache, and for the session
bootstrap state machine.
"""
