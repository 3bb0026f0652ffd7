"""Quiz domain services: run state machine, timers, scoring and leaderboard.

This package contains the domain logic imported by HTTP routes and socket
handlers, keeping transport concerns separated from core quiz mechanics.
"""
