"""API Resilience Implementations.

Contains the throttle gate (pacing, threshold cooldowns, server rate-limit
backoff) and the retry coordinator that drives remote operations through it.
Bounded Context: API Resilience
"""
