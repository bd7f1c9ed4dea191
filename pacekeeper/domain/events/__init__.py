"""Domain Event definitions.

Represents significant occurrences (deferred admissions, cooldowns, retries,
maintenance steps) that observers may react to.
"""
