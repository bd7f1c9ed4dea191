"""Domain Layer: configuration snapshots, outcomes, errors, events and ports.

Has no dependencies on the core or infrastructure layers.
"""
