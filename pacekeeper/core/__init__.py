"""Core Application Layer: the maintenance scheduler use cases.

Connects the domain layer with the infrastructure layer through interfaces.
"""
