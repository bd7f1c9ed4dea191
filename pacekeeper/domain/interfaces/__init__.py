"""Domain Interfaces (Ports):

Abstract Base Classes for the collaborators the throttle and the
maintenance scheduler depend on: the clock, the configuration provider, the
cleanup steps and the shape of a remote operation.
"""
