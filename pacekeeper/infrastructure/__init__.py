"""Infrastructure Layer: Contains concrete implementations and adapters.

Clock, throttle and retry machinery, configuration files, local log and
schedule cleanup, logging setup and console display.
"""
