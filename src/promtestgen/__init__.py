"""
promtestgen - inspect Prometheus rules and generate rule unit tests.

Analyzes which series each rule reads and builds replayable unit-test
fixtures for recording rules from recent samples of a live server.
"""

__version__ = "0.1.0"
