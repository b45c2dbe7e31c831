"""
ClassificationOracle contract tests.

Runs the shared contract against:
  - SimulatorClassificationOracle  (always, no API key needed)
  - ClaudeClassificationOracle     (skipped without ANTHROPIC_API_KEY)
"""

import os

import pytest

from booking_inbox.adapters.claude_oracle import ClaudeClassificationOracle
from booking_inbox.adapters.simulator_oracle import SimulatorClassificationOracle
from tests.contracts.classification_oracle_contract import ClassificationOracleContract


class TestSimulatorClassificationOracle(ClassificationOracleContract):

    def create_oracle(self):
        return SimulatorClassificationOracle()


@pytest.mark.skipif(
    not os.environ.get("ANTHROPIC_API_KEY"),
    reason="ANTHROPIC_API_KEY not set",
)
class TestClaudeClassificationOracle(ClassificationOracleContract):

    def create_oracle(self):
        return ClaudeClassificationOracle()
