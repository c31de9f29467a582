"""Test driver: resolves how to run the test harness and hands over to it."""
