"""Tests for core infrastructure: helpers, service results and health check."""
