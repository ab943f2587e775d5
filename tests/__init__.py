"""Tests for the adjustment engine."""
