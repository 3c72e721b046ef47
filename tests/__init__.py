"""Tests for the Unfolded Circle Remote integration."""
