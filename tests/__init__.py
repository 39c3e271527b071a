"""Test suite for the adaptive math trainer."""
