"""Tests for provisioner."""
