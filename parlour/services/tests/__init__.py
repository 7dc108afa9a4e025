"""Tests for :mod:`parlour.services`."""
