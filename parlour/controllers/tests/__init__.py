"""Tests for :mod:`parlour.controllers`."""
