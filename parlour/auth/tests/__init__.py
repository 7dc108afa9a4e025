"""Tests for :mod:`parlour.auth`."""
