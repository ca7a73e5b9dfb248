"""Tests for the capi-assets command line tool."""
