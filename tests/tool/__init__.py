"""Tests for the config-sync command line tool."""
