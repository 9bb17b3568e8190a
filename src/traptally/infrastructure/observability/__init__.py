"""Logging and sync run ids."""
