"""Launcher scripts executed by path inside child processes."""
