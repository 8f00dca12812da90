"""Dropbox music source: discovers audio files in a Dropbox account and resolves streaming URLs."""

__version__ = "0.1.0"
