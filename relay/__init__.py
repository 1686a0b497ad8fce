"""Telegram relay service."""
