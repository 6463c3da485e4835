"""Telegram-бот monobot (aiogram v3)."""
