"""Клиенты внешних HTTP API."""
