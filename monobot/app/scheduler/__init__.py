"""Фоновые периодические задачи."""
