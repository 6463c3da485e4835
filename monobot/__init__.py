"""monobot — мост Monobank ↔ Telegram."""
