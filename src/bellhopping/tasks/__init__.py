"""Search payload construction."""
