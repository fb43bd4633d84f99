"""AKARI Mystic Club backend."""
