"""Photoshare backend: encrypted asset storage and group sharing."""
