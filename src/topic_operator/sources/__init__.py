"""Event sources feeding the controller."""
