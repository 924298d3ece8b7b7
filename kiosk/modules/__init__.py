"""Kiosk processing modules."""
