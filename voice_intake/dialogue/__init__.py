"""Dialogue control: controller, side-effect bus and per-conversation service."""
