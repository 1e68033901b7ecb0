"""Core: settings, constants, presets and composition root."""
