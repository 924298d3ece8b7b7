"""Core types, events, session state and pipeline."""
