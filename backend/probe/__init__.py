"""Probe: checks which odds-stream endpoints accept a condition subscription."""
