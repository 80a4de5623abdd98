"""Pitch estimation, smoothing and octave selection."""
